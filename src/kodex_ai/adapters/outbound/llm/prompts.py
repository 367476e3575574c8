"""Prompt templates shared by the chat-completion providers.

Every prompt asks for a single JSON object whose keys match the result
models in ``kodex_ai.domain.models``.
"""

from __future__ import annotations

from kodex_ai.domain.models import (
    CodeAnalysisRequest,
    CodeExplanationRequest,
    CodeGenerationRequest,
    ImprovementRequest,
    ProjectContext,
)

GENERATION_SYSTEM = """You are an expert software engineer generating production-ready code.
Follow the project's framework, language and conventions exactly.
Return ONLY a JSON object with keys:
files (list of {path, content, language, description, dependencies}),
explanation (string), suggestions (list of strings),
dependencies (list of package names), tests (list of files, may be empty)."""

ANALYSIS_SYSTEM = """You are an expert code analyzer. Analyze the provided code for issues,
complexity, and structure. Return ONLY a JSON object with keys:
issues (list of {type: error|warning|info, message, line, column,
severity: high|medium|low, fixable, suggested_fix}),
suggestions (list of {type: performance|security|maintainability|accessibility|best-practice,
message, line, before, after, impact: high|medium|low}),
complexity ({cyclomatic_complexity, lines_of_code, maintainability_index, technical_debt}),
dependencies, exports, imports (lists of strings)."""

EXPLANATION_SYSTEM = """You are a patient programming mentor. Explain the provided code at the
requested level. Return ONLY a JSON object with keys:
explanation (string), breakdown (list of {section, explanation, line,
importance: high|medium|low}), concepts (list of strings),
related_topics (list of strings)."""

IMPROVEMENT_SYSTEM = """You are a senior reviewer suggesting concrete improvements.
Return ONLY a JSON object with keys:
improvements (list of {type: performance|security|accessibility|maintainability|testing|documentation,
description, before, after, line, impact: high|medium|low, effort: low|medium|high, reasoning}),
refactored_code (string or null),
impact ({performance, maintainability, security, accessibility, overall}, each 0-100)."""


def _describe_context(context: ProjectContext | None) -> str:
    if context is None:
        return ""
    lines = [
        f"Framework: {context.framework}",
        f"Language: {context.language}",
    ]
    if context.dependencies:
        lines.append(f"Dependencies: {', '.join(context.dependencies)}")
    if context.project_structure:
        lines.append("Project structure:\n" + "\n".join(context.project_structure[:50]))
    if context.current_file:
        lines.append(f"Current file: {context.current_file}")
    if context.selected_code:
        lines.append(f"Selected code:\n```\n{context.selected_code}\n```")
    return "\n".join(lines)


def generation_prompt(request: CodeGenerationRequest) -> str:
    parts = [
        f"Generate a {request.type.value} for this request:",
        request.prompt,
        "",
        _describe_context(request.context),
    ]
    if request.constraints is not None:
        constraints = request.constraints.model_dump(exclude_none=True)
        if constraints:
            parts.append("Constraints: " + ", ".join(f"{k}={v}" for k, v in constraints.items()))
    if request.preferences is not None:
        prefs = request.preferences
        parts.append(
            f"Preferences: {prefs.code_style} style, {prefs.css_framework} for styling, "
            f"{prefs.state_management} for state, {prefs.testing_framework} for tests, "
            f"TypeScript={'yes' if prefs.typescript else 'no'}"
        )
    return "\n".join(parts)


def analysis_prompt(request: CodeAnalysisRequest) -> str:
    return (
        f"Analyze this {request.language} code.\n"
        f"File path: {request.file_path}\n\n"
        f"```{request.language}\n{request.code}\n```\n\n"
        f"{_describe_context(request.context)}"
    )


def explanation_prompt(request: CodeExplanationRequest) -> str:
    prompt = (
        f"Explain this {request.language} code for a {request.level.value} developer.\n\n"
        f"```{request.language}\n{request.code}\n```"
    )
    if request.context:
        prompt += f"\n\nContext: {request.context}"
    return prompt


def improvement_prompt(request: ImprovementRequest) -> str:
    focus = ", ".join(f.value for f in request.focus) or "all areas"
    return (
        f"Suggest improvements for this {request.language} code, focusing on {focus}.\n"
        f"File path: {request.file_path}\n\n"
        f"```{request.language}\n{request.code}\n```\n\n"
        f"{_describe_context(request.context)}"
    )
