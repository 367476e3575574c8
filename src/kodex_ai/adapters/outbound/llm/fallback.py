"""Template-based last-resort provider.

Needs no network access.  Generation fills built-in (or configured) code
templates; analysis, explanation and improvements are simple heuristics.
"""

from __future__ import annotations

import re
import time
from typing import Mapping

from kodex_ai.domain.enums import CodeGenerationType, ImprovementFocus, IssueType, Level, SuggestionType
from kodex_ai.domain.models import (
    CodeAnalysisRequest,
    CodeAnalysisResult,
    CodeBreakdown,
    CodeExplanationRequest,
    CodeExplanationResult,
    CodeGenerationRequest,
    CodeGenerationResult,
    CodeIssue,
    CodeSuggestion,
    ComplexityMetrics,
    GeneratedFile,
    Improvement,
    ImprovementImpact,
    ImprovementRequest,
    ImprovementResult,
    Usage,
)
from kodex_ai.ports.outbound import AIProvider

DEFAULT_TEMPLATES: dict[str, str] = {
    "react-component": """import React from 'react'

interface {{ComponentName}}Props {
  // Add your props here
}

export const {{ComponentName}}: React.FC<{{ComponentName}}Props> = (props) => {
  return (
    <div>
      {/* Your component content here */}
    </div>
  )
}

export default {{ComponentName}}""",
    "react-hook": """import { useState, useEffect } from 'react'

export const {{HookName}} = () => {
  const [state, setState] = useState(null)

  useEffect(() => {
    // Your effect logic here
  }, [])

  return {
    state,
    setState
  }
}""",
    "api-route": """import { NextRequest, NextResponse } from 'next/server'

export async function GET(request: NextRequest) {
  try {
    return NextResponse.json({ message: 'Success' })
  } catch (error) {
    return NextResponse.json({ error: 'Internal Server Error' }, { status: 500 })
  }
}

export async function POST(request: NextRequest) {
  try {
    const body = await request.json()
    return NextResponse.json({ message: 'Created' })
  } catch (error) {
    return NextResponse.json({ error: 'Internal Server Error' }, { status: 500 })
  }
}""",
    "utility-function": """/**
 * {{FunctionDescription}}
 */
export const {{FunctionName}} = (input: any): any => {
  // Your utility logic here
  return input
}""",
    "test-file": """import { render, screen } from '@testing-library/react'
import { {{ComponentName}} } from './{{ComponentName}}'

describe('{{ComponentName}}', () => {
  it('should render correctly', () => {
    render(<{{ComponentName}} />)
  })
})""",
}

_TEMPLATE_FOR_TYPE: dict[CodeGenerationType, str] = {
    CodeGenerationType.COMPONENT: "react-component",
    CodeGenerationType.HOOK: "react-hook",
    CodeGenerationType.API: "api-route",
    CodeGenerationType.UTILITY: "utility-function",
    CodeGenerationType.TEST: "test-file",
}

_EXTENSION_FOR_TYPE: dict[CodeGenerationType, str] = {
    CodeGenerationType.COMPONENT: "tsx",
    CodeGenerationType.HOOK: "ts",
    CodeGenerationType.API: "ts",
    CodeGenerationType.UTILITY: "ts",
    CodeGenerationType.TEST: "test.tsx",
}

_DEPENDENCIES_FOR_TYPE: dict[CodeGenerationType, list[str]] = {
    CodeGenerationType.COMPONENT: ["react"],
    CodeGenerationType.HOOK: ["react"],
    CodeGenerationType.API: ["next"],
    CodeGenerationType.TEST: ["@testing-library/react", "@testing-library/jest-dom"],
}


class FallbackProvider(AIProvider):
    name = "fallback"

    def __init__(
        self,
        *,
        enabled: bool = True,
        templates: Mapping[str, str] | None = None,
    ) -> None:
        self._enabled = enabled
        self._templates = {**DEFAULT_TEMPLATES, **(templates or {})}

    async def is_available(self) -> bool:
        return self._enabled

    async def generate_code(self, request: CodeGenerationRequest) -> CodeGenerationResult:
        start = time.perf_counter()
        key = _TEMPLATE_FOR_TYPE.get(request.type, "react-component")
        # A configured template keyed by the raw type wins over the mapping
        template = self._templates.get(request.type.value) or self._templates[key]

        name = component_name(request.prompt)
        content = (
            template.replace("{{ComponentName}}", name)
            .replace("{{HookName}}", f"use{name}")
            .replace("{{FunctionName}}", name.lower())
            .replace("{{FunctionDescription}}", request.prompt)
        )
        extension = _EXTENSION_FOR_TYPE.get(request.type, "tsx")

        return CodeGenerationResult(
            files=[
                GeneratedFile(
                    path=f"{name}.{extension}",
                    content=content,
                    language=request.context.language,
                    description=f"Generated {request.type.value} from template",
                )
            ],
            explanation=f"Generated {request.type.value} using fallback template",
            suggestions=[
                "This is a basic template. Consider using AI providers for more sophisticated code generation.",
                "Customize the generated code to match your specific requirements.",
                "Add proper error handling and validation as needed.",
            ],
            dependencies=list(_DEPENDENCIES_FOR_TYPE.get(request.type, [])),
            provider=self.name,
            usage=Usage(duration_ms=round((time.perf_counter() - start) * 1000, 2)),
        )

    async def analyze_code(self, request: CodeAnalysisRequest) -> CodeAnalysisResult:
        lines = request.code.split("\n")
        issues: list[CodeIssue] = []
        suggestions: list[CodeSuggestion] = []

        if "console.log" in request.code:
            issues.append(
                CodeIssue(
                    type=IssueType.WARNING,
                    message="Console.log statements found - consider removing for production",
                    line=_first_line_containing(lines, "console.log"),
                    severity=Level.LOW,
                    fixable=True,
                    suggested_fix="Remove console.log statements",
                )
            )

        if re.search(r"\bany\b", request.code):
            suggestions.append(
                CodeSuggestion(
                    type=SuggestionType.MAINTAINABILITY,
                    message='Consider using specific types instead of "any"',
                    line=_first_line_matching(lines, r"\bany\b"),
                    column=0,
                    before="any",
                    after="specific type",
                    impact=Level.MEDIUM,
                )
            )

        return CodeAnalysisResult(
            issues=issues,
            suggestions=suggestions,
            complexity=ComplexityMetrics(
                cyclomatic_complexity=min(len(lines) / 10, 10),
                lines_of_code=len(lines),
                maintainability_index=max(100 - len(lines) / 10, 0),
                technical_debt=len(issues) * 0.1,
            ),
            provider=self.name,
        )

    async def explain_code(self, request: CodeExplanationRequest) -> CodeExplanationResult:
        lines = request.code.split("\n")
        return CodeExplanationResult(
            explanation=(
                f"This {request.language} code contains {len(lines)} lines. "
                "Basic fallback explanation provided."
            ),
            breakdown=[
                CodeBreakdown(
                    section="Code Structure",
                    explanation="The code follows standard patterns for the language",
                    importance=Level.MEDIUM,
                )
            ],
            concepts=[request.language, "programming"],
            related_topics=["best practices", "code organization"],
            provider=self.name,
        )

    async def suggest_improvements(self, request: ImprovementRequest) -> ImprovementResult:
        improvements: list[Improvement] = []
        if re.search(r"\bvar\s", request.code):
            improvements.append(
                Improvement(
                    type=ImprovementFocus.MAINTAINABILITY,
                    description="Use const or let instead of var",
                    before="var variable",
                    after="const variable",
                    impact=Level.MEDIUM,
                    effort=Level.LOW,
                    reasoning="const and let have block scope and prevent hoisting issues",
                )
            )

        found = bool(improvements)
        return ImprovementResult(
            improvements=improvements,
            impact=ImprovementImpact(
                maintainability=20 if found else 0,
                overall=15 if found else 0,
            ),
            provider=self.name,
        )


def component_name(prompt: str) -> str:
    """PascalCase name from the first three words of the prompt."""
    words = re.sub(r"[^a-zA-Z\s]", "", prompt).split()
    return "".join(w[0].upper() + w[1:].lower() for w in words[:3]) or "GeneratedComponent"


def _first_line_containing(lines: list[str], needle: str) -> int:
    return next((i + 1 for i, line in enumerate(lines) if needle in line), 0)


def _first_line_matching(lines: list[str], pattern: str) -> int:
    regex = re.compile(pattern)
    return next((i + 1 for i, line in enumerate(lines) if regex.search(line)), 0)
