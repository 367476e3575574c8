"""Request and result models for the four AI operations.

Requests are part of the cache fingerprint, so they must only carry
deterministic content (no timestamps or random IDs beyond what the caller
wants to distinguish).
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from kodex_ai.domain.enums import (
    CodeGenerationType,
    ExplanationLevel,
    ImprovementFocus,
    IssueType,
    Level,
    SuggestionType,
)


# ═══════════════════════════════════════════════════════════════
#  Shared context
# ═══════════════════════════════════════════════════════════════
class ProjectFile(BaseModel):
    id: str
    name: str
    path: str
    content: str
    language: str
    size: int = Field(0, ge=0)
    last_modified: datetime | None = None


class ProjectContext(BaseModel):
    framework: str
    language: str
    existing_files: list[ProjectFile] = Field(default_factory=list)
    dependencies: list[str] = Field(default_factory=list)
    project_structure: list[str] = Field(default_factory=list)
    current_file: str | None = None
    selected_code: str | None = None


class Usage(BaseModel):
    tokens_used: int = 0
    cost: float | None = None
    duration_ms: float = 0.0


# ═══════════════════════════════════════════════════════════════
#  Code generation
# ═══════════════════════════════════════════════════════════════
class GenerationConstraints(BaseModel):
    max_files: int | None = None
    max_lines_per_file: int | None = None
    include_tests: bool | None = None
    include_documentation: bool | None = None
    style_guide: str | None = None
    accessibility: bool | None = None
    responsive: bool | None = None


class UserPreferences(BaseModel):
    code_style: str = Field("functional", pattern="^(functional|class-based|mixed)$")
    testing_framework: str = Field("jest", pattern="^(jest|vitest|cypress)$")
    css_framework: str = Field(
        "tailwind", pattern="^(tailwind|styled-components|css-modules|emotion)$"
    )
    state_management: str = Field("useState", pattern="^(useState|zustand|redux|context)$")
    typescript: bool = True


class CodeGenerationRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    prompt: str = Field(..., min_length=1)
    type: CodeGenerationType
    context: ProjectContext
    constraints: GenerationConstraints | None = None
    preferences: UserPreferences | None = None


class GeneratedFile(BaseModel):
    path: str
    content: str
    language: str
    description: str = ""
    dependencies: list[str] = Field(default_factory=list)


class CodeGenerationResult(BaseModel):
    files: list[GeneratedFile] = Field(default_factory=list)
    explanation: str = ""
    suggestions: list[str] = Field(default_factory=list)
    dependencies: list[str] = Field(default_factory=list)
    tests: list[GeneratedFile] = Field(default_factory=list)
    provider: str
    usage: Usage = Field(default_factory=Usage)


# ═══════════════════════════════════════════════════════════════
#  Code analysis
# ═══════════════════════════════════════════════════════════════
class CodeAnalysisRequest(BaseModel):
    code: str
    language: str
    file_path: str
    context: ProjectContext | None = None


class CodeIssue(BaseModel):
    type: IssueType
    message: str
    line: int = 0
    column: int = 0
    severity: Level = Level.MEDIUM
    fixable: bool = False
    suggested_fix: str | None = None


class CodeSuggestion(BaseModel):
    type: SuggestionType
    message: str
    line: int | None = None
    column: int | None = None
    before: str | None = None
    after: str | None = None
    impact: Level = Level.MEDIUM


class ComplexityMetrics(BaseModel):
    cyclomatic_complexity: float = 0.0
    lines_of_code: int = 0
    maintainability_index: float = 0.0
    technical_debt: float = 0.0


class CodeAnalysisResult(BaseModel):
    issues: list[CodeIssue] = Field(default_factory=list)
    suggestions: list[CodeSuggestion] = Field(default_factory=list)
    complexity: ComplexityMetrics = Field(default_factory=ComplexityMetrics)
    dependencies: list[str] = Field(default_factory=list)
    exports: list[str] = Field(default_factory=list)
    imports: list[str] = Field(default_factory=list)
    provider: str
    usage: Usage = Field(default_factory=Usage)


# ═══════════════════════════════════════════════════════════════
#  Code explanation
# ═══════════════════════════════════════════════════════════════
class CodeExplanationRequest(BaseModel):
    code: str
    language: str
    context: str | None = None
    level: ExplanationLevel = ExplanationLevel.INTERMEDIATE


class CodeBreakdown(BaseModel):
    section: str
    explanation: str
    line: int | None = None
    importance: Level = Level.MEDIUM


class CodeExplanationResult(BaseModel):
    explanation: str = ""
    breakdown: list[CodeBreakdown] = Field(default_factory=list)
    concepts: list[str] = Field(default_factory=list)
    related_topics: list[str] = Field(default_factory=list)
    provider: str
    usage: Usage = Field(default_factory=Usage)


# ═══════════════════════════════════════════════════════════════
#  Improvements
# ═══════════════════════════════════════════════════════════════
class ImprovementRequest(BaseModel):
    code: str
    language: str
    file_path: str
    focus: list[ImprovementFocus] = Field(default_factory=list)
    context: ProjectContext | None = None


class Improvement(BaseModel):
    type: ImprovementFocus
    description: str
    before: str = ""
    after: str = ""
    line: int | None = None
    impact: Level = Level.MEDIUM
    effort: Level = Level.MEDIUM
    reasoning: str = ""


class ImprovementImpact(BaseModel):
    performance: int = Field(0, ge=0, le=100)
    maintainability: int = Field(0, ge=0, le=100)
    security: int = Field(0, ge=0, le=100)
    accessibility: int = Field(0, ge=0, le=100)
    overall: int = Field(0, ge=0, le=100)


class ImprovementResult(BaseModel):
    improvements: list[Improvement] = Field(default_factory=list)
    refactored_code: str | None = None
    impact: ImprovementImpact = Field(default_factory=ImprovementImpact)
    provider: str
    usage: Usage = Field(default_factory=Usage)
