"""Domain enumerations for the AI orchestration engine."""

from __future__ import annotations

import enum


class RequestType(str, enum.Enum):
    """Request-type tag used for provider preference and cache keys."""

    CODE_GENERATION = "code-generation"
    CODE_ANALYSIS = "code-analysis"
    CODE_EXPLANATION = "code-explanation"
    CODE_IMPROVEMENT = "code-improvement"


class Operation(str, enum.Enum):
    """Public engine operation; the value is the provider method it dispatches to."""

    GENERATE_CODE = "generate_code"
    ANALYZE_CODE = "analyze_code"
    EXPLAIN_CODE = "explain_code"
    SUGGEST_IMPROVEMENTS = "suggest_improvements"

    @property
    def request_type(self) -> RequestType:
        return _OPERATION_REQUEST_TYPES[self]


_OPERATION_REQUEST_TYPES: dict[Operation, RequestType] = {
    Operation.GENERATE_CODE: RequestType.CODE_GENERATION,
    Operation.ANALYZE_CODE: RequestType.CODE_ANALYSIS,
    Operation.EXPLAIN_CODE: RequestType.CODE_EXPLANATION,
    Operation.SUGGEST_IMPROVEMENTS: RequestType.CODE_IMPROVEMENT,
}


class CodeGenerationType(str, enum.Enum):
    """What kind of artefact a generation request asks for."""

    COMPONENT = "component"
    PAGE = "page"
    FEATURE = "feature"
    API = "api"
    TEST = "test"
    FULL_APP = "full-app"
    UTILITY = "utility"
    HOOK = "hook"


class IssueType(str, enum.Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class Level(str, enum.Enum):
    """Shared high/medium/low scale for severity, impact, effort, importance."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class SuggestionType(str, enum.Enum):
    PERFORMANCE = "performance"
    SECURITY = "security"
    MAINTAINABILITY = "maintainability"
    ACCESSIBILITY = "accessibility"
    BEST_PRACTICE = "best-practice"


class ExplanationLevel(str, enum.Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class ImprovementFocus(str, enum.Enum):
    PERFORMANCE = "performance"
    SECURITY = "security"
    ACCESSIBILITY = "accessibility"
    MAINTAINABILITY = "maintainability"
    TESTING = "testing"
    DOCUMENTATION = "documentation"
