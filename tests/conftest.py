"""Shared test fixtures."""

from __future__ import annotations

from typing import Any

import pytest

from kodex_ai.domain.enums import CodeGenerationType
from kodex_ai.domain.models import (
    CodeAnalysisRequest,
    CodeAnalysisResult,
    CodeExplanationRequest,
    CodeExplanationResult,
    CodeGenerationRequest,
    CodeGenerationResult,
    ImprovementRequest,
    ImprovementResult,
    ProjectContext,
    Usage,
)
from kodex_ai.ports.outbound import AIProvider


class FakeClock:
    """Manually advanced monotonic clock (seconds)."""

    def __init__(self, start: float = 1_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class StubProvider(AIProvider):
    """Scriptable provider that records every call."""

    def __init__(
        self,
        name: str,
        *,
        available: bool = True,
        fail: bool = False,
        probe_error: Exception | None = None,
        tokens: int = 10,
    ) -> None:
        self.name = name
        self.available = available
        self.fail = fail
        self.probe_error = probe_error
        self.tokens = tokens
        self.calls: list[tuple[str, Any]] = []
        self.closed = False

    async def is_available(self) -> bool:
        if self.probe_error is not None:
            raise self.probe_error
        return self.available

    def _record(self, method: str, request: Any) -> None:
        self.calls.append((method, request))
        if self.fail:
            raise RuntimeError(f"{self.name} failed")

    async def generate_code(self, request: CodeGenerationRequest) -> CodeGenerationResult:
        self._record("generate_code", request)
        return CodeGenerationResult(
            explanation=request.prompt,
            provider=self.name,
            usage=Usage(tokens_used=self.tokens),
        )

    async def analyze_code(self, request: CodeAnalysisRequest) -> CodeAnalysisResult:
        self._record("analyze_code", request)
        return CodeAnalysisResult(provider=self.name)

    async def explain_code(self, request: CodeExplanationRequest) -> CodeExplanationResult:
        self._record("explain_code", request)
        return CodeExplanationResult(explanation="explained", provider=self.name)

    async def suggest_improvements(self, request: ImprovementRequest) -> ImprovementResult:
        self._record("suggest_improvements", request)
        return ImprovementResult(provider=self.name)

    async def close(self) -> None:
        self.closed = True


def make_generation_request(prompt: str = "Create a login form") -> CodeGenerationRequest:
    return CodeGenerationRequest(
        prompt=prompt,
        type=CodeGenerationType.COMPONENT,
        context=ProjectContext(framework="react", language="typescript"),
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def generation_request() -> CodeGenerationRequest:
    return make_generation_request()


@pytest.fixture
def analysis_request() -> CodeAnalysisRequest:
    return CodeAnalysisRequest(
        code="const x: any = 1\nconsole.log(x)",
        language="typescript",
        file_path="src/x.ts",
    )


@pytest.fixture
def explanation_request() -> CodeExplanationRequest:
    return CodeExplanationRequest(code="print('hi')", language="python")


@pytest.fixture
def improvement_request() -> ImprovementRequest:
    return ImprovementRequest(code="var a = 1", language="javascript", file_path="a.js")
