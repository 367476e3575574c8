"""Outbound ports — capabilities the engine consumes but does not implement.

The engine depends only on these abstractions, never on concrete HTTP
clients or metrics backends.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Awaitable, Callable, TypeVar

from kodex_ai.domain.models import (
    CodeAnalysisRequest,
    CodeAnalysisResult,
    CodeExplanationRequest,
    CodeExplanationResult,
    CodeGenerationRequest,
    CodeGenerationResult,
    ImprovementRequest,
    ImprovementResult,
)

T = TypeVar("T")


class AIProvider(ABC):
    """A pluggable backend able to serve the four AI request types.

    Any method may raise; a raising ``is_available`` is treated as
    "unavailable" by the engine.
    """

    name: str

    @abstractmethod
    async def is_available(self) -> bool: ...

    @abstractmethod
    async def generate_code(self, request: CodeGenerationRequest) -> CodeGenerationResult: ...

    @abstractmethod
    async def analyze_code(self, request: CodeAnalysisRequest) -> CodeAnalysisResult: ...

    @abstractmethod
    async def explain_code(self, request: CodeExplanationRequest) -> CodeExplanationResult: ...

    @abstractmethod
    async def suggest_improvements(self, request: ImprovementRequest) -> ImprovementResult: ...

    async def close(self) -> None:
        """Release network resources.  No-op by default."""


class PerformanceMeasurer(ABC):
    """Wraps a provider call to observe its duration."""

    @abstractmethod
    async def measure(self, name: str, fn: Callable[[], Awaitable[T]]) -> T: ...
