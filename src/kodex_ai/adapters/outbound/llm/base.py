"""Shared plumbing for HTTP chat-completion providers.

Subclasses supply the vendor call (``_complete``) and the availability
probe; this base turns the four operations into prompts and maps the JSON
replies onto the result models.  Vendor errors propagate as ``httpx``
exceptions so the engine can record and retry them.
"""

from __future__ import annotations

import json
import time
from abc import abstractmethod
from typing import Any, Callable, TypeVar

import httpx
import structlog
from pydantic import BaseModel, ValidationError

from kodex_ai.adapters.outbound.llm import prompts
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

logger = structlog.get_logger(__name__)

M = TypeVar("M", bound=BaseModel)


class ChatCompletionProvider(AIProvider):
    """Base for providers reached through a JSON chat-completion API."""

    name = "chat"

    def __init__(
        self,
        *,
        api_key: str,
        model: str,
        base_url: str,
        max_tokens: int = 4000,
        temperature: float = 0.7,
        timeout_s: float = 60.0,
        availability_ttl_s: float = 30.0,
        client: httpx.AsyncClient | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._api_key = api_key.strip()
        self._model = model
        self._base_url = base_url.rstrip("/")
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._availability_ttl = availability_ttl_s
        self._clock = clock
        self._client = client or httpx.AsyncClient(timeout=timeout_s)
        self._owns_client = client is None
        self._availability: tuple[float, bool] | None = None

    # ── Vendor hooks ─────────────────────────────────────────
    @abstractmethod
    def _headers(self) -> dict[str, str]: ...

    @abstractmethod
    async def _complete(self, system_prompt: str, user_prompt: str) -> tuple[str, int]:
        """Return (reply text, total tokens used)."""

    # ── Availability ─────────────────────────────────────────
    async def is_available(self) -> bool:
        """False without an API key; otherwise a cached ``GET /models`` probe.

        Transport errors propagate so the caller can treat them as a failed probe.
        """
        if not self._api_key:
            return False

        now = self._clock()
        if self._availability is not None:
            checked_at, available = self._availability
            if now - checked_at < self._availability_ttl:
                return available

        response = await self._client.get(f"{self._base_url}/models", headers=self._headers())
        available = response.is_success
        if not available:
            logger.warning(
                "provider_probe_unhealthy",
                provider=self.name,
                status_code=response.status_code,
            )
        self._availability = (now, available)
        return available

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # ── Operations ───────────────────────────────────────────
    async def generate_code(self, request: CodeGenerationRequest) -> CodeGenerationResult:
        start = time.perf_counter()
        text, tokens = await self._complete(
            prompts.GENERATION_SYSTEM, prompts.generation_prompt(request)
        )
        data = parse_json(text)
        language = request.context.language
        return CodeGenerationResult(
            files=_model_list(GeneratedFile, data.get("files"), language=language),
            explanation=str(data.get("explanation") or data.get("raw_text", "")),
            suggestions=_str_list(data.get("suggestions")),
            dependencies=_str_list(data.get("dependencies")),
            tests=_model_list(GeneratedFile, data.get("tests"), language=language),
            provider=self.name,
            usage=self._usage(tokens, start),
        )

    async def analyze_code(self, request: CodeAnalysisRequest) -> CodeAnalysisResult:
        start = time.perf_counter()
        text, tokens = await self._complete(
            prompts.ANALYSIS_SYSTEM, prompts.analysis_prompt(request)
        )
        data = parse_json(text)
        return CodeAnalysisResult(
            issues=_model_list(CodeIssue, data.get("issues")),
            suggestions=_model_list(CodeSuggestion, data.get("suggestions")),
            complexity=_model(ComplexityMetrics, data.get("complexity")),
            dependencies=_str_list(data.get("dependencies")),
            exports=_str_list(data.get("exports")),
            imports=_str_list(data.get("imports")),
            provider=self.name,
            usage=self._usage(tokens, start),
        )

    async def explain_code(self, request: CodeExplanationRequest) -> CodeExplanationResult:
        start = time.perf_counter()
        text, tokens = await self._complete(
            prompts.EXPLANATION_SYSTEM, prompts.explanation_prompt(request)
        )
        data = parse_json(text)
        return CodeExplanationResult(
            explanation=str(data.get("explanation") or data.get("raw_text", "")),
            breakdown=_model_list(CodeBreakdown, data.get("breakdown")),
            concepts=_str_list(data.get("concepts")),
            related_topics=_str_list(data.get("related_topics")),
            provider=self.name,
            usage=self._usage(tokens, start),
        )

    async def suggest_improvements(self, request: ImprovementRequest) -> ImprovementResult:
        start = time.perf_counter()
        text, tokens = await self._complete(
            prompts.IMPROVEMENT_SYSTEM, prompts.improvement_prompt(request)
        )
        data = parse_json(text)
        refactored = data.get("refactored_code")
        return ImprovementResult(
            improvements=_model_list(Improvement, data.get("improvements")),
            refactored_code=str(refactored) if refactored else None,
            impact=_model(ImprovementImpact, data.get("impact")),
            provider=self.name,
            usage=self._usage(tokens, start),
        )

    @staticmethod
    def _usage(tokens: int, start: float) -> Usage:
        return Usage(tokens_used=tokens, duration_ms=round((time.perf_counter() - start) * 1000, 2))


# ── Reply parsing ────────────────────────────────────────────
def parse_json(text: str) -> dict[str, Any]:
    """Parse a model reply, tolerating fenced code blocks around the JSON."""
    candidates = [text]
    fence = "```json" if "```json" in text else "```"
    if fence in text:
        start = text.index(fence) + len(fence)
        end = text.find("```", start)
        candidates.append(text[start:] if end == -1 else text[start:end])

    for candidate in candidates:
        try:
            data = json.loads(candidate.strip())
        except json.JSONDecodeError:
            continue
        if isinstance(data, dict):
            return data
    return {"raw_text": text}


def _str_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(v) for v in value if v is not None]


def _model(model: type[M], value: Any) -> M:
    try:
        return model.model_validate(value if isinstance(value, dict) else {})
    except ValidationError:
        return model()


def _model_list(model: type[M], items: Any, **defaults: Any) -> list[M]:
    """Validate each item, skipping the ones the model rejects."""
    if not isinstance(items, list):
        return []
    parsed: list[M] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        try:
            parsed.append(model.model_validate({**defaults, **item}))
        except ValidationError as exc:
            logger.debug("reply_item_skipped", model=model.__name__, errors=exc.error_count())
    return parsed
