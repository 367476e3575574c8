"""Provider selector — scores available providers and picks the best one.

Score components (higher is better):

    preference   (len(preferences) - index) * 10, 0 when not listed
    performance  success_rate * 20 - min(avg_response_ms / 1000, 10)
    freshness    min(minutes since last use, 5)
    fallback     -50 for the last-resort provider when others are available

Ties keep registration order.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable

import structlog

from kodex_ai.domain.enums import RequestType
from kodex_ai.ports.outbound import AIProvider
from kodex_ai.shared.engine.performance import PerformanceTracker
from kodex_ai.shared.engine.registry import ProviderRegistry
from kodex_ai.shared.engine.types import SelectorConfig

logger = structlog.get_logger(__name__)

PREFERENCE_WEIGHT = 10.0
SUCCESS_WEIGHT = 20.0
MAX_LATENCY_PENALTY = 10.0
MAX_FRESHNESS_BONUS = 5.0
FALLBACK_PENALTY = 50.0


@dataclass
class ScoredProvider:
    provider: AIProvider
    score: float

    @property
    def name(self) -> str:
        return self.provider.name


class ProviderSelector:
    """Selects one provider per request from the registry."""

    def __init__(
        self,
        registry: ProviderRegistry,
        tracker: PerformanceTracker,
        config: SelectorConfig | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._registry = registry
        self._tracker = tracker
        self._config = config or SelectorConfig()
        self._clock = clock

    async def select(self, request_type: RequestType | str) -> AIProvider | None:
        """Return the best available provider, or None when none is available.

        The winner's ``last_used_at`` is updated before returning.
        """
        ranked = await self.rank(request_type)
        if not ranked:
            logger.warning(
                "no_available_providers",
                request_type=str(getattr(request_type, "value", request_type)),
                total_configured=len(self._registry),
            )
            return None

        best = ranked[0]
        self._tracker.mark_used(best.name, self._clock())
        logger.debug("provider_selected", provider=best.name, score=round(best.score, 3))
        return best.provider

    async def rank(self, request_type: RequestType | str) -> list[ScoredProvider]:
        """All available providers, best first.  Has no side effects on last-use."""
        available = await self._available_providers()
        preferences = self._config.preference_for(request_type)
        now = self._clock()

        scored = [
            ScoredProvider(
                provider=p,
                score=self._score(p.name, preferences, len(available), now),
            )
            for p in available
        ]
        # sorted() is stable with reverse=True, so ties keep registration order
        return sorted(scored, key=lambda s: s.score, reverse=True)

    # ── Scoring ──────────────────────────────────────────────
    def _score(
        self,
        name: str,
        preferences: tuple[str, ...],
        available_count: int,
        now: float,
    ) -> float:
        perf = self._tracker.get(name)
        score = 0.0

        if name in preferences:
            score += (len(preferences) - preferences.index(name)) * PREFERENCE_WEIGHT

        score += perf.success_rate * SUCCESS_WEIGHT
        score -= min(perf.avg_response_time_ms / 1000.0, MAX_LATENCY_PENALTY)

        minutes_idle = (now - perf.last_used_at) / 60.0
        score += min(minutes_idle, MAX_FRESHNESS_BONUS)

        if name == self._config.fallback_provider and available_count > 1:
            score -= FALLBACK_PENALTY

        return score

    # ── Availability ─────────────────────────────────────────
    async def _available_providers(self) -> list[AIProvider]:
        available: list[AIProvider] = []
        for provider in self._registry:
            try:
                if await self._registry.probe(provider):
                    available.append(provider)
            except Exception as exc:
                logger.warning(
                    "provider_availability_probe_failed",
                    provider=provider.name,
                    error=f"{type(exc).__name__}: {exc}",
                )
                self._tracker.penalize_availability(provider.name)
        return available
