"""Per-provider performance tracker.

Keeps an exponential moving average of response time and success rate for
each provider.  The selector reads these records when scoring candidates.
"""

from __future__ import annotations

import threading
from dataclasses import replace

import structlog

from kodex_ai.shared.engine.types import ProviderPerformance

logger = structlog.get_logger(__name__)

EMA_ALPHA = 0.1
AVAILABILITY_PENALTY = 0.1


class PerformanceTracker:
    """Thread-safe EMA tracker keyed by provider name."""

    def __init__(self, *, alpha: float = EMA_ALPHA) -> None:
        self._alpha = alpha
        self._records: dict[str, ProviderPerformance] = {}
        self._lock = threading.Lock()

    # ── Recording ────────────────────────────────────────────
    def record_outcome(self, provider: str, duration_ms: float, success: bool) -> None:
        with self._lock:
            perf = self._get_or_create(provider)
            a = self._alpha
            perf.avg_response_time_ms = (1 - a) * perf.avg_response_time_ms + a * duration_ms
            perf.success_rate = _clamp((1 - a) * perf.success_rate + a * (1.0 if success else 0.0))

    def penalize_availability(self, provider: str, amount: float = AVAILABILITY_PENALTY) -> None:
        """Lower the success rate after a failed availability probe."""
        with self._lock:
            perf = self._get_or_create(provider)
            perf.success_rate = max(0.0, perf.success_rate - amount)
        logger.debug(
            "provider_availability_penalized",
            provider=provider,
            success_rate=round(perf.success_rate, 4),
        )

    def mark_used(self, provider: str, now: float) -> None:
        with self._lock:
            self._get_or_create(provider).last_used_at = now

    # ── Reading ──────────────────────────────────────────────
    def get(self, provider: str) -> ProviderPerformance:
        """Return a copy of the provider's record (defaults if never seen)."""
        with self._lock:
            record = self._records.get(provider)
            return replace(record) if record else ProviderPerformance()

    def snapshot(self) -> dict[str, ProviderPerformance]:
        with self._lock:
            return {name: replace(perf) for name, perf in self._records.items()}

    def reset(self, provider: str | None = None) -> None:
        """Forget one provider, or every record when ``provider`` is None."""
        with self._lock:
            if provider is None:
                self._records.clear()
            else:
                self._records.pop(provider, None)
        logger.info("provider_performance_reset", provider=provider or "*")

    # ── Internals ────────────────────────────────────────────
    def _get_or_create(self, provider: str) -> ProviderPerformance:
        """Caller holds lock."""
        perf = self._records.get(provider)
        if perf is None:
            perf = self._records[provider] = ProviderPerformance()
        return perf


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))
