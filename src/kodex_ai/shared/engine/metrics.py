"""Aggregate engine counters exposed through ``get_metrics()``."""

from __future__ import annotations

import threading
from dataclasses import replace

from kodex_ai.shared.engine.types import EngineMetrics

UNKNOWN_PROVIDER = "unknown"


class MetricsAggregator:
    def __init__(self) -> None:
        self._metrics = EngineMetrics()
        self._lock = threading.Lock()

    def record_attempt(
        self,
        provider: str | None,
        duration_ms: float,
        success: bool,
        *,
        error_type: str | None = None,
    ) -> None:
        """Count one completed provider attempt and fold its latency into the mean."""
        with self._lock:
            m = self._metrics
            m.total_requests += 1
            if success:
                m.successful_requests += 1
            else:
                m.failed_requests += 1
                key = error_type or "UnknownError"
                m.errors_by_type[key] = m.errors_by_type.get(key, 0) + 1

            n = m.total_requests
            m.average_response_time_ms = (m.average_response_time_ms * (n - 1) + duration_ms) / n

            name = provider or UNKNOWN_PROVIDER
            m.provider_usage[name] = m.provider_usage.get(name, 0) + 1

    def record_error(self, error_type: str) -> None:
        """Count a rejection that never reached a provider (timeout, shutdown, ...)."""
        with self._lock:
            errors = self._metrics.errors_by_type
            errors[error_type] = errors.get(error_type, 0) + 1

    def record_usage(self, tokens: int, cost: float | None = None) -> None:
        with self._lock:
            self._metrics.tokens_used += tokens
            self._metrics.cost += cost or 0.0

    def record_cache_lookup(self, hit: bool) -> None:
        with self._lock:
            if hit:
                self._metrics.cache_hits += 1
            else:
                self._metrics.cache_misses += 1

    def snapshot(self) -> EngineMetrics:
        with self._lock:
            m = self._metrics
            return replace(
                m,
                provider_usage=dict(m.provider_usage),
                errors_by_type=dict(m.errors_by_type),
            )

    def reset(self) -> None:
        with self._lock:
            self._metrics = EngineMetrics()
