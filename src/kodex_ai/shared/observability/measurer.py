"""Default ``PerformanceMeasurer`` — times provider calls into a histogram."""

from __future__ import annotations

import time
from typing import Awaitable, Callable, TypeVar

import structlog

from kodex_ai.ports.outbound import PerformanceMeasurer
from kodex_ai.shared.observability.metrics import AI_PROVIDER_CALL_SECONDS

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class PrometheusPerformanceMeasurer(PerformanceMeasurer):
    async def measure(self, name: str, fn: Callable[[], Awaitable[T]]) -> T:
        start = time.perf_counter()
        try:
            return await fn()
        finally:
            elapsed = time.perf_counter() - start
            AI_PROVIDER_CALL_SECONDS.labels(name=name).observe(elapsed)
            logger.debug("provider_call_measured", name=name, elapsed_ms=round(elapsed * 1000, 2))
