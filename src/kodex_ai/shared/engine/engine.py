"""AI service engine — the main entry-point for AI requests.

Composes RateLimiter, ResultCache, ProviderSelector, PerformanceTracker and
MetricsAggregator into a single orchestration layer.  Callers invoke one of
the four operations; the engine admits or defers the call, serves repeats
from the cache, picks a provider, executes it and records the outcome.

Deferred calls wait in a priority queue drained by one background worker
task.  Dequeueing is the admission decision: the worker runs each item
without re-checking the rate windows, rejects requests that waited past
``queue.timeout_s`` and retries failures with linear backoff.

Usage::

    async with AIServiceEngine(providers, config) as engine:
        result = await engine.generate_code(request)
"""

from __future__ import annotations

import asyncio
import contextlib
import time
import uuid
from typing import Any, Callable, Sequence, cast

import structlog

from kodex_ai.domain.enums import Operation, RequestType
from kodex_ai.domain.exceptions import (
    EngineShutdownError,
    NoProviderAvailableError,
    ProviderExecutionError,
    QueueFullError,
    QueueTimeoutError,
    RetriesExhaustedError,
)
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
from kodex_ai.ports.outbound import AIProvider, PerformanceMeasurer
from kodex_ai.shared.engine.cache import ResultCache, fingerprint
from kodex_ai.shared.engine.metrics import UNKNOWN_PROVIDER, MetricsAggregator
from kodex_ai.shared.engine.performance import PerformanceTracker
from kodex_ai.shared.engine.rate_limiter import RateLimiter
from kodex_ai.shared.engine.registry import ProviderRegistry
from kodex_ai.shared.engine.request_queue import QueuedRequest, RequestQueue
from kodex_ai.shared.engine.selector import ProviderSelector
from kodex_ai.shared.engine.types import EngineConfig, EngineMetrics, ProviderPerformance
from kodex_ai.shared.observability.measurer import PrometheusPerformanceMeasurer
from kodex_ai.shared.observability.metrics import (
    AI_CACHE_LOOKUPS,
    AI_QUEUE_DEPTH,
    AI_QUEUE_REJECTIONS,
    AI_REQUEST_LATENCY,
    AI_REQUESTS_DEFERRED,
    AI_REQUESTS_TOTAL,
)

logger = structlog.get_logger(__name__)


class AIServiceEngine:
    """Long-lived orchestration engine; construct once and pass it around."""

    def __init__(
        self,
        providers: Sequence[AIProvider] | ProviderRegistry,
        config: EngineConfig | None = None,
        *,
        measurer: PerformanceMeasurer | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = config or EngineConfig()
        self._clock = clock
        self._registry = (
            providers if isinstance(providers, ProviderRegistry) else ProviderRegistry(providers)
        )
        self._measurer = measurer or PrometheusPerformanceMeasurer()

        self._tracker = PerformanceTracker()
        self._metrics = MetricsAggregator()
        self._cache = ResultCache(self._config.caching, clock=clock)
        self._rate_limiter = RateLimiter(
            self._config.rate_limiting,
            max_queue_size=self._config.queue.max_size,
            clock=clock,
        )
        self._selector = ProviderSelector(
            self._registry,
            self._tracker,
            self._config.selector,
            clock=clock,
        )

        self._queue = RequestQueue()
        self._wakeup = asyncio.Event()
        self._worker: asyncio.Task[None] | None = None
        self._inflight: QueuedRequest | None = None
        self._closed = False

    # ── Public operations ────────────────────────────────────
    async def generate_code(
        self, request: CodeGenerationRequest, *, priority: int = 1
    ) -> CodeGenerationResult:
        return cast(CodeGenerationResult, await self._dispatch(Operation.GENERATE_CODE, request, priority))

    async def analyze_code(
        self, request: CodeAnalysisRequest, *, priority: int = 1
    ) -> CodeAnalysisResult:
        return cast(CodeAnalysisResult, await self._dispatch(Operation.ANALYZE_CODE, request, priority))

    async def explain_code(
        self, request: CodeExplanationRequest, *, priority: int = 1
    ) -> CodeExplanationResult:
        return cast(CodeExplanationResult, await self._dispatch(Operation.EXPLAIN_CODE, request, priority))

    async def suggest_improvements(
        self, request: ImprovementRequest, *, priority: int = 1
    ) -> ImprovementResult:
        return cast(
            ImprovementResult,
            await self._dispatch(Operation.SUGGEST_IMPROVEMENTS, request, priority),
        )

    async def submit(
        self, operation: Operation | str, request: Any, *, priority: int = 1
    ) -> Any:
        """Queue a request explicitly, bypassing direct admission."""
        return await self._enqueue(Operation(operation), request, priority)

    # ── Status / metrics surface ─────────────────────────────
    def get_metrics(self) -> EngineMetrics:
        return self._metrics.snapshot()

    def get_available_providers(self) -> list[str]:
        """Names of every registered provider, available or not."""
        return self._registry.names()

    async def get_provider_status(self) -> dict[str, bool]:
        return await self._registry.status()

    def get_provider_performance(self) -> dict[str, ProviderPerformance]:
        return self._tracker.snapshot()

    def rate_limit_usage(self) -> dict[str, int]:
        return self._rate_limiter.usage()

    @property
    def queue_size(self) -> int:
        return len(self._queue)

    @property
    def registry(self) -> ProviderRegistry:
        return self._registry

    def clear_cache(self) -> None:
        self._cache.clear()
        logger.info("cache_cleared")

    def reset_metrics(self) -> None:
        self._metrics.reset()
        logger.info("metrics_reset")

    def reset_performance(self, provider: str | None = None) -> None:
        self._tracker.reset(provider)

    # ── Lifecycle ────────────────────────────────────────────
    async def start(self) -> None:
        self._closed = False
        self._ensure_worker()

    async def stop(self) -> None:
        """Stop the worker and reject everything still queued."""
        self._closed = True
        worker, self._worker = self._worker, None
        if worker is not None:
            worker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await worker

        pending = self._queue.drain()
        if self._inflight is not None:
            pending.insert(0, self._inflight)
            self._inflight = None
        for item in pending:
            self._reject(item, EngineShutdownError(), reason="shutdown")
        AI_QUEUE_DEPTH.set(0)
        logger.info("engine_stopped", rejected=len(pending))

    async def __aenter__(self) -> AIServiceEngine:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()

    # ── Admission ────────────────────────────────────────────
    async def _dispatch(self, operation: Operation, request: Any, priority: int) -> Any:
        if self._rate_limiter.check_and_admit(len(self._queue)):
            return await self._execute(operation, request)

        AI_REQUESTS_DEFERRED.inc()
        logger.info(
            "request_deferred",
            operation=operation.value,
            queue_length=len(self._queue),
            priority=priority,
        )
        return await self._enqueue(operation, request, priority)

    async def _enqueue(self, operation: Operation, request: Any, priority: int) -> Any:
        if self._closed:
            raise EngineShutdownError()

        max_size = self._config.queue.max_size
        if len(self._queue) >= max_size:
            self._metrics.record_error(QueueFullError.__name__)
            AI_QUEUE_REJECTIONS.labels(reason="full").inc()
            logger.warning("queue_full", operation=operation.value, max_size=max_size)
            raise QueueFullError(max_size)

        item = QueuedRequest(
            id=uuid.uuid4().hex,
            operation=operation,
            payload=request,
            future=asyncio.get_running_loop().create_future(),
            enqueued_at=self._clock(),
            priority=priority,
        )
        self._queue.push(item)
        AI_QUEUE_DEPTH.set(len(self._queue))
        self._ensure_worker()
        self._wakeup.set()
        return await item.future

    # ── Execution ────────────────────────────────────────────
    async def _execute(self, operation: Operation, request: Any) -> Any:
        request_type = operation.request_type
        key = fingerprint(request_type.value, request)

        cached = self._cache.get(key)
        if self._cache.enabled:
            hit = cached is not None
            self._metrics.record_cache_lookup(hit)
            AI_CACHE_LOOKUPS.labels(result="hit" if hit else "miss").inc()
        if cached is not None:
            logger.debug("cache_hit", request_type=request_type.value)
            return cached

        start = time.perf_counter()
        provider = await self._selector.select(request_type)
        if provider is None:
            error = NoProviderAvailableError(request_type.value)
            self._record_attempt(request_type, None, start, error)
            raise error

        method = getattr(provider, operation.value)
        try:
            result = await self._measurer.measure(
                f"ai_{request_type.value}", lambda: method(request)
            )
        except Exception as exc:
            self._record_attempt(request_type, provider.name, start, exc)
            raise ProviderExecutionError(provider.name, f"{type(exc).__name__}: {exc}") from exc

        self._record_attempt(request_type, provider.name, start)
        usage = getattr(result, "usage", None)
        if usage is not None:
            self._metrics.record_usage(usage.tokens_used, usage.cost)
        self._cache.set(key, result)
        return result

    def _record_attempt(
        self,
        request_type: RequestType,
        provider: str | None,
        start: float,
        error: BaseException | None = None,
    ) -> None:
        duration_ms = (time.perf_counter() - start) * 1000
        success = error is None
        error_type = type(error).__name__ if error is not None else None

        self._metrics.record_attempt(provider, duration_ms, success, error_type=error_type)
        if provider is not None:
            self._tracker.record_outcome(provider, duration_ms, success)

        label = provider or UNKNOWN_PROVIDER
        AI_REQUESTS_TOTAL.labels(
            request_type=request_type.value,
            provider=label,
            status="success" if success else "failure",
        ).inc()
        AI_REQUEST_LATENCY.labels(request_type=request_type.value, provider=label).observe(
            duration_ms / 1000
        )

        log = logger.bind(
            request_type=request_type.value,
            provider=label,
            latency_ms=round(duration_ms, 1),
        )
        if success:
            log.info("ai_request_success")
        else:
            log.warning("ai_request_failed", error_type=error_type, error=str(error))

    # ── Worker ───────────────────────────────────────────────
    def _ensure_worker(self) -> None:
        if self._worker is None or self._worker.done():
            self._worker = asyncio.create_task(self._run_worker(), name="kodex-ai-queue-worker")

    async def _run_worker(self) -> None:
        cfg = self._config.queue
        logger.info("queue_worker_started")

        while True:
            self._wakeup.clear()
            item = self._queue.pop()
            AI_QUEUE_DEPTH.set(len(self._queue))

            if item is None:
                await self._wait_for_work(cfg.poll_interval_s)
                continue

            # Caller stopped waiting (cancelled); nothing to deliver
            if item.settled:
                continue

            now = self._clock()
            if now > item.deadline(cfg.timeout_s):
                waited = now - item.enqueued_at
                logger.warning(
                    "queued_request_timeout",
                    request_id=item.id,
                    operation=item.operation.value,
                    waited_s=round(waited, 2),
                )
                self._reject(item, QueueTimeoutError(waited, cfg.timeout_s), reason="timeout")
                continue

            # Dequeue is the admission decision; stamps keep usage accurate
            self._rate_limiter.record_admission()

            self._inflight = item
            try:
                result = await self._execute(item.operation, item.payload)
            except Exception as exc:
                self._inflight = None
                await self._handle_failure(item, exc)
                continue
            self._inflight = None

            if not item.settled:
                item.future.set_result(result)

    async def _handle_failure(self, item: QueuedRequest, exc: Exception) -> None:
        # Caller cancelled; drop without retrying
        if item.settled:
            return

        cfg = self._config.queue
        if item.retries < cfg.retries:
            item.retries += 1
            self._queue.push_front(item)
            delay = cfg.retry_backoff_s * item.retries
            logger.warning(
                "queued_request_retry",
                request_id=item.id,
                operation=item.operation.value,
                retry=item.retries,
                max_retries=cfg.retries,
                delay_s=delay,
                error=str(exc),
            )
            await asyncio.sleep(delay)
            return

        error = RetriesExhaustedError(item.retries + 1, str(exc))
        error.__cause__ = exc
        logger.error(
            "queued_request_failed",
            request_id=item.id,
            operation=item.operation.value,
            attempts=item.retries + 1,
            error=str(exc),
        )
        self._reject(item, error, reason="retries_exhausted")

    async def _wait_for_work(self, timeout: float) -> None:
        with contextlib.suppress(asyncio.TimeoutError):
            await asyncio.wait_for(self._wakeup.wait(), timeout)

    def _reject(self, item: QueuedRequest, error: Exception, *, reason: str) -> None:
        if item.settled:
            return
        item.future.set_exception(error)
        self._metrics.record_error(type(error).__name__)
        AI_QUEUE_REJECTIONS.labels(reason=reason).inc()
