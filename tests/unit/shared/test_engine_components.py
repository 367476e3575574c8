"""Tests for the engine building blocks.

Covers PerformanceTracker, RateLimiter, ResultCache, RequestQueue,
MetricsAggregator, ProviderRegistry and ProviderSelector.
"""

from __future__ import annotations

import asyncio

import pytest

from conftest import FakeClock, StubProvider, make_generation_request
from kodex_ai.domain.enums import Operation, RequestType
from kodex_ai.shared.engine.cache import ResultCache, fingerprint
from kodex_ai.shared.engine.metrics import MetricsAggregator
from kodex_ai.shared.engine.performance import PerformanceTracker
from kodex_ai.shared.engine.rate_limiter import RateLimiter
from kodex_ai.shared.engine.registry import ProviderRegistry
from kodex_ai.shared.engine.request_queue import QueuedRequest, RequestQueue
from kodex_ai.shared.engine.selector import ProviderSelector
from kodex_ai.shared.engine.types import CacheConfig, RateLimitConfig, SelectorConfig


# ═══════════════════════════════════════════════════════════════
#  PerformanceTracker
# ═══════════════════════════════════════════════════════════════
class TestPerformanceTracker:
    def test_defaults_for_unknown_provider(self) -> None:
        perf = PerformanceTracker().get("claude")
        assert perf.avg_response_time_ms == 0.0
        assert perf.success_rate == 1.0
        assert perf.last_used_at == 0.0

    def test_ema_response_time(self) -> None:
        tracker = PerformanceTracker()
        tracker.record_outcome("claude", 1000.0, True)
        assert tracker.get("claude").avg_response_time_ms == pytest.approx(100.0)
        tracker.record_outcome("claude", 1000.0, True)
        assert tracker.get("claude").avg_response_time_ms == pytest.approx(190.0)

    def test_ema_success_rate(self) -> None:
        tracker = PerformanceTracker()
        tracker.record_outcome("claude", 10.0, False)
        assert tracker.get("claude").success_rate == pytest.approx(0.9)
        tracker.record_outcome("claude", 10.0, False)
        assert tracker.get("claude").success_rate == pytest.approx(0.81)
        tracker.record_outcome("claude", 10.0, True)
        assert tracker.get("claude").success_rate == pytest.approx(0.829)

    def test_availability_penalty_floors_at_zero(self) -> None:
        tracker = PerformanceTracker()
        for _ in range(12):
            tracker.penalize_availability("openai")
        assert tracker.get("openai").success_rate == 0.0

    def test_get_returns_copy(self) -> None:
        tracker = PerformanceTracker()
        tracker.record_outcome("claude", 10.0, True)
        perf = tracker.get("claude")
        perf.success_rate = 0.0
        assert tracker.get("claude").success_rate == 1.0

    def test_reset_single_and_all(self) -> None:
        tracker = PerformanceTracker()
        tracker.record_outcome("claude", 10.0, False)
        tracker.record_outcome("openai", 10.0, False)
        tracker.reset("claude")
        assert "claude" not in tracker.snapshot()
        assert "openai" in tracker.snapshot()
        tracker.reset()
        assert tracker.snapshot() == {}


# ═══════════════════════════════════════════════════════════════
#  RateLimiter
# ═══════════════════════════════════════════════════════════════
class TestRateLimiter:
    def test_admits_up_to_minute_limit(self, clock: FakeClock) -> None:
        limiter = RateLimiter(
            RateLimitConfig(requests_per_minute=5), max_queue_size=10, clock=clock
        )
        assert all(limiter.check_and_admit() for _ in range(5))
        assert limiter.check_and_admit() is False

    def test_minute_window_slides(self, clock: FakeClock) -> None:
        limiter = RateLimiter(
            RateLimitConfig(requests_per_minute=2), max_queue_size=10, clock=clock
        )
        assert limiter.check_and_admit()
        clock.advance(30)
        assert limiter.check_and_admit()
        assert limiter.check_and_admit() is False
        clock.advance(30)
        # First admission is now exactly 60s old and falls out of the window
        assert limiter.check_and_admit() is True
        assert limiter.check_and_admit() is False

    def test_hour_limit_applies_across_minutes(self, clock: FakeClock) -> None:
        limiter = RateLimiter(
            RateLimitConfig(requests_per_minute=10, requests_per_hour=3),
            max_queue_size=10,
            clock=clock,
        )
        for _ in range(3):
            assert limiter.check_and_admit()
            clock.advance(61)
        assert limiter.check_and_admit() is False
        clock.advance(3600)
        assert limiter.check_and_admit() is True

    def test_recorded_admission_counts_without_check(self, clock: FakeClock) -> None:
        limiter = RateLimiter(
            RateLimitConfig(requests_per_minute=1), max_queue_size=10, clock=clock
        )
        assert limiter.check_and_admit()
        limiter.record_admission()

        assert limiter.usage()["minute"] == 2
        assert limiter.check_and_admit() is False
        clock.advance(60)
        assert limiter.usage()["minute"] == 0

    def test_day_limit(self, clock: FakeClock) -> None:
        limiter = RateLimiter(
            RateLimitConfig(requests_per_minute=10, requests_per_hour=10, requests_per_day=1),
            max_queue_size=10,
            clock=clock,
        )
        assert limiter.check_and_admit()
        clock.advance(7200)
        assert limiter.check_and_admit() is False

    def test_queue_length_blocks_admission(self, clock: FakeClock) -> None:
        limiter = RateLimiter(RateLimitConfig(), max_queue_size=2, clock=clock)
        assert limiter.check_and_admit(queue_length=1) is True
        assert limiter.check_and_admit(queue_length=2) is False

    def test_rejection_does_not_consume_capacity(self, clock: FakeClock) -> None:
        limiter = RateLimiter(
            RateLimitConfig(requests_per_minute=1), max_queue_size=1, clock=clock
        )
        assert limiter.check_and_admit(queue_length=1) is False
        assert limiter.usage()["minute"] == 0
        assert limiter.check_and_admit(queue_length=0) is True
        assert limiter.usage() == {"minute": 1, "hour": 1, "day": 1}

    def test_window_never_exceeds_limit(self, clock: FakeClock) -> None:
        limiter = RateLimiter(
            RateLimitConfig(requests_per_minute=3), max_queue_size=10, clock=clock
        )
        for _ in range(200):
            limiter.check_and_admit()
            clock.advance(1)
            assert limiter.usage()["minute"] <= 3


# ═══════════════════════════════════════════════════════════════
#  ResultCache
# ═══════════════════════════════════════════════════════════════
class TestResultCache:
    def test_hit_within_ttl(self, clock: FakeClock) -> None:
        cache = ResultCache(CacheConfig(ttl_s=5), clock=clock)
        cache.set("k", "v")
        clock.advance(5)
        assert cache.get("k") == "v"

    def test_expires_after_ttl(self, clock: FakeClock) -> None:
        cache = ResultCache(CacheConfig(ttl_s=5), clock=clock)
        cache.set("k", "v")
        clock.advance(5.1)
        assert cache.get("k") is None
        assert len(cache) == 0

    def test_bounded_size_evicts_oldest(self, clock: FakeClock) -> None:
        cache = ResultCache(CacheConfig(max_size=3), clock=clock)
        for i in range(10):
            cache.set(f"k{i}", i)
            assert len(cache) <= 3
        assert cache.get("k6") is None
        assert [cache.get(f"k{i}") for i in (7, 8, 9)] == [7, 8, 9]

    def test_overwrite_refreshes_position(self, clock: FakeClock) -> None:
        cache = ResultCache(CacheConfig(max_size=2), clock=clock)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.set("a", 3)
        cache.set("c", 4)
        assert cache.get("a") == 3
        assert cache.get("b") is None

    def test_disabled_cache_always_misses(self, clock: FakeClock) -> None:
        cache = ResultCache(CacheConfig(enabled=False), clock=clock)
        cache.set("k", "v")
        assert cache.get("k") is None
        assert len(cache) == 0

    def test_clear(self, clock: FakeClock) -> None:
        cache = ResultCache(CacheConfig(), clock=clock)
        cache.set("k", "v")
        cache.clear()
        assert cache.get("k") is None

    def test_fingerprint_is_structural(self) -> None:
        a = fingerprint("code-analysis", {"code": "x", "language": "py"})
        b = fingerprint("code-analysis", {"language": "py", "code": "x"})
        assert a == b
        assert a.startswith("code-analysis:")
        assert fingerprint("code-explanation", {"code": "x", "language": "py"}) != a

    def test_fingerprint_of_models(self) -> None:
        assert fingerprint("code-generation", make_generation_request("A")) == fingerprint(
            "code-generation", make_generation_request("A")
        )
        assert fingerprint("code-generation", make_generation_request("A")) != fingerprint(
            "code-generation", make_generation_request("B")
        )


# ═══════════════════════════════════════════════════════════════
#  RequestQueue
# ═══════════════════════════════════════════════════════════════
def _queued(loop: asyncio.AbstractEventLoop, rid: str, priority: int) -> QueuedRequest:
    return QueuedRequest(
        id=rid,
        operation=Operation.GENERATE_CODE,
        payload=None,
        future=loop.create_future(),
        enqueued_at=0.0,
        priority=priority,
    )


class TestRequestQueue:
    @pytest.mark.asyncio
    async def test_drains_in_priority_order(self) -> None:
        loop = asyncio.get_running_loop()
        queue = RequestQueue()
        for rid, prio in (("a", 1), ("b", 5), ("c", 3)):
            queue.push(_queued(loop, rid, prio))
        assert [queue.pop().priority for _ in range(3)] == [5, 3, 1]  # type: ignore[union-attr]
        assert queue.pop() is None

    @pytest.mark.asyncio
    async def test_fifo_among_equal_priorities(self) -> None:
        loop = asyncio.get_running_loop()
        queue = RequestQueue()
        for rid, prio in (("a", 2), ("b", 2), ("c", 9), ("d", 2)):
            queue.push(_queued(loop, rid, prio))
        assert [queue.pop().id for _ in range(4)] == ["c", "a", "b", "d"]  # type: ignore[union-attr]

    @pytest.mark.asyncio
    async def test_push_front_jumps_the_line(self) -> None:
        loop = asyncio.get_running_loop()
        queue = RequestQueue()
        queue.push(_queued(loop, "high", 9))
        queue.push_front(_queued(loop, "retry", 1))
        assert queue.pop().id == "retry"  # type: ignore[union-attr]

    @pytest.mark.asyncio
    async def test_drain_empties_queue(self) -> None:
        loop = asyncio.get_running_loop()
        queue = RequestQueue()
        queue.push(_queued(loop, "a", 1))
        queue.push(_queued(loop, "b", 1))
        assert [r.id for r in queue.drain()] == ["a", "b"]
        assert len(queue) == 0


# ═══════════════════════════════════════════════════════════════
#  MetricsAggregator
# ═══════════════════════════════════════════════════════════════
class TestMetricsAggregator:
    def test_counts_and_running_mean(self) -> None:
        metrics = MetricsAggregator()
        metrics.record_attempt("claude", 100.0, True)
        metrics.record_attempt("claude", 200.0, True)
        metrics.record_attempt("openai", 600.0, False, error_type="HTTPStatusError")
        snap = metrics.snapshot()
        assert snap.total_requests == 3
        assert snap.successful_requests == 2
        assert snap.failed_requests == 1
        assert snap.average_response_time_ms == pytest.approx(300.0)
        assert snap.provider_usage == {"claude": 2, "openai": 1}
        assert snap.errors_by_type == {"HTTPStatusError": 1}

    def test_unknown_provider_and_errors(self) -> None:
        metrics = MetricsAggregator()
        metrics.record_attempt(None, 1.0, False)
        metrics.record_error("QueueTimeoutError")
        snap = metrics.snapshot()
        assert snap.provider_usage == {"unknown": 1}
        assert snap.errors_by_type == {"UnknownError": 1, "QueueTimeoutError": 1}
        assert snap.total_requests == 1

    def test_snapshot_is_isolated(self) -> None:
        metrics = MetricsAggregator()
        metrics.record_attempt("claude", 1.0, True)
        snap = metrics.snapshot()
        snap.provider_usage["claude"] = 99
        assert metrics.snapshot().provider_usage["claude"] == 1

    def test_usage_cache_and_reset(self) -> None:
        metrics = MetricsAggregator()
        metrics.record_usage(120, 0.5)
        metrics.record_usage(30)
        metrics.record_cache_lookup(True)
        metrics.record_cache_lookup(False)
        snap = metrics.snapshot()
        assert (snap.tokens_used, snap.cost) == (150, 0.5)
        assert (snap.cache_hits, snap.cache_misses) == (1, 1)
        metrics.reset()
        assert metrics.snapshot().tokens_used == 0


# ═══════════════════════════════════════════════════════════════
#  ProviderRegistry
# ═══════════════════════════════════════════════════════════════
class TestProviderRegistry:
    def test_rejects_duplicate_names(self) -> None:
        registry = ProviderRegistry([StubProvider("claude")])
        with pytest.raises(ValueError):
            registry.register(StubProvider("claude"))

    @pytest.mark.asyncio
    async def test_status_treats_probe_errors_as_unavailable(self) -> None:
        registry = ProviderRegistry(
            [
                StubProvider("claude"),
                StubProvider("openai", available=False),
                StubProvider("broken", probe_error=ConnectionError("down")),
            ]
        )
        assert await registry.status() == {"claude": True, "openai": False, "broken": False}
        assert registry.names() == ["claude", "openai", "broken"]

    @pytest.mark.asyncio
    async def test_close_closes_every_provider(self) -> None:
        providers = [StubProvider("claude"), StubProvider("fallback")]
        await ProviderRegistry(providers).close()
        assert all(p.closed for p in providers)


# ═══════════════════════════════════════════════════════════════
#  ProviderSelector
# ═══════════════════════════════════════════════════════════════
def _selector(
    providers: list[StubProvider],
    clock: FakeClock,
    tracker: PerformanceTracker | None = None,
) -> tuple[ProviderSelector, PerformanceTracker]:
    tracker = tracker or PerformanceTracker()
    selector = ProviderSelector(
        ProviderRegistry(providers), tracker, SelectorConfig(), clock=clock
    )
    return selector, tracker


class TestProviderSelector:
    @pytest.mark.asyncio
    async def test_prefers_first_in_preference_list(self, clock: FakeClock) -> None:
        selector, _ = _selector(
            [StubProvider("fallback"), StubProvider("openai"), StubProvider("claude")], clock
        )
        chosen = await selector.select(RequestType.CODE_GENERATION)
        assert chosen is not None and chosen.name == "claude"

    @pytest.mark.asyncio
    async def test_returns_none_when_nothing_available(self, clock: FakeClock) -> None:
        selector, _ = _selector(
            [StubProvider("claude", available=False), StubProvider("fallback", available=False)],
            clock,
        )
        assert await selector.select(RequestType.CODE_ANALYSIS) is None

    @pytest.mark.asyncio
    async def test_probe_failure_penalizes_success_rate(self, clock: FakeClock) -> None:
        selector, tracker = _selector(
            [StubProvider("claude", probe_error=TimeoutError("probe")), StubProvider("openai")],
            clock,
        )
        chosen = await selector.select(RequestType.CODE_GENERATION)
        assert chosen is not None and chosen.name == "openai"
        assert tracker.get("claude").success_rate == pytest.approx(0.9)
        await selector.select(RequestType.CODE_GENERATION)
        assert tracker.get("claude").success_rate == pytest.approx(0.8)

    @pytest.mark.asyncio
    async def test_fallback_penalty_only_with_alternatives(self, clock: FakeClock) -> None:
        selector, _ = _selector([StubProvider("fallback"), StubProvider("mystery")], clock)
        # fallback: 10 + 20 + 5 - 50 = -15; mystery: 0 + 20 + 5 = 25
        chosen = await selector.select(RequestType.CODE_GENERATION)
        assert chosen is not None and chosen.name == "mystery"

        alone, _ = _selector([StubProvider("fallback")], clock)
        chosen = await alone.select(RequestType.CODE_GENERATION)
        assert chosen is not None and chosen.name == "fallback"

    @pytest.mark.asyncio
    async def test_poor_performance_loses_preference(self, clock: FakeClock) -> None:
        tracker = PerformanceTracker()
        for _ in range(20):
            tracker.record_outcome("claude", 30_000.0, False)
        selector, _ = _selector([StubProvider("claude"), StubProvider("openai")], clock, tracker)
        # claude: 30 + ~2.4 - 10 + 5; openai: 20 + 20 + 5
        chosen = await selector.select(RequestType.CODE_GENERATION)
        assert chosen is not None and chosen.name == "openai"

    @pytest.mark.asyncio
    async def test_marks_winner_as_used(self, clock: FakeClock) -> None:
        selector, tracker = _selector([StubProvider("claude"), StubProvider("openai")], clock)
        await selector.select(RequestType.CODE_GENERATION)
        assert tracker.get("claude").last_used_at == clock.now
        assert tracker.get("openai").last_used_at == 0.0

    @pytest.mark.asyncio
    async def test_freshness_bonus_is_capped(self, clock: FakeClock) -> None:
        selector, tracker = _selector([StubProvider("claude")], clock)
        tracker.mark_used("claude", clock.now - 30 * 60)
        ranked = await selector.rank(RequestType.CODE_GENERATION)
        # 30 preference + 20 success + 5 capped freshness
        assert ranked[0].score == pytest.approx(55.0)

    @pytest.mark.asyncio
    async def test_tie_keeps_registration_order(self, clock: FakeClock) -> None:
        selector, _ = _selector([StubProvider("alpha"), StubProvider("beta")], clock)
        ranked = await selector.rank(RequestType.CODE_EXPLANATION)
        assert ranked[0].score == ranked[1].score
        assert [r.name for r in ranked] == ["alpha", "beta"]

    @pytest.mark.asyncio
    async def test_repeated_selection_is_deterministic(self, clock: FakeClock) -> None:
        selector, _ = _selector(
            [StubProvider("openai"), StubProvider("claude"), StubProvider("fallback")], clock
        )
        names = []
        for _ in range(5):
            chosen = await selector.select(RequestType.CODE_IMPROVEMENT)
            assert chosen is not None
            names.append(chosen.name)
        assert names == ["claude"] * 5
