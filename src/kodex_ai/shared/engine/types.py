"""Core types for the AI request orchestration engine."""

from __future__ import annotations

from dataclasses import dataclass, field

from kodex_ai.domain.enums import RequestType

DEFAULT_PREFERENCE: tuple[str, ...] = ("claude", "openai", "fallback")


@dataclass(frozen=True)
class RateLimitConfig:
    """Admission ceilings per sliding window."""

    requests_per_minute: int = 60
    requests_per_hour: int = 1000
    requests_per_day: int = 10000


@dataclass(frozen=True)
class QueueConfig:
    """Deferred-request buffer settings.

    Attributes:
        max_size:         Hard cap on buffered requests.
        timeout_s:        Seconds after enqueue before a request is abandoned.
        retries:          Retry attempts after the first failed execution.
        retry_backoff_s:  Backoff unit; the n-th retry waits ``n * retry_backoff_s``.
        poll_interval_s:  Worker idle wait when there is nothing runnable.
    """

    max_size: int = 100
    timeout_s: float = 30.0
    retries: int = 3
    retry_backoff_s: float = 1.0
    poll_interval_s: float = 0.1


@dataclass(frozen=True)
class CacheConfig:
    enabled: bool = True
    ttl_s: float = 300.0
    max_size: int = 1000


@dataclass(frozen=True)
class SelectorConfig:
    """Per-request-type preference ordering plus the last-resort provider."""

    preferences: dict[RequestType, tuple[str, ...]] = field(
        default_factory=lambda: {rt: DEFAULT_PREFERENCE for rt in RequestType}
    )
    fallback_provider: str = "fallback"

    def preference_for(self, request_type: RequestType | str) -> tuple[str, ...]:
        try:
            return self.preferences[RequestType(request_type)]
        except (KeyError, ValueError):
            return DEFAULT_PREFERENCE


@dataclass(frozen=True)
class EngineConfig:
    rate_limiting: RateLimitConfig = field(default_factory=RateLimitConfig)
    queue: QueueConfig = field(default_factory=QueueConfig)
    caching: CacheConfig = field(default_factory=CacheConfig)
    selector: SelectorConfig = field(default_factory=SelectorConfig)


@dataclass
class ProviderPerformance:
    """Recency-weighted performance record for a single provider.

    ``last_used_at`` is in engine-clock seconds; 0 means never used.
    """

    avg_response_time_ms: float = 0.0
    success_rate: float = 1.0
    last_used_at: float = 0.0


@dataclass
class EngineMetrics:
    """Aggregate counters.  Returned to callers as a copy."""

    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    average_response_time_ms: float = 0.0
    tokens_used: int = 0
    cost: float = 0.0
    cache_hits: int = 0
    cache_misses: int = 0
    provider_usage: dict[str, int] = field(default_factory=dict)
    errors_by_type: dict[str, int] = field(default_factory=dict)
