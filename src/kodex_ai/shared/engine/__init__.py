"""Multi-provider AI request orchestration engine.

Provides admission control, result caching, scored provider selection,
a retrying priority queue, and performance/metrics tracking.
"""

from kodex_ai.shared.engine.cache import ResultCache, fingerprint
from kodex_ai.shared.engine.engine import AIServiceEngine
from kodex_ai.shared.engine.metrics import MetricsAggregator
from kodex_ai.shared.engine.performance import PerformanceTracker
from kodex_ai.shared.engine.rate_limiter import RateLimiter
from kodex_ai.shared.engine.registry import ProviderRegistry
from kodex_ai.shared.engine.request_queue import QueuedRequest, RequestQueue
from kodex_ai.shared.engine.selector import ProviderSelector
from kodex_ai.shared.engine.types import (
    CacheConfig,
    EngineConfig,
    EngineMetrics,
    ProviderPerformance,
    QueueConfig,
    RateLimitConfig,
    SelectorConfig,
)

__all__ = [
    "AIServiceEngine",
    "CacheConfig",
    "EngineConfig",
    "EngineMetrics",
    "MetricsAggregator",
    "PerformanceTracker",
    "ProviderPerformance",
    "ProviderRegistry",
    "ProviderSelector",
    "QueueConfig",
    "QueuedRequest",
    "RateLimitConfig",
    "RateLimiter",
    "RequestQueue",
    "ResultCache",
    "SelectorConfig",
    "fingerprint",
]
