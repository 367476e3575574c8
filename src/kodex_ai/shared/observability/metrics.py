"""Prometheus metrics for the AI orchestration engine."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram


# ── Request metrics ──────────────────────────────────────────
AI_REQUESTS_TOTAL = Counter(
    "ai_requests_total",
    "Provider attempts by request type, provider and outcome",
    ["request_type", "provider", "status"],
)

AI_REQUEST_LATENCY = Histogram(
    "ai_request_latency_seconds",
    "End-to-end latency of provider attempts",
    ["request_type", "provider"],
    buckets=(0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0),
)

AI_PROVIDER_CALL_SECONDS = Histogram(
    "ai_provider_call_seconds",
    "Duration of the provider call itself",
    ["name"],
    buckets=(0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0),
)

# ── Cache metrics ────────────────────────────────────────────
AI_CACHE_LOOKUPS = Counter(
    "ai_cache_lookups_total",
    "Result cache lookups",
    ["result"],  # hit / miss
)

# ── Queue metrics ────────────────────────────────────────────
AI_REQUESTS_DEFERRED = Counter(
    "ai_requests_deferred_total",
    "Requests deferred to the queue by admission control",
)

AI_QUEUE_DEPTH = Gauge(
    "ai_queue_depth",
    "Requests currently waiting in the queue",
)

AI_QUEUE_REJECTIONS = Counter(
    "ai_queue_rejections_total",
    "Queued or deferred requests rejected without a result",
    ["reason"],  # full / timeout / retries_exhausted / shutdown
)
