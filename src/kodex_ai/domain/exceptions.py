"""Domain-specific exception hierarchy.

All exceptions inherit from ``DomainError`` so callers can catch the entire
family in one clause while still discriminating on subclass.  The ``code``
attribute identifies which failure bucket a rejected request falls into.
"""

from __future__ import annotations


class DomainError(Exception):
    """Base class for all domain-layer errors."""

    def __init__(self, message: str, *, code: str = "DOMAIN_ERROR") -> None:
        self.message = message
        self.code = code
        super().__init__(message)


# ── Provider selection / execution ───────────────────────────
class NoProviderAvailableError(DomainError):
    """Every registered provider failed its availability probe."""

    retryable = True

    def __init__(self, request_type: str) -> None:
        self.request_type = request_type
        super().__init__(
            f"No available AI providers for {request_type!r}",
            code="NO_PROVIDER_AVAILABLE",
        )


class ProviderExecutionError(DomainError):
    def __init__(self, provider: str, message: str) -> None:
        self.provider = provider
        super().__init__(f"[{provider}] {message}", code="PROVIDER_EXECUTION_FAILED")


# ── Admission / queue ────────────────────────────────────────
class QueueFullError(DomainError):
    def __init__(self, max_size: int) -> None:
        self.max_size = max_size
        super().__init__(
            f"Request queue is full ({max_size} pending)",
            code="QUEUE_FULL",
        )


class QueueTimeoutError(DomainError):
    def __init__(self, waited_s: float, timeout_s: float) -> None:
        self.waited_s = waited_s
        self.timeout_s = timeout_s
        super().__init__(
            f"Request timeout: queued {waited_s:.1f}s, limit {timeout_s:g}s",
            code="QUEUE_TIMEOUT",
        )


class RetriesExhaustedError(DomainError):
    def __init__(self, attempts: int, last_error: str) -> None:
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"Request failed after {attempts} attempts: {last_error}",
            code="RETRIES_EXHAUSTED",
        )


class EngineShutdownError(DomainError):
    def __init__(self) -> None:
        super().__init__(
            "Engine stopped before the queued request ran",
            code="ENGINE_SHUTDOWN",
        )
