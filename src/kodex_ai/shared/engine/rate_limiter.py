"""Global admission control over three sliding windows.

Each window keeps a deque of admission timestamps; entries older than the
window are evicted on every check and every recorded admission, so a deque
only ever holds one window of timestamps.  Requests run by the queue worker
are recorded with ``record_admission`` and may push a window past its limit.
"""

from __future__ import annotations

import threading
import time
from collections import deque
from typing import Callable

import structlog

from kodex_ai.shared.engine.types import RateLimitConfig

logger = structlog.get_logger(__name__)

MINUTE_S = 60.0
HOUR_S = 3600.0
DAY_S = 86400.0


class _Window:
    __slots__ = ("name", "span", "limit", "stamps")

    def __init__(self, name: str, span: float, limit: int) -> None:
        self.name = name
        self.span = span
        self.limit = limit
        self.stamps: deque[float] = deque()

    def evict(self, now: float) -> None:
        cutoff = now - self.span
        while self.stamps and self.stamps[0] <= cutoff:
            self.stamps.popleft()

    @property
    def has_capacity(self) -> bool:
        return len(self.stamps) < self.limit


class RateLimiter:
    """Per-minute/hour/day ceilings plus a queue-length ceiling."""

    def __init__(
        self,
        config: RateLimitConfig,
        *,
        max_queue_size: int,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._clock = clock
        self._max_queue_size = max_queue_size
        self._windows = (
            _Window("minute", MINUTE_S, config.requests_per_minute),
            _Window("hour", HOUR_S, config.requests_per_hour),
            _Window("day", DAY_S, config.requests_per_day),
        )
        self._lock = threading.Lock()

    def check_and_admit(self, queue_length: int = 0) -> bool:
        """Admit one request if every window and the queue have room.

        On admission the current time is recorded in all three windows.
        """
        with self._lock:
            now = self._clock()
            for window in self._windows:
                window.evict(now)

            blocked = [w.name for w in self._windows if not w.has_capacity]
            if blocked or queue_length >= self._max_queue_size:
                logger.debug(
                    "rate_limit_deferred",
                    windows=blocked,
                    queue_length=queue_length,
                    max_queue_size=self._max_queue_size,
                )
                return False

            for window in self._windows:
                window.stamps.append(now)
            return True

    def record_admission(self) -> None:
        """Count a request admitted elsewhere (the queue worker) without checking limits."""
        with self._lock:
            now = self._clock()
            for window in self._windows:
                window.evict(now)
                window.stamps.append(now)

    def usage(self) -> dict[str, int]:
        """Admissions currently counted against each window."""
        with self._lock:
            now = self._clock()
            for window in self._windows:
                window.evict(now)
            return {w.name: len(w.stamps) for w in self._windows}

    def reset(self) -> None:
        with self._lock:
            for window in self._windows:
                window.stamps.clear()
