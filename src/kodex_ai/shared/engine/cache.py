"""In-memory result cache with TTL expiry and oldest-first eviction."""

from __future__ import annotations

import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable

import orjson
import structlog
from pydantic import BaseModel

from kodex_ai.shared.engine.types import CacheConfig

logger = structlog.get_logger(__name__)


@dataclass
class _CacheEntry:
    result: Any
    cached_at: float


def fingerprint(operation: str, request: Any) -> str:
    """Cache key: operation name plus a canonical serialisation of the request.

    Structurally identical requests produce identical keys regardless of
    dict insertion order.
    """
    payload = request.model_dump(mode="json") if isinstance(request, BaseModel) else request
    body = orjson.dumps(payload, option=orjson.OPT_SORT_KEYS, default=str)
    return f"{operation}:{body.decode()}"


class ResultCache:
    """Bounded memoisation of completed results.

    Every operation is a no-op (always a miss) when caching is disabled.
    """

    def __init__(
        self,
        config: CacheConfig,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._enabled = config.enabled
        self._ttl = config.ttl_s
        self._max_size = config.max_size
        self._clock = clock
        self._entries: OrderedDict[str, _CacheEntry] = OrderedDict()
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self._enabled

    def get(self, key: str) -> Any | None:
        if not self._enabled:
            return None
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() - entry.cached_at > self._ttl:
                del self._entries[key]
                return None
            return entry.result

    def set(self, key: str, result: Any) -> None:
        if not self._enabled or self._max_size <= 0:
            return
        with self._lock:
            self._entries.pop(key, None)
            while len(self._entries) >= self._max_size:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("cache_evicted", key=evicted[:80])
            self._entries[key] = _CacheEntry(result, self._clock())

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
