"""Priority buffer for deferred requests.

Higher priority dequeues first; equal priorities keep insertion order.
Retried requests are pushed back at the absolute front.
"""

from __future__ import annotations

import asyncio
import bisect
from dataclasses import dataclass, field
from typing import Any

from kodex_ai.domain.enums import Operation


@dataclass
class QueuedRequest:
    """A deferred call waiting on the worker.

    State machine:
        Pending → Executing → Resolved
        Executing → Retrying → Pending
        Pending | Executing → Rejected
    """

    id: str
    operation: Operation
    payload: Any
    future: asyncio.Future[Any] = field(repr=False)
    enqueued_at: float
    retries: int = 0
    priority: int = 1

    def deadline(self, timeout_s: float) -> float:
        return self.enqueued_at + timeout_s

    @property
    def settled(self) -> bool:
        return self.future.done()


class RequestQueue:
    """Descending-priority queue, FIFO among equal priorities."""

    def __init__(self) -> None:
        self._items: list[QueuedRequest] = []

    def push(self, item: QueuedRequest) -> None:
        # insort_right keeps equal keys in arrival order
        bisect.insort_right(self._items, item, key=lambda r: -r.priority)

    def push_front(self, item: QueuedRequest) -> None:
        self._items.insert(0, item)

    def pop(self) -> QueuedRequest | None:
        return self._items.pop(0) if self._items else None

    def drain(self) -> list[QueuedRequest]:
        items, self._items = self._items, []
        return items

    def __len__(self) -> int:
        return len(self._items)
