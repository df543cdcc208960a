"""Bounded ring buffer of ended spans awaiting export."""

from __future__ import annotations

import threading
from collections import deque

from tracewell._types import SpanData


class RingBuffer:
    """Thread-safe FIFO that evicts the oldest span when full.

    Spans end on arbitrary threads, so enqueue and drain share a lock; the
    critical sections are a single deque operation each.
    """

    def __init__(self, maxsize: int) -> None:
        if maxsize <= 0:
            raise ValueError("maxsize must be positive")
        self._buffer: deque[SpanData] = deque(maxlen=maxsize)
        self._lock = threading.Lock()
        self._drop_count = 0
        self._maxsize = maxsize

    def enqueue(self, span: SpanData) -> None:
        with self._lock:
            if len(self._buffer) == self._maxsize:
                self._drop_count += 1
            self._buffer.append(span)

    def drain(self, max_items: int) -> list[SpanData]:
        """Remove and return up to ``max_items`` spans, oldest first."""
        with self._lock:
            count = min(max_items, len(self._buffer))
            return [self._buffer.popleft() for _ in range(count)]

    @property
    def drop_count(self) -> int:
        """Number of spans evicted because the buffer was full."""
        return self._drop_count

    @property
    def maxsize(self) -> int:
        return self._maxsize

    def __len__(self) -> int:
        return len(self._buffer)
