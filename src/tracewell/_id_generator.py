"""Trace and span id generation."""

from __future__ import annotations

import random
from typing import Protocol, runtime_checkable

from tracewell._types import SpanId, TraceId


@runtime_checkable
class IdGenerator(Protocol):
    def new_trace_id(self) -> TraceId: ...

    def new_span_id(self) -> SpanId: ...


class RandomIdGenerator:
    """Draws ids from :func:`random.getrandbits`, retrying on the zero value."""

    def new_trace_id(self) -> TraceId:
        value = random.getrandbits(128)
        while value == 0:
            value = random.getrandbits(128)
        return TraceId(value)

    def new_span_id(self) -> SpanId:
        value = random.getrandbits(64)
        while value == 0:
            value = random.getrandbits(64)
        return SpanId(value)
