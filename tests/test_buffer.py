"""Tests for _buffer module."""

import threading

import pytest

from tracewell._buffer import RingBuffer
from tracewell._types import SpanContext, SpanData, SpanId, SpanKind, StatusCode, TraceId


def _make_span(name: str = "test") -> SpanData:
    return SpanData(
        context=SpanContext(TraceId(1), SpanId(1)),
        name=name,
        kind=SpanKind.INTERNAL,
        status=StatusCode.OK,
        start_time_ns=0,
        end_time_ns=1000,
    )


def test_enqueue_and_drain() -> None:
    buf = RingBuffer(maxsize=10)
    buf.enqueue(_make_span("a"))
    buf.enqueue(_make_span("b"))
    assert len(buf) == 2

    items = buf.drain(10)
    assert [i.name for i in items] == ["a", "b"]
    assert len(buf) == 0


def test_drain_partial() -> None:
    buf = RingBuffer(maxsize=10)
    for i in range(5):
        buf.enqueue(_make_span(f"s{i}"))

    items = buf.drain(3)
    assert len(items) == 3
    assert len(buf) == 2


def test_drain_empty() -> None:
    buf = RingBuffer(maxsize=10)
    assert buf.drain(10) == []


def test_overflow_drops_oldest() -> None:
    buf = RingBuffer(maxsize=3)
    for i in range(5):
        buf.enqueue(_make_span(f"s{i}"))

    assert len(buf) == 3
    assert buf.drop_count == 2
    assert [i.name for i in buf.drain(10)] == ["s2", "s3", "s4"]


def test_rejects_non_positive_size() -> None:
    with pytest.raises(ValueError):
        RingBuffer(maxsize=0)


def test_concurrent_producers() -> None:
    buf = RingBuffer(maxsize=10_000)

    def producer() -> None:
        for _ in range(1000):
            buf.enqueue(_make_span())

    threads = [threading.Thread(target=producer) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(buf) == 4000
    assert buf.drop_count == 0
