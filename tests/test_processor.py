"""Tests for _processor module."""

import time

from tracewell._errors import set_error_handler
from tracewell._exporter import InMemoryExporter
from tracewell._processor import (
    BatchSpanProcessor,
    MultiSpanProcessor,
    SimpleSpanProcessor,
    SpanExporter,
    SpanProcessor,
)
from tracewell._types import (
    SpanContext,
    SpanData,
    SpanId,
    SpanKind,
    StatusCode,
    TraceFlags,
    TraceId,
)


def _make_span(name: str = "test", sampled: bool = True) -> SpanData:
    flags = TraceFlags.SAMPLED if sampled else TraceFlags.DEFAULT
    return SpanData(
        context=SpanContext(TraceId(1), SpanId(1), flags),
        name=name,
        kind=SpanKind.INTERNAL,
        status=StatusCode.OK,
        start_time_ns=0,
        end_time_ns=1000,
    )


class _BadExporter:
    def export(self, spans: object) -> None:
        raise RuntimeError("exporter exploded")

    def shutdown(self) -> None:
        pass


def test_exporters_satisfy_protocol() -> None:
    assert isinstance(InMemoryExporter(), SpanExporter)


def test_simple_exports_sampled_only() -> None:
    exporter = InMemoryExporter()
    proc = SimpleSpanProcessor(exporter)
    proc.on_end(_make_span("kept"))
    proc.on_end(_make_span("skipped", sampled=False))
    assert [s.name for s in exporter.get_finished_spans()] == ["kept"]
    proc.shutdown()
    assert exporter.is_shutdown


def test_simple_reports_exporter_failure() -> None:
    errors: list[BaseException] = []
    set_error_handler(errors.append)
    try:
        SimpleSpanProcessor(_BadExporter()).on_end(_make_span())
    finally:
        set_error_handler(None)
    assert [str(e) for e in errors] == ["exporter exploded"]


def test_batch_start_and_stop() -> None:
    proc = BatchSpanProcessor(InMemoryExporter(), flush_interval_ms=50)
    proc.start()
    assert proc.is_running
    proc.shutdown()
    assert not proc.is_running


def test_batch_exports_on_interval() -> None:
    exporter = InMemoryExporter()
    proc = BatchSpanProcessor(exporter, flush_interval_ms=50)
    proc.on_end(_make_span("a"))
    proc.on_end(_make_span("b"))

    proc.start()
    time.sleep(0.2)
    names = [s.name for s in exporter.get_finished_spans()]
    proc.shutdown()

    assert names == ["a", "b"]


def test_batch_skips_unsampled() -> None:
    proc = BatchSpanProcessor(InMemoryExporter())
    proc.on_end(_make_span(sampled=False))
    assert len(proc.buffer) == 0


def test_batch_final_drain_on_shutdown() -> None:
    exporter = InMemoryExporter()
    proc = BatchSpanProcessor(exporter, flush_interval_ms=10000)
    proc.start()
    proc.on_end(_make_span("late"))
    proc.shutdown()

    assert [s.name for s in exporter.get_finished_spans()] == ["late"]
    assert exporter.is_shutdown


def test_batch_force_flush_drains_in_batches() -> None:
    exporter = InMemoryExporter()
    proc = BatchSpanProcessor(exporter, batch_size=2, flush_interval_ms=10000)
    for i in range(5):
        proc.on_end(_make_span(f"s{i}"))
    proc.force_flush()
    assert len(exporter.get_finished_spans()) == 5
    assert len(proc.buffer) == 0


def test_batch_exporter_exception_does_not_crash() -> None:
    errors: list[BaseException] = []
    set_error_handler(errors.append)
    try:
        proc = BatchSpanProcessor(_BadExporter(), flush_interval_ms=50)
        proc.on_end(_make_span())
        proc.start()
        time.sleep(0.15)
        proc.shutdown()
    finally:
        set_error_handler(None)
    assert errors


def test_batch_thread_is_daemon() -> None:
    proc = BatchSpanProcessor(InMemoryExporter(), flush_interval_ms=50)
    proc.start()
    assert proc._thread is not None
    assert proc._thread.daemon is True
    proc.shutdown()


def test_batch_double_start_is_idempotent() -> None:
    proc = BatchSpanProcessor(InMemoryExporter(), flush_interval_ms=50)
    proc.start()
    thread1 = proc._thread
    proc.start()
    assert proc._thread is thread1
    proc.shutdown()


def test_multi_isolates_failures() -> None:
    errors: list[BaseException] = []
    received: list[str] = []

    class _Bad(SpanProcessor):
        def on_end(self, span: SpanData) -> None:
            raise RuntimeError("first failed")

    class _Good(SpanProcessor):
        def on_end(self, span: SpanData) -> None:
            received.append(span.name)

    multi = MultiSpanProcessor()
    multi.add(_Bad())
    multi.add(_Good())

    set_error_handler(errors.append)
    try:
        multi.on_end(_make_span("fanned"))
    finally:
        set_error_handler(None)

    assert received == ["fanned"]
    assert len(errors) == 1
    assert len(multi.processors) == 2
