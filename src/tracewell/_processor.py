"""Span processors: the hand-off from ended spans to exporters."""

from __future__ import annotations

import logging
import threading
from collections.abc import Sequence
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from tracewell._buffer import RingBuffer
from tracewell._errors import handle_error
from tracewell._types import SpanData

if TYPE_CHECKING:
    from tracewell._context import Context
    from tracewell._span import Span

logger = logging.getLogger("tracewell.processor")


@runtime_checkable
class SpanExporter(Protocol):
    def export(self, spans: Sequence[SpanData]) -> None: ...

    def shutdown(self) -> None: ...


class SpanProcessor:
    """Base processor. Subclasses override the hooks they need."""

    def on_start(self, span: Span, parent_context: Context) -> None:
        """Called synchronously when a recording span starts."""

    def on_end(self, span: SpanData) -> None:
        """Called synchronously with the snapshot of a recording span that ended."""

    def shutdown(self) -> None:
        """Flush and release resources."""

    def force_flush(self, timeout: float | None = None) -> None:
        """Export anything pending."""


class MultiSpanProcessor(SpanProcessor):
    """Fans hooks out to every registered processor, isolating failures."""

    def __init__(self) -> None:
        self._processors: tuple[SpanProcessor, ...] = ()
        self._lock = threading.Lock()

    def add(self, processor: SpanProcessor) -> None:
        with self._lock:
            self._processors = (*self._processors, processor)

    @property
    def processors(self) -> tuple[SpanProcessor, ...]:
        return self._processors

    def on_start(self, span: Span, parent_context: Context) -> None:
        for processor in self._processors:
            try:
                processor.on_start(span, parent_context)
            except Exception as exc:  # noqa: BLE001
                handle_error(exc)

    def on_end(self, span: SpanData) -> None:
        for processor in self._processors:
            try:
                processor.on_end(span)
            except Exception as exc:  # noqa: BLE001
                handle_error(exc)

    def shutdown(self) -> None:
        for processor in self._processors:
            try:
                processor.shutdown()
            except Exception as exc:  # noqa: BLE001
                handle_error(exc)

    def force_flush(self, timeout: float | None = None) -> None:
        for processor in self._processors:
            try:
                processor.force_flush(timeout)
            except Exception as exc:  # noqa: BLE001
                handle_error(exc)


class SimpleSpanProcessor(SpanProcessor):
    """Exports each sampled span synchronously as it ends."""

    def __init__(self, exporter: SpanExporter) -> None:
        self._exporter = exporter
        self._lock = threading.Lock()

    def on_end(self, span: SpanData) -> None:
        if not span.context.is_sampled:
            return
        with self._lock:
            try:
                self._exporter.export([span])
            except Exception as exc:  # noqa: BLE001
                handle_error(exc)

    def shutdown(self) -> None:
        self._exporter.shutdown()


class BatchSpanProcessor(SpanProcessor):
    """Buffers sampled spans and drains them on a daemon thread."""

    def __init__(
        self,
        exporter: SpanExporter,
        *,
        buffer_size: int = 8192,
        batch_size: int = 512,
        flush_interval_ms: int = 5000,
    ) -> None:
        self._exporter = exporter
        self._buffer = RingBuffer(buffer_size)
        self._batch_size = batch_size
        self._flush_interval_s = flush_interval_ms / 1000.0
        self._stop_event = threading.Event()
        self._export_lock = threading.Lock()
        self._thread: threading.Thread | None = None

    @property
    def buffer(self) -> RingBuffer:
        return self._buffer

    def start(self) -> None:
        """Start the background drain loop."""
        if self._thread is not None:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run, name="tracewell-batch-processor", daemon=True
        )
        self._thread.start()

    def on_end(self, span: SpanData) -> None:
        if span.context.is_sampled:
            self._buffer.enqueue(span)

    def force_flush(self, timeout: float | None = None) -> None:
        while self._flush():
            pass

    def shutdown(self) -> None:
        """Signal stop, perform a final drain and shut the exporter down."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=5.0)
            self._thread = None
        self.force_flush()
        if self._buffer.drop_count:
            logger.debug("dropped %d spans on buffer overflow", self._buffer.drop_count)
        self._exporter.shutdown()

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _run(self) -> None:
        while not self._stop_event.wait(timeout=self._flush_interval_s):
            self._flush()

    def _flush(self) -> int:
        with self._export_lock:
            spans = self._buffer.drain(self._batch_size)
            if spans:
                try:
                    self._exporter.export(spans)
                except Exception as exc:  # noqa: BLE001
                    handle_error(exc)
            return len(spans)
