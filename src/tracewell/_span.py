"""Span: the capability handle for a single unit of traced work."""

from __future__ import annotations

import threading
import time
import traceback
from collections.abc import Mapping
from typing import TYPE_CHECKING

from tracewell._config import SpanLimits
from tracewell._errors import handle_error
from tracewell._types import (
    INVALID_SPAN_CONTEXT,
    AttributeValue,
    Event,
    InstrumentationScope,
    Link,
    Resource,
    SpanContext,
    SpanData,
    SpanId,
    SpanKind,
    StatusCode,
    TraceId,
)

if TYPE_CHECKING:
    from tracewell._processor import SpanProcessor


def _capped(
    attributes: Mapping[str, AttributeValue] | None, limit: int
) -> tuple[dict[str, AttributeValue], int]:
    if not attributes:
        return {}, 0
    kept = dict(list(attributes.items())[:limit])
    return kept, len(attributes) - len(kept)


class Span:
    """A shared handle to span state.

    A span is created started and becomes an immutable :class:`SpanData` once
    ended. Every mutator takes the span's own lock, so a handle can be shared
    across threads without contending with other spans. Mutating an ended or
    non-recording span is accepted and silently ignored.
    """

    def __init__(
        self,
        name: str,
        context: SpanContext,
        *,
        parent_span_id: SpanId | None = None,
        kind: SpanKind = SpanKind.INTERNAL,
        start_time_ns: int | None = None,
        end_time_ns: int | None = None,
        attributes: Mapping[str, AttributeValue] | None = None,
        events: list[Event] | None = None,
        links: list[Link] | None = None,
        status: StatusCode = StatusCode.UNSET,
        status_message: str | None = None,
        processor: SpanProcessor | None = None,
        resource: Resource | None = None,
        scope: InstrumentationScope | None = None,
        limits: SpanLimits | None = None,
        recording: bool = True,
    ) -> None:
        self._name = name
        self._context = context
        self.parent_span_id = parent_span_id
        self.kind = kind
        self._processor = processor
        self._resource = resource or Resource()
        self._scope = scope or InstrumentationScope("tracewell")
        self._limits = limits or SpanLimits()
        self._recording = recording
        self._lock = threading.Lock()

        self._start_time_ns = start_time_ns if start_time_ns is not None else time.time_ns()
        # Builder-supplied end time, used when end() is called without one.
        self._default_end_time_ns = end_time_ns
        self._end_time_ns: int | None = None
        self._ended = False

        self._attributes, self._dropped_attributes = _capped(
            attributes, self._limits.max_attributes
        )
        self._events: list[Event] = list(events or [])[: self._limits.max_events]
        self._dropped_events = len(events or []) - len(self._events)
        self._links: list[Link] = list(links or [])[: self._limits.max_links]
        self._dropped_links = len(links or []) - len(self._links)

        self._status = status
        self._status_message = status_message

    @classmethod
    def invalid(cls) -> Span:
        return INVALID_SPAN

    def __repr__(self) -> str:
        return (
            f"Span(name={self._name!r}, trace_id={self._context.trace_id}, "
            f"span_id={self._context.span_id})"
        )

    @property
    def name(self) -> str:
        return self._name

    @property
    def span_context(self) -> SpanContext:
        return self._context

    @property
    def trace_id(self) -> TraceId:
        return self._context.trace_id

    @property
    def span_id(self) -> SpanId:
        return self._context.span_id

    @property
    def status(self) -> StatusCode:
        return self._status

    @property
    def status_message(self) -> str | None:
        return self._status_message

    @property
    def start_time_ns(self) -> int:
        return self._start_time_ns

    @property
    def end_time_ns(self) -> int | None:
        return self._end_time_ns

    @property
    def attributes(self) -> dict[str, AttributeValue]:
        """A copy of the current attributes."""
        with self._lock:
            return dict(self._attributes)

    @property
    def events(self) -> list[Event]:
        with self._lock:
            return list(self._events)

    @property
    def links(self) -> list[Link]:
        with self._lock:
            return list(self._links)

    @property
    def is_ended(self) -> bool:
        return self._ended

    def is_recording(self) -> bool:
        return self._recording and not self._ended

    def set_attribute(self, key: str, value: AttributeValue) -> None:
        """Attach a key-value attribute to this span."""
        with self._lock:
            if not self.is_recording():
                return
            if key not in self._attributes and len(self._attributes) >= self._limits.max_attributes:
                self._dropped_attributes += 1
                return
            self._attributes[key] = value

    def set_attributes(self, attributes: Mapping[str, AttributeValue]) -> None:
        for key, value in attributes.items():
            self.set_attribute(key, value)

    def add_event(
        self,
        name: str,
        attributes: Mapping[str, AttributeValue] | None = None,
        timestamp_ns: int | None = None,
    ) -> None:
        """Record a timestamped event with optional attributes."""
        kept, dropped = _capped(attributes, self._limits.max_attributes_per_event)
        event = Event(
            name=name,
            timestamp_ns=timestamp_ns if timestamp_ns is not None else time.time_ns(),
            attributes=kept,
            dropped_attributes=dropped,
        )
        with self._lock:
            if not self.is_recording():
                return
            if len(self._events) >= self._limits.max_events:
                self._dropped_events += 1
                return
            self._events.append(event)

    def add_link(
        self,
        context: SpanContext,
        attributes: Mapping[str, AttributeValue] | None = None,
    ) -> None:
        """Link this span to another span's context."""
        kept, _ = _capped(attributes, self._limits.max_attributes_per_link)
        with self._lock:
            if not self.is_recording():
                return
            if len(self._links) >= self._limits.max_links:
                self._dropped_links += 1
                return
            self._links.append(Link(context, kept))

    def set_status(self, status: StatusCode, message: str | None = None) -> None:
        """Set span status. OK is final and UNSET never overrides."""
        with self._lock:
            if not self.is_recording():
                return
            if status == StatusCode.UNSET or self._status == StatusCode.OK:
                return
            self._status = status
            self._status_message = message

    def record_exception(self, error: BaseException) -> None:
        """Record an ``exception`` event and mark the span as failed."""
        self.add_event(
            "exception",
            {
                "exception.type": type(error).__qualname__,
                "exception.message": str(error),
                "exception.stacktrace": "".join(
                    traceback.format_exception(type(error), error, error.__traceback__)
                ),
            },
        )
        self.set_status(StatusCode.ERROR, str(error) or type(error).__name__)

    def update_name(self, name: str) -> None:
        with self._lock:
            if self.is_recording():
                self._name = name

    def end(self, end_time_ns: int | None = None) -> None:
        """End the span. Only the first call has any effect."""
        if not self._recording and not self._context.is_valid:
            # the shared invalid span never ends
            return
        with self._lock:
            if self._ended:
                return
            if end_time_ns is None:
                end_time_ns = self._default_end_time_ns
            self._end_time_ns = end_time_ns if end_time_ns is not None else time.time_ns()
            self._ended = True
            if not self._recording or self._processor is None:
                return
            data = self._to_span_data()

        try:
            self._processor.on_end(data)
        except Exception as exc:  # noqa: BLE001
            handle_error(exc)

    def _to_span_data(self) -> SpanData:
        assert self._end_time_ns is not None
        return SpanData(
            context=self._context,
            name=self._name,
            kind=self.kind,
            status=self._status,
            status_message=self._status_message,
            start_time_ns=self._start_time_ns,
            end_time_ns=self._end_time_ns,
            parent_span_id=self.parent_span_id,
            attributes=dict(self._attributes),
            events=list(self._events),
            links=list(self._links),
            resource=self._resource,
            scope=self._scope,
            dropped_attributes=self._dropped_attributes,
            dropped_events=self._dropped_events,
            dropped_links=self._dropped_links,
        )


INVALID_SPAN = Span("", INVALID_SPAN_CONTEXT, recording=False)
