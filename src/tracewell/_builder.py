"""SpanBuilder: collect span-creation options before the span starts.

Usage::

    span = (
        tracer.span_builder("checkout")
        .with_kind(SpanKind.SERVER)
        .with_attributes({"cart.items": 3})
        .start(tracer)
    )

All fields except ``name`` are optional. :func:`merge` is the one place
where builder overrides are combined with defaults and the ambient context.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from tracewell._errors import TracewellError
from tracewell._types import (
    AttributeValue,
    Event,
    Link,
    SpanContext,
    SpanId,
    SpanKind,
    StatusCode,
    TraceFlags,
    TraceId,
    TraceState,
)

if TYPE_CHECKING:
    from tracewell._context import Context
    from tracewell._sampling import SamplingResult
    from tracewell._span import Span
    from tracewell._tracer import Tracer


@dataclass
class SpanBuilder:
    """Mutable span configuration, consumed by the first build."""

    name: str
    parent_context: SpanContext | None = None
    trace_id: TraceId | None = None
    span_id: SpanId | None = None
    span_kind: SpanKind | None = None
    start_time_ns: int | None = None
    end_time_ns: int | None = None
    attributes: dict[str, AttributeValue] | None = None
    events: list[Event] | None = None
    links: list[Link] | None = None
    status_code: StatusCode | None = None
    status_message: str | None = None
    sampling_result: SamplingResult | None = None
    trace_state: TraceState | None = None
    _consumed: bool = field(default=False, init=False, repr=False, compare=False)

    def with_parent(self, parent_context: SpanContext) -> SpanBuilder:
        self.parent_context = parent_context
        return self

    def with_trace_id(self, trace_id: TraceId) -> SpanBuilder:
        self.trace_id = trace_id
        return self

    def with_span_id(self, span_id: SpanId) -> SpanBuilder:
        self.span_id = span_id
        return self

    def with_kind(self, span_kind: SpanKind) -> SpanBuilder:
        self.span_kind = span_kind
        return self

    def with_start_time(self, start_time_ns: int) -> SpanBuilder:
        self.start_time_ns = start_time_ns
        return self

    def with_end_time(self, end_time_ns: int) -> SpanBuilder:
        self.end_time_ns = end_time_ns
        return self

    def with_attributes(self, attributes: Mapping[str, AttributeValue]) -> SpanBuilder:
        self.attributes = dict(attributes)
        return self

    def with_events(self, events: list[Event]) -> SpanBuilder:
        self.events = list(events)
        return self

    def with_links(self, links: list[Link]) -> SpanBuilder:
        self.links = list(links)
        return self

    def with_status_code(self, code: StatusCode) -> SpanBuilder:
        self.status_code = code
        return self

    def with_status_message(self, message: str) -> SpanBuilder:
        self.status_message = message
        return self

    def with_sampling_result(self, sampling_result: SamplingResult) -> SpanBuilder:
        self.sampling_result = sampling_result
        return self

    def with_trace_state(self, trace_state: TraceState) -> SpanBuilder:
        self.trace_state = trace_state
        return self

    def start(self, tracer: Tracer) -> Span:
        """Build a span with ``tracer``, parented on the current context."""
        return tracer.build(self)

    def start_with_context(self, tracer: Tracer, context: Context) -> Span:
        return tracer.build_with_context(self, context)

    def _consume(self) -> None:
        if self._consumed:
            raise TracewellError("span builder already used", {"name": self.name})
        self._consumed = True


@dataclass(frozen=True)
class SpanSettings:
    """Builder values merged with defaults and the resolved parent."""

    name: str
    kind: SpanKind
    parent: SpanContext | None
    trace_id: TraceId
    trace_state: TraceState
    start_time_ns: int | None
    end_time_ns: int | None
    attributes: dict[str, AttributeValue]
    events: list[Event]
    links: list[Link]
    status_code: StatusCode
    status_message: str | None

    @property
    def parent_span_id(self) -> SpanId | None:
        if self.parent is not None and self.parent.span_id.is_valid:
            return self.parent.span_id
        return None


def _resolve_parent(
    builder: SpanBuilder,
    context: Context,
    new_trace_id: Callable[[], TraceId],
) -> SpanContext | None:
    if builder.parent_context is not None:
        return builder.parent_context
    if builder.trace_id is not None or builder.span_id is not None:
        # Identifiers tracked by an external system stand in for a parent.
        return SpanContext(
            trace_id=builder.trace_id if builder.trace_id is not None else new_trace_id(),
            span_id=builder.span_id if builder.span_id is not None else SpanId.INVALID,
            trace_flags=TraceFlags.SAMPLED,
        )
    ambient = context.span.span_context
    if ambient.is_valid:
        return ambient
    return None


def merge(
    builder: SpanBuilder,
    context: Context,
    new_trace_id: Callable[[], TraceId],
) -> SpanSettings:
    """Resolve the parent and apply defaults for every unset builder field.

    Parent precedence: explicit ``parent_context``, then a parent synthesized
    from ``trace_id``/``span_id`` overrides, then the active span of
    ``context``. With none of those the span is a root with a fresh trace id.
    """
    parent = _resolve_parent(builder, context, new_trace_id)
    if parent is not None and parent.trace_id.is_valid:
        trace_id = parent.trace_id
        trace_state = parent.trace_state
    else:
        trace_id = new_trace_id()
        trace_state = TraceState()
    if builder.trace_state is not None:
        trace_state = builder.trace_state

    return SpanSettings(
        name=builder.name,
        kind=builder.span_kind or SpanKind.INTERNAL,
        parent=parent,
        trace_id=trace_id,
        trace_state=trace_state,
        start_time_ns=builder.start_time_ns,
        end_time_ns=builder.end_time_ns,
        attributes=dict(builder.attributes or {}),
        events=list(builder.events or []),
        links=list(builder.links or []),
        status_code=builder.status_code or StatusCode.UNSET,
        status_message=builder.status_message,
    )
