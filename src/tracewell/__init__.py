"""tracewell: in-process context propagation and span construction for tracing."""

from __future__ import annotations

from collections.abc import Mapping
from contextlib import AbstractContextManager

from tracewell._builder import SpanBuilder
from tracewell._config import SpanLimits, TracerConfig
from tracewell._context import Context, ContextGuard
from tracewell._errors import (
    ContextGuardError,
    ExportError,
    TracewellError,
    handle_error,
    set_error_handler,
)
from tracewell._exporter import InMemoryExporter, OTLPExporter
from tracewell._futures import ContextAwaitable, ContextGenerator, with_context
from tracewell._id_generator import IdGenerator, RandomIdGenerator
from tracewell._processor import (
    BatchSpanProcessor,
    SimpleSpanProcessor,
    SpanExporter,
    SpanProcessor,
)
from tracewell._sampling import (
    AlwaysOff,
    AlwaysOn,
    ParentBased,
    Sampler,
    SamplingDecision,
    SamplingResult,
    TraceIdRatioBased,
)
from tracewell._sdk import get_tracer, get_tracer_provider, init, shutdown
from tracewell._span import INVALID_SPAN, Span
from tracewell._trace import trace
from tracewell._tracer import Tracer, TracerProvider
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
    TraceFlags,
    TraceId,
    TraceState,
)

__version__ = "0.1.0"

__all__ = [
    "INVALID_SPAN",
    "INVALID_SPAN_CONTEXT",
    "AlwaysOff",
    "AlwaysOn",
    "AttributeValue",
    "BatchSpanProcessor",
    "Context",
    "ContextAwaitable",
    "ContextGenerator",
    "ContextGuard",
    "ContextGuardError",
    "Event",
    "ExportError",
    "IdGenerator",
    "InMemoryExporter",
    "InstrumentationScope",
    "Link",
    "OTLPExporter",
    "ParentBased",
    "RandomIdGenerator",
    "Resource",
    "Sampler",
    "SamplingDecision",
    "SamplingResult",
    "SimpleSpanProcessor",
    "Span",
    "SpanBuilder",
    "SpanContext",
    "SpanData",
    "SpanExporter",
    "SpanId",
    "SpanKind",
    "SpanLimits",
    "SpanProcessor",
    "StatusCode",
    "TraceFlags",
    "TraceId",
    "TraceIdRatioBased",
    "TraceState",
    "Tracer",
    "TracerConfig",
    "TracerProvider",
    "TracewellError",
    "__version__",
    "get_active_span",
    "get_tracer",
    "get_tracer_provider",
    "handle_error",
    "init",
    "set_error_handler",
    "shutdown",
    "span",
    "trace",
]


def span(
    name: str,
    *,
    kind: SpanKind = SpanKind.INTERNAL,
    attributes: Mapping[str, AttributeValue] | None = None,
) -> AbstractContextManager[Span]:
    """Start a span on the global provider and keep it active for a block.

    Usage::

        with tracewell.span("process-batch") as s:
            s.set_attribute("batch_size", 32)
    """
    return get_tracer("tracewell").start_as_current_span(
        name, kind=kind, attributes=attributes
    )


def get_active_span() -> Span:
    """Return the active span of the current context, or ``INVALID_SPAN``."""
    return Context.current().span
