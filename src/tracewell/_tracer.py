"""Tracer and TracerProvider: span construction and activation."""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from typing import TypeVar

from tracewell._builder import SpanBuilder, merge
from tracewell._config import SpanLimits
from tracewell._context import Context, ContextGuard
from tracewell._errors import handle_error
from tracewell._id_generator import IdGenerator, RandomIdGenerator
from tracewell._processor import MultiSpanProcessor, SpanProcessor
from tracewell._sampling import (
    AlwaysOn,
    ParentBased,
    Sampler,
    SamplingDecision,
    SamplingResult,
)
from tracewell._span import INVALID_SPAN, Span
from tracewell._types import (
    AttributeValue,
    InstrumentationScope,
    Resource,
    SpanContext,
    SpanKind,
    TraceFlags,
)

T = TypeVar("T")

_DROP = SamplingResult(SamplingDecision.DROP)


class Tracer:
    """Creates spans and manages which one is active.

    Span creation never activates the new span; use :meth:`mark_span_as_active`,
    :meth:`with_span`, :meth:`in_span` or :meth:`start_as_current_span`.
    """

    def __init__(self, provider: TracerProvider, scope: InstrumentationScope) -> None:
        self._provider = provider
        self.scope = scope

    def __repr__(self) -> str:
        return f"Tracer(scope={self.scope.name!r})"

    def invalid(self) -> Span:
        """The non-recording span with an invalid context."""
        return INVALID_SPAN

    def span_builder(self, name: str) -> SpanBuilder:
        return SpanBuilder(name)

    def start(self, name: str) -> Span:
        """Start a span parented on the current context's active span."""
        return self.start_from_context(name, Context.current())

    def start_from_context(self, name: str, context: Context) -> Span:
        return self.build_with_context(self.span_builder(name), context)

    def build(self, builder: SpanBuilder) -> Span:
        return self.build_with_context(builder, Context.current())

    def build_with_context(self, builder: SpanBuilder, context: Context) -> Span:
        """Construct a span from ``builder``, resolving its parent from ``context``."""
        builder._consume()
        provider = self._provider

        try:
            settings = merge(builder, context, provider.id_generator.new_trace_id)
            span_id = provider.id_generator.new_span_id()
        except Exception as exc:  # noqa: BLE001
            handle_error(exc)
            return INVALID_SPAN

        result = builder.sampling_result
        if result is None:
            try:
                result = provider.sampler.should_sample(
                    settings.parent,
                    settings.trace_id,
                    settings.name,
                    settings.kind,
                    settings.attributes,
                    settings.links,
                )
            except Exception as exc:  # noqa: BLE001
                handle_error(exc)
                result = _DROP

        trace_state = settings.trace_state
        if result.trace_state is not None and builder.trace_state is None:
            trace_state = result.trace_state
        span_context = SpanContext(
            trace_id=settings.trace_id,
            span_id=span_id,
            trace_flags=TraceFlags.SAMPLED if result.decision.is_sampled else TraceFlags.DEFAULT,
            trace_state=trace_state,
            is_remote=False,
        )

        if not result.decision.is_recording or provider.is_shutdown:
            return Span(
                settings.name,
                span_context,
                parent_span_id=settings.parent_span_id,
                kind=settings.kind,
                recording=False,
            )

        attributes = dict(settings.attributes)
        attributes.update(result.attributes)
        span = Span(
            settings.name,
            span_context,
            parent_span_id=settings.parent_span_id,
            kind=settings.kind,
            start_time_ns=settings.start_time_ns,
            end_time_ns=settings.end_time_ns,
            attributes=attributes,
            events=settings.events,
            links=settings.links,
            status=settings.status_code,
            status_message=settings.status_message,
            processor=provider.processor,
            resource=provider.resource,
            scope=self.scope,
            limits=provider.span_limits,
        )
        provider.processor.on_start(span, context)
        return span

    def mark_span_as_active(self, span: Span) -> ContextGuard:
        """Make ``span`` active; the caller owns and must release the guard."""
        return Context.current_with_span(span).attach()

    def get_active_span(self, f: Callable[[Span], T]) -> T:
        """Call ``f`` with the active span, or the invalid span."""
        return f(Context.current().span)

    def in_span(self, name: str, f: Callable[[Context], T]) -> T:
        """Start a span and call ``f`` with it active. The span is not ended."""
        return self.with_span(self.start(name), f)

    def with_span(self, span: Span, f: Callable[[Context], T]) -> T:
        """Call ``f`` with ``span`` active. The span is not ended."""
        context = Context.current_with_span(span)
        with context.attach():
            return f(context)

    @contextmanager
    def start_as_current_span(
        self,
        name: str,
        *,
        kind: SpanKind = SpanKind.INTERNAL,
        attributes: Mapping[str, AttributeValue] | None = None,
        end_on_exit: bool = True,
        record_exception: bool = True,
    ) -> Iterator[Span]:
        """Start a span and keep it active for the ``with`` block.

        Usage::

            with tracer.start_as_current_span("load-config") as span:
                span.set_attribute("path", path)
        """
        builder = self.span_builder(name).with_kind(kind)
        if attributes:
            builder.with_attributes(attributes)
        span = builder.start(self)
        try:
            with self.mark_span_as_active(span):
                yield span
        except Exception as exc:
            if record_exception:
                span.record_exception(exc)
            raise
        finally:
            if end_on_exit:
                span.end()


class TracerProvider:
    """Owns the sampler, id generator, processors and resource for its tracers."""

    def __init__(
        self,
        *,
        sampler: Sampler | None = None,
        id_generator: IdGenerator | None = None,
        resource: Resource | None = None,
        span_limits: SpanLimits | None = None,
    ) -> None:
        self.sampler: Sampler = sampler if sampler is not None else ParentBased(AlwaysOn())
        self.id_generator: IdGenerator = id_generator or RandomIdGenerator()
        self.resource = resource or Resource()
        self.span_limits = span_limits or SpanLimits()
        self.processor = MultiSpanProcessor()
        self._tracers: dict[tuple[str, str | None], Tracer] = {}
        self._lock = threading.Lock()
        self._shutdown = False

    def get_tracer(self, name: str, version: str | None = None) -> Tracer:
        """Return the tracer for an instrumentation scope, creating it once."""
        with self._lock:
            tracer = self._tracers.get((name, version))
            if tracer is None:
                tracer = Tracer(self, InstrumentationScope(name, version))
                self._tracers[(name, version)] = tracer
            return tracer

    def add_span_processor(self, processor: SpanProcessor) -> None:
        self.processor.add(processor)

    @property
    def is_shutdown(self) -> bool:
        return self._shutdown

    def force_flush(self, timeout: float | None = None) -> None:
        self.processor.force_flush(timeout)

    def shutdown(self) -> None:
        """Flush and stop all processors. Later spans are non-recording."""
        if self._shutdown:
            return
        self._shutdown = True
        self.processor.shutdown()
