"""Tests for _builder module."""

import itertools

import pytest

from tracewell._builder import SpanBuilder, merge
from tracewell._context import Context
from tracewell._errors import TracewellError
from tracewell._sampling import SamplingDecision, SamplingResult
from tracewell._span import Span
from tracewell._types import (
    SpanContext,
    SpanId,
    SpanKind,
    StatusCode,
    TraceFlags,
    TraceId,
    TraceState,
)

_AMBIENT = SpanContext(
    TraceId(0xA), SpanId(0xA1), TraceFlags.SAMPLED, TraceState([("vendor", "ambient")])
)


def _fresh_ids() -> object:
    counter = itertools.count(0x1000)
    return lambda: TraceId(next(counter))


def _ambient_context() -> Context:
    return Context.empty().with_span(Span("ambient", _AMBIENT))


def test_chaining_returns_same_builder() -> None:
    builder = SpanBuilder("op")
    same = (
        builder.with_kind(SpanKind.SERVER)
        .with_attributes({"a": 1})
        .with_start_time(10)
        .with_end_time(20)
        .with_status_code(StatusCode.ERROR)
        .with_status_message("bad")
    )
    assert same is builder
    assert builder.span_kind == SpanKind.SERVER
    assert builder.attributes == {"a": 1}
    assert builder.start_time_ns == 10
    assert builder.end_time_ns == 20


def test_defaults_applied() -> None:
    settings = merge(SpanBuilder("op"), Context.empty(), _fresh_ids())
    assert settings.kind == SpanKind.INTERNAL
    assert settings.attributes == {}
    assert settings.events == []
    assert settings.links == []
    assert settings.status_code == StatusCode.UNSET
    assert settings.start_time_ns is None


def test_root_without_ambient_span() -> None:
    settings = merge(SpanBuilder("root"), Context.empty(), _fresh_ids())
    assert settings.parent is None
    assert settings.parent_span_id is None
    assert settings.trace_id == TraceId(0x1000)
    assert len(settings.trace_state) == 0


def test_ambient_span_is_parent() -> None:
    settings = merge(SpanBuilder("child"), _ambient_context(), _fresh_ids())
    assert settings.parent == _AMBIENT
    assert settings.parent_span_id == SpanId(0xA1)
    assert settings.trace_id == TraceId(0xA)
    assert settings.trace_state == _AMBIENT.trace_state


def test_explicit_parent_beats_ambient() -> None:
    explicit = SpanContext(TraceId(0xB), SpanId(0xB1), TraceFlags.SAMPLED)
    builder = SpanBuilder("child").with_parent(explicit)
    settings = merge(builder, _ambient_context(), _fresh_ids())
    assert settings.trace_id == TraceId(0xB)
    assert settings.parent_span_id == SpanId(0xB1)


def test_explicit_parent_beats_id_overrides() -> None:
    explicit = SpanContext(TraceId(0xB), SpanId(0xB1))
    builder = SpanBuilder("child").with_parent(explicit).with_trace_id(TraceId(0xC))
    settings = merge(builder, Context.empty(), _fresh_ids())
    assert settings.trace_id == TraceId(0xB)


def test_id_overrides_synthesize_parent() -> None:
    builder = SpanBuilder("external").with_trace_id(TraceId(0xC)).with_span_id(SpanId(0xC1))
    settings = merge(builder, _ambient_context(), _fresh_ids())
    assert settings.parent is not None
    assert settings.parent.trace_id == TraceId(0xC)
    assert settings.parent.span_id == SpanId(0xC1)
    assert not settings.parent.is_remote
    assert settings.trace_id == TraceId(0xC)
    assert settings.parent_span_id == SpanId(0xC1)


def test_trace_id_override_alone_has_no_parent_span() -> None:
    builder = SpanBuilder("external").with_trace_id(TraceId(0xD))
    settings = merge(builder, _ambient_context(), _fresh_ids())
    assert settings.trace_id == TraceId(0xD)
    assert settings.parent_span_id is None


def test_span_id_override_alone_gets_fresh_trace() -> None:
    builder = SpanBuilder("external").with_span_id(SpanId(0xE1))
    settings = merge(builder, Context.empty(), _fresh_ids())
    assert settings.trace_id == TraceId(0x1000)
    assert settings.parent_span_id == SpanId(0xE1)


def test_trace_state_override() -> None:
    override = TraceState([("vendor", "override")])
    builder = SpanBuilder("child").with_trace_state(override)
    settings = merge(builder, _ambient_context(), _fresh_ids())
    assert settings.trace_id == TraceId(0xA)
    assert settings.trace_state == override


def test_builder_fields_copied() -> None:
    attrs = {"a": 1}
    builder = SpanBuilder("op").with_attributes(attrs)
    attrs["b"] = 2
    settings = merge(builder, Context.empty(), _fresh_ids())
    assert settings.attributes == {"a": 1}


def test_builder_consumed_once() -> None:
    builder = SpanBuilder("once")
    builder._consume()
    with pytest.raises(TracewellError):
        builder._consume()


def test_sampling_result_field() -> None:
    result = SamplingResult(SamplingDecision.RECORD_ONLY)
    builder = SpanBuilder("op").with_sampling_result(result)
    assert builder.sampling_result is result
