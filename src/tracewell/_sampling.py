"""Sampler interface and the built-in head samplers."""

from __future__ import annotations

import enum
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from tracewell._types import (
    AttributeValue,
    Link,
    SpanContext,
    SpanKind,
    TraceId,
    TraceState,
)


class SamplingDecision(enum.Enum):
    """What to do with a span about to start."""

    DROP = "drop"
    RECORD_ONLY = "record_only"
    RECORD_AND_SAMPLE = "record_and_sample"

    @property
    def is_recording(self) -> bool:
        return self is not SamplingDecision.DROP

    @property
    def is_sampled(self) -> bool:
        return self is SamplingDecision.RECORD_AND_SAMPLE


@dataclass(frozen=True)
class SamplingResult:
    """A sampler verdict.

    ``attributes`` are added to the span; a non-``None`` ``trace_state``
    replaces the state inherited from the parent.
    """

    decision: SamplingDecision
    attributes: dict[str, AttributeValue] = field(default_factory=dict)
    trace_state: TraceState | None = None


@runtime_checkable
class Sampler(Protocol):
    def should_sample(
        self,
        parent_context: SpanContext | None,
        trace_id: TraceId,
        name: str,
        kind: SpanKind,
        attributes: Mapping[str, AttributeValue],
        links: Sequence[Link],
    ) -> SamplingResult: ...


_RECORD_AND_SAMPLE = SamplingResult(SamplingDecision.RECORD_AND_SAMPLE)
_DROP = SamplingResult(SamplingDecision.DROP)


class AlwaysOn:
    """Sample every span."""

    def should_sample(
        self,
        parent_context: SpanContext | None,
        trace_id: TraceId,
        name: str,
        kind: SpanKind,
        attributes: Mapping[str, AttributeValue],
        links: Sequence[Link],
    ) -> SamplingResult:
        return _RECORD_AND_SAMPLE

    def __repr__(self) -> str:
        return "AlwaysOn()"


class AlwaysOff:
    """Drop every span."""

    def should_sample(
        self,
        parent_context: SpanContext | None,
        trace_id: TraceId,
        name: str,
        kind: SpanKind,
        attributes: Mapping[str, AttributeValue],
        links: Sequence[Link],
    ) -> SamplingResult:
        return _DROP

    def __repr__(self) -> str:
        return "AlwaysOff()"


class TraceIdRatioBased:
    """Keep a fixed fraction of traces, decided from the trace id alone.

    Every span of a trace gets the same verdict because the decision is a
    pure function of the low 64 bits of the trace id.
    """

    def __init__(self, ratio: float) -> None:
        if not 0.0 <= ratio <= 1.0:
            raise ValueError(f"ratio must be within [0, 1], got {ratio}")
        self.ratio = ratio
        self._bound = round(ratio * (1 << 64))

    def should_sample(
        self,
        parent_context: SpanContext | None,
        trace_id: TraceId,
        name: str,
        kind: SpanKind,
        attributes: Mapping[str, AttributeValue],
        links: Sequence[Link],
    ) -> SamplingResult:
        if trace_id.value & ((1 << 64) - 1) < self._bound:
            return _RECORD_AND_SAMPLE
        return _DROP

    def __repr__(self) -> str:
        return f"TraceIdRatioBased({self.ratio})"


class ParentBased:
    """Follow the parent's sampled flag; defer to ``root`` for root spans."""

    def __init__(self, root: Sampler) -> None:
        self.root = root

    def should_sample(
        self,
        parent_context: SpanContext | None,
        trace_id: TraceId,
        name: str,
        kind: SpanKind,
        attributes: Mapping[str, AttributeValue],
        links: Sequence[Link],
    ) -> SamplingResult:
        if parent_context is None or not parent_context.is_valid:
            return self.root.should_sample(
                parent_context, trace_id, name, kind, attributes, links
            )
        if parent_context.is_sampled:
            return _RECORD_AND_SAMPLE
        return _DROP

    def __repr__(self) -> str:
        return f"ParentBased({self.root!r})"
