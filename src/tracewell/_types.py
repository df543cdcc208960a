"""Core types: identifiers, span context, enums and span data structures."""

from __future__ import annotations

import enum
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import ClassVar, Union

AttributeValue = Union[str, int, float, bool]
Attributes = Mapping[str, AttributeValue]

_TRACE_ID_MAX = (1 << 128) - 1
_SPAN_ID_MAX = (1 << 64) - 1


@dataclass(frozen=True, order=True)
class TraceId:
    """128-bit trace identifier. Zero is the invalid sentinel."""

    value: int

    INVALID: ClassVar[TraceId]

    def __post_init__(self) -> None:
        if not 0 <= self.value <= _TRACE_ID_MAX:
            raise ValueError(f"trace id out of range: {self.value!r}")

    @classmethod
    def from_hex(cls, text: str) -> TraceId:
        return cls(int(text, 16))

    @property
    def hex(self) -> str:
        return f"{self.value:032x}"

    def to_bytes(self) -> bytes:
        return self.value.to_bytes(16, "big")

    @property
    def is_valid(self) -> bool:
        return self.value != 0

    def __str__(self) -> str:
        return self.hex


@dataclass(frozen=True, order=True)
class SpanId:
    """64-bit span identifier. Zero is the invalid sentinel."""

    value: int

    INVALID: ClassVar[SpanId]

    def __post_init__(self) -> None:
        if not 0 <= self.value <= _SPAN_ID_MAX:
            raise ValueError(f"span id out of range: {self.value!r}")

    @classmethod
    def from_hex(cls, text: str) -> SpanId:
        return cls(int(text, 16))

    @property
    def hex(self) -> str:
        return f"{self.value:016x}"

    def to_bytes(self) -> bytes:
        return self.value.to_bytes(8, "big")

    @property
    def is_valid(self) -> bool:
        return self.value != 0

    def __str__(self) -> str:
        return self.hex


TraceId.INVALID = TraceId(0)
SpanId.INVALID = SpanId(0)


class TraceFlags(enum.IntFlag):
    """W3C trace flags. Only the sampled bit is defined."""

    DEFAULT = 0x00
    SAMPLED = 0x01


class TraceState(Mapping[str, str]):
    """Immutable, ordered vendor key/value pairs carried along a trace.

    Mutators return a new ``TraceState``; ``insert`` places the key first,
    matching how vendors prepend their entry when they update it.
    """

    __slots__ = ("_entries",)

    def __init__(self, entries: Iterable[tuple[str, str]] = ()) -> None:
        ordered: dict[str, str] = {}
        for key, value in entries:
            if not key:
                raise ValueError("trace state keys must be non-empty")
            if key not in ordered:
                ordered[key] = value
        self._entries = ordered

    def __getitem__(self, key: str) -> str:
        return self._entries[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __hash__(self) -> int:
        return hash(tuple(self._entries.items()))

    def __eq__(self, other: object) -> bool:
        if isinstance(other, TraceState):
            return list(self._entries.items()) == list(other._entries.items())
        return NotImplemented

    def __repr__(self) -> str:
        return f"TraceState({list(self._entries.items())!r})"

    def insert(self, key: str, value: str) -> TraceState:
        rest = [(k, v) for k, v in self._entries.items() if k != key]
        return TraceState([(key, value), *rest])

    def delete(self, key: str) -> TraceState:
        if key not in self._entries:
            return self
        return TraceState((k, v) for k, v in self._entries.items() if k != key)


@dataclass(frozen=True)
class SpanContext:
    """Immutable, externally visible identity of a span."""

    trace_id: TraceId
    span_id: SpanId
    trace_flags: TraceFlags = TraceFlags.DEFAULT
    trace_state: TraceState = field(default_factory=TraceState)
    is_remote: bool = False

    @property
    def is_valid(self) -> bool:
        return self.trace_id.is_valid and self.span_id.is_valid

    @property
    def is_sampled(self) -> bool:
        return bool(self.trace_flags & TraceFlags.SAMPLED)


INVALID_SPAN_CONTEXT = SpanContext(trace_id=TraceId.INVALID, span_id=SpanId.INVALID)


class SpanKind(enum.Enum):
    """Type of span operation."""

    INTERNAL = "internal"
    CLIENT = "client"
    SERVER = "server"
    PRODUCER = "producer"
    CONSUMER = "consumer"


class StatusCode(enum.Enum):
    """Status of a span."""

    UNSET = "unset"
    OK = "ok"
    ERROR = "error"


@dataclass(frozen=True)
class Event:
    """A timestamped annotation recorded on a span."""

    name: str
    timestamp_ns: int
    attributes: dict[str, AttributeValue] = field(default_factory=dict)
    dropped_attributes: int = 0


@dataclass(frozen=True)
class Link:
    """A causal reference from one span to another span's context."""

    context: SpanContext
    attributes: dict[str, AttributeValue] = field(default_factory=dict)


@dataclass(frozen=True)
class Resource:
    """Attributes describing the entity producing spans."""

    attributes: dict[str, AttributeValue] = field(default_factory=dict)

    def merge(self, other: Resource) -> Resource:
        """Combine two resources; ``other`` wins on key conflicts."""
        merged = dict(self.attributes)
        merged.update(other.attributes)
        return Resource(merged)


@dataclass(frozen=True)
class InstrumentationScope:
    """Name and version of the component that created a span."""

    name: str
    version: str | None = None


@dataclass(frozen=True)
class SpanData:
    """Immutable snapshot of an ended span handed to processors and exporters."""

    context: SpanContext
    name: str
    kind: SpanKind
    status: StatusCode
    start_time_ns: int
    end_time_ns: int
    parent_span_id: SpanId | None = None
    attributes: dict[str, AttributeValue] = field(default_factory=dict)
    events: list[Event] = field(default_factory=list)
    links: list[Link] = field(default_factory=list)
    status_message: str | None = None
    resource: Resource = field(default_factory=Resource)
    scope: InstrumentationScope = field(
        default_factory=lambda: InstrumentationScope("tracewell")
    )
    dropped_attributes: int = 0
    dropped_events: int = 0
    dropped_links: int = 0

    @property
    def trace_id(self) -> TraceId:
        return self.context.trace_id

    @property
    def span_id(self) -> SpanId:
        return self.context.span_id

    @property
    def duration_ms(self) -> float:
        return (self.end_time_ns - self.start_time_ns) / 1_000_000
