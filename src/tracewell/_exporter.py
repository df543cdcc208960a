"""Span exporters: OTLP over gRPC, and an in-memory collector."""

from __future__ import annotations

import logging
import threading
from collections.abc import Sequence
from typing import TYPE_CHECKING

import grpc
from opentelemetry.proto.collector.trace.v1.trace_service_pb2 import (
    ExportTraceServiceRequest,
)
from opentelemetry.proto.collector.trace.v1.trace_service_pb2_grpc import (
    TraceServiceStub,
)
from opentelemetry.proto.common.v1.common_pb2 import (
    AnyValue,
    InstrumentationScope as OtlpScope,
    KeyValue,
)
from opentelemetry.proto.resource.v1.resource_pb2 import Resource as OtlpResource
from opentelemetry.proto.trace.v1.trace_pb2 import (
    ResourceSpans,
    ScopeSpans,
)
from opentelemetry.proto.trace.v1.trace_pb2 import (
    Span as OtlpSpan,
)
from opentelemetry.proto.trace.v1.trace_pb2 import (
    Status as OtlpStatus,
)

from tracewell._errors import ExportError, handle_error
from tracewell._types import SpanKind, StatusCode

if TYPE_CHECKING:
    from tracewell._types import (
        AttributeValue,
        InstrumentationScope,
        Resource,
        SpanData,
        TraceState,
    )

logger = logging.getLogger("tracewell.exporter")

_KIND_MAP: dict[SpanKind, int] = {
    SpanKind.INTERNAL: OtlpSpan.SPAN_KIND_INTERNAL,
    SpanKind.SERVER: OtlpSpan.SPAN_KIND_SERVER,
    SpanKind.CLIENT: OtlpSpan.SPAN_KIND_CLIENT,
    SpanKind.PRODUCER: OtlpSpan.SPAN_KIND_PRODUCER,
    SpanKind.CONSUMER: OtlpSpan.SPAN_KIND_CONSUMER,
}

_STATUS_MAP: dict[StatusCode, int] = {
    StatusCode.UNSET: OtlpStatus.STATUS_CODE_UNSET,
    StatusCode.OK: OtlpStatus.STATUS_CODE_OK,
    StatusCode.ERROR: OtlpStatus.STATUS_CODE_ERROR,
}


def _make_attribute(key: str, value: AttributeValue) -> KeyValue:
    """Convert a Python key-value pair to an OTLP KeyValue protobuf."""
    if isinstance(value, bool):
        av = AnyValue(bool_value=value)
    elif isinstance(value, int):
        av = AnyValue(int_value=value)
    elif isinstance(value, float):
        av = AnyValue(double_value=value)
    else:
        av = AnyValue(string_value=str(value))
    return KeyValue(key=key, value=av)


def _attributes(attributes: dict[str, AttributeValue]) -> list[KeyValue]:
    return [_make_attribute(k, v) for k, v in attributes.items()]


def _format_trace_state(state: TraceState) -> str:
    return ",".join(f"{k}={v}" for k, v in state.items())


def _span_data_to_otlp(sd: SpanData) -> OtlpSpan:
    """Convert a single SpanData to an OTLP Span protobuf."""
    status = OtlpStatus(code=_STATUS_MAP[sd.status])  # type: ignore[arg-type]
    if sd.status == StatusCode.ERROR and sd.status_message:
        status = OtlpStatus(code=_STATUS_MAP[sd.status], message=sd.status_message)  # type: ignore[arg-type]

    parent = sd.parent_span_id.to_bytes() if sd.parent_span_id is not None else b""

    events = [
        OtlpSpan.Event(
            time_unix_nano=ev.timestamp_ns,
            name=ev.name,
            attributes=_attributes(ev.attributes),
            dropped_attributes_count=ev.dropped_attributes,
        )
        for ev in sd.events
    ]
    links = [
        OtlpSpan.Link(
            trace_id=link.context.trace_id.to_bytes(),
            span_id=link.context.span_id.to_bytes(),
            trace_state=_format_trace_state(link.context.trace_state),
            attributes=_attributes(link.attributes),
        )
        for link in sd.links
    ]

    return OtlpSpan(
        trace_id=sd.trace_id.to_bytes(),
        span_id=sd.span_id.to_bytes(),
        trace_state=_format_trace_state(sd.context.trace_state),
        parent_span_id=parent,
        name=sd.name,
        kind=_KIND_MAP.get(sd.kind, OtlpSpan.SPAN_KIND_INTERNAL),  # type: ignore[arg-type]
        start_time_unix_nano=sd.start_time_ns,
        end_time_unix_nano=sd.end_time_ns,
        attributes=_attributes(sd.attributes),
        dropped_attributes_count=sd.dropped_attributes,
        events=events,
        dropped_events_count=sd.dropped_events,
        links=links,
        dropped_links_count=sd.dropped_links,
        status=status,
    )


def _build_export_request(spans: Sequence[SpanData]) -> ExportTraceServiceRequest:
    """Group spans by resource and instrumentation scope into one request."""
    grouped: dict[tuple, dict[InstrumentationScope, list[OtlpSpan]]] = {}
    resources: dict[tuple, Resource] = {}
    for sd in spans:
        key = tuple(sd.resource.attributes.items())
        resources.setdefault(key, sd.resource)
        grouped.setdefault(key, {}).setdefault(sd.scope, []).append(_span_data_to_otlp(sd))

    resource_spans = []
    for key, by_scope in grouped.items():
        scope_spans = [
            ScopeSpans(
                scope=OtlpScope(name=scope.name, version=scope.version or ""),
                spans=otlp_spans,
            )
            for scope, otlp_spans in by_scope.items()
        ]
        resource = OtlpResource(attributes=_attributes(resources[key].attributes))
        resource_spans.append(ResourceSpans(resource=resource, scope_spans=scope_spans))

    return ExportTraceServiceRequest(resource_spans=resource_spans)


class OTLPExporter:
    """Exports SpanData batches over gRPC using the OTLP trace protocol.

    Failures are logged and reported to the error handler but never raised;
    the host program must not be affected by tracing issues.
    """

    def __init__(
        self,
        endpoint: str,
        *,
        insecure: bool = True,
        timeout_s: float = 10.0,
        api_key: str | None = None,
    ) -> None:
        self._timeout_s = timeout_s
        self._metadata: list[tuple[str, str]] | None = None
        if api_key is not None:
            self._metadata = [("authorization", f"Bearer {api_key}")]

        if insecure:
            self._channel = grpc.insecure_channel(endpoint)
        else:
            self._channel = grpc.secure_channel(endpoint, grpc.ssl_channel_credentials())

        self._stub = TraceServiceStub(self._channel)  # type: ignore[no-untyped-call]

    def export(self, spans: Sequence[SpanData]) -> None:
        """Export a batch of spans."""
        if not spans:
            return
        try:
            request = _build_export_request(spans)
            self._stub.Export(request, timeout=self._timeout_s, metadata=self._metadata)
        except Exception as exc:  # noqa: BLE001
            logger.debug("Failed to export %d spans", len(spans), exc_info=True)
            handle_error(ExportError("OTLP export failed", {"spans": len(spans), "cause": exc}))

    def shutdown(self) -> None:
        """Close the gRPC channel."""
        try:
            self._channel.close()
        except Exception:  # noqa: BLE001
            logger.debug("Failed to close exporter channel", exc_info=True)


class InMemoryExporter:
    """Collects exported spans in a list. Useful for tests and debugging."""

    def __init__(self) -> None:
        self._spans: list[SpanData] = []
        self._lock = threading.Lock()
        self.is_shutdown = False

    def export(self, spans: Sequence[SpanData]) -> None:
        with self._lock:
            self._spans.extend(spans)

    def get_finished_spans(self) -> list[SpanData]:
        with self._lock:
            return list(self._spans)

    def clear(self) -> None:
        with self._lock:
            self._spans.clear()

    def shutdown(self) -> None:
        self.is_shutdown = True
