"""Process-global provider: config, processor and exporter lifecycle."""

from __future__ import annotations

import atexit
import threading

from tracewell._config import SpanLimits, TracerConfig
from tracewell._exporter import OTLPExporter
from tracewell._processor import BatchSpanProcessor, SpanExporter
from tracewell._sampling import AlwaysOff, ParentBased, Sampler, TraceIdRatioBased
from tracewell._tracer import Tracer, TracerProvider
from tracewell._types import Resource

SDK_NAME = "tracewell"
SDK_VERSION = "0.1.0"

_provider: TracerProvider | None = None
_config: TracerConfig | None = None
_lock = threading.Lock()
_atexit_registered = False

# Used before init(): spans get valid ids and propagate through the context,
# but nothing is recorded or exported.
_noop_provider = TracerProvider(sampler=AlwaysOff())


def _build_resource(config: TracerConfig) -> Resource:
    return Resource(
        {
            "service.name": config.service_name,
            "deployment.environment": config.environment,
            "telemetry.sdk.name": SDK_NAME,
            "telemetry.sdk.version": SDK_VERSION,
        }
    )


def get_tracer_provider() -> TracerProvider:
    """Return the active provider or the noop fallback."""
    if _provider is not None:
        return _provider
    return _noop_provider


def get_config() -> TracerConfig | None:
    return _config


def get_tracer(name: str, version: str | None = None) -> Tracer:
    return get_tracer_provider().get_tracer(name, version)


def init(
    *,
    service_name: str,
    endpoint: str = "localhost:4317",
    environment: str = "development",
    batch_size: int = 512,
    flush_interval_ms: int = 5000,
    buffer_size: int = 8192,
    sampling_rate: float = 1.0,
    insecure: bool = True,
    api_key: str | None = None,
    span_limits: SpanLimits | None = None,
    sampler: Sampler | None = None,
    exporter: SpanExporter | None = None,
) -> TracerProvider:
    """Initialize the global tracer provider.

    Spans are sampled with ``ParentBased(TraceIdRatioBased(sampling_rate))``
    unless ``sampler`` is given, and shipped to ``endpoint`` over OTLP/gRPC
    unless ``exporter`` is given. Calling ``init`` again shuts down the
    previous provider first.
    """
    global _provider, _config, _atexit_registered  # noqa: PLW0603

    config = TracerConfig(
        service_name=service_name,
        endpoint=endpoint,
        environment=environment,
        batch_size=batch_size,
        flush_interval_ms=flush_interval_ms,
        buffer_size=buffer_size,
        sampling_rate=sampling_rate,
        insecure=insecure,
        api_key=api_key,
        span_limits=span_limits or SpanLimits(),
    )

    if exporter is None:
        exporter = OTLPExporter(
            config.endpoint,
            insecure=config.insecure,
            timeout_s=config.export_timeout_s,
            api_key=config.api_key,
        )
    processor = BatchSpanProcessor(
        exporter,
        buffer_size=config.buffer_size,
        batch_size=config.batch_size,
        flush_interval_ms=config.flush_interval_ms,
    )
    provider = TracerProvider(
        sampler=sampler or ParentBased(TraceIdRatioBased(config.sampling_rate)),
        resource=_build_resource(config),
        span_limits=config.span_limits,
    )
    provider.add_span_processor(processor)

    with _lock:
        previous = _provider
        _provider = provider
        _config = config
        if not _atexit_registered:
            atexit.register(shutdown)
            _atexit_registered = True
    if previous is not None:
        previous.shutdown()

    processor.start()
    return provider


def shutdown() -> None:
    """Shut down the global provider, flushing any remaining spans."""
    global _provider, _config  # noqa: PLW0603
    with _lock:
        provider = _provider
        _provider = None
        _config = None
    if provider is not None:
        provider.shutdown()
