"""Tests for _sdk module."""

import tracewell
import tracewell._sdk as sdk_mod
from tracewell._exporter import InMemoryExporter, OTLPExporter
from tracewell._processor import BatchSpanProcessor
from tracewell._sampling import AlwaysOn, ParentBased, TraceIdRatioBased


def setup_function() -> None:
    """Reset SDK state before each test."""
    tracewell.shutdown()


def teardown_function() -> None:
    tracewell.shutdown()


def test_init_installs_provider() -> None:
    provider = tracewell.init(service_name="test", exporter=InMemoryExporter())
    assert tracewell.get_tracer_provider() is provider
    cfg = sdk_mod.get_config()
    assert cfg is not None
    assert cfg.service_name == "test"


def test_init_defaults_to_otlp_batch_pipeline() -> None:
    provider = tracewell.init(service_name="test", sampling_rate=0.25)
    (processor,) = provider.processor.processors
    assert isinstance(processor, BatchSpanProcessor)
    assert processor.is_running
    assert isinstance(processor._exporter, OTLPExporter)
    assert isinstance(provider.sampler, ParentBased)
    assert isinstance(provider.sampler.root, TraceIdRatioBased)
    assert provider.sampler.root.ratio == 0.25


def test_resource_attributes() -> None:
    provider = tracewell.init(
        service_name="svc", environment="staging", exporter=InMemoryExporter()
    )
    attrs = provider.resource.attributes
    assert attrs["service.name"] == "svc"
    assert attrs["deployment.environment"] == "staging"
    assert attrs["telemetry.sdk.name"] == "tracewell"
    assert attrs["telemetry.sdk.version"] == tracewell.__version__


def test_shutdown_restores_noop() -> None:
    provider = tracewell.init(service_name="test", exporter=InMemoryExporter())
    tracewell.shutdown()
    assert provider.is_shutdown
    assert tracewell.get_tracer_provider() is sdk_mod._noop_provider
    assert sdk_mod.get_config() is None


def test_reinit_shuts_down_previous() -> None:
    first = tracewell.init(service_name="first", exporter=InMemoryExporter())
    second = tracewell.init(service_name="second", exporter=InMemoryExporter())
    assert first.is_shutdown
    assert not second.is_shutdown
    cfg = sdk_mod.get_config()
    assert cfg is not None
    assert cfg.service_name == "second"


def test_uninit_graceful_span() -> None:
    """span() works without init: ids propagate, nothing is recorded."""
    with tracewell.span("graceful") as s:
        s.set_attribute("key", "val")
        assert s.span_context.is_valid
        assert not s.is_recording()
        assert tracewell.get_active_span() is s
    assert tracewell.get_active_span() is tracewell.INVALID_SPAN


def test_uninit_graceful_trace() -> None:
    @tracewell.trace
    def my_func() -> str:
        return "ok"

    assert my_func() == "ok"


def test_custom_sampler() -> None:
    exporter = InMemoryExporter()
    tracewell.init(service_name="test", sampling_rate=0.0, sampler=AlwaysOn(), exporter=exporter)
    with tracewell.span("kept"):
        pass
    tracewell.shutdown()
    assert [s.name for s in exporter.get_finished_spans()] == ["kept"]


def test_span_after_init_enqueues() -> None:
    provider = tracewell.init(
        service_name="test", flush_interval_ms=60_000, exporter=InMemoryExporter()
    )
    with tracewell.span("buffered") as s:
        s.set_attribute("key", "val")

    (processor,) = provider.processor.processors
    assert isinstance(processor, BatchSpanProcessor)
    assert len(processor.buffer) == 1
