"""SDK configuration."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class SpanLimits:
    """Per-span caps. Entries beyond a cap are dropped and counted."""

    max_attributes: int = 128
    max_events: int = 128
    max_links: int = 128
    max_attributes_per_event: int = 128
    max_attributes_per_link: int = 128


@dataclass(frozen=True)
class TracerConfig:
    """Immutable SDK configuration."""

    service_name: str
    endpoint: str = "localhost:4317"
    environment: str = "development"
    batch_size: int = 512
    flush_interval_ms: int = 5000
    buffer_size: int = 8192
    sampling_rate: float = 1.0
    insecure: bool = True
    api_key: str | None = None
    export_timeout_s: float = 10.0
    span_limits: SpanLimits = SpanLimits()

    def __post_init__(self) -> None:
        if not 0.0 <= self.sampling_rate <= 1.0:
            raise ValueError(f"sampling_rate must be within [0, 1], got {self.sampling_rate}")
        if self.batch_size <= 0 or self.buffer_size <= 0:
            raise ValueError("batch_size and buffer_size must be positive")
