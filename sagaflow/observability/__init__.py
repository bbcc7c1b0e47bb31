"""Observability ports and adapters for the workflow engine."""

from __future__ import annotations

from typing import Optional

from ..config import SagaflowConfig, load_config
from .log import StructlogLogger, configure_logging
from .memory import InMemoryMetricsRecorder, InMemoryTracer, RecordedSpan
from .noop import NoopMetricsRecorder, NoopSpan, NoopTracer
from .ports import Logger, MetricsRecorder, Span, Tracer


def get_tracer(
    backend: Optional[str] = None, config: Optional[SagaflowConfig] = None
) -> Tracer:
    """Factory function to get the configured tracer."""

    config = config or load_config()
    backend = (backend or config.observability.tracing).lower()

    if backend == "noop":
        return NoopTracer()
    elif backend == "memory":
        return InMemoryTracer()
    elif backend == "otel":
        from .otel import OpenTelemetryTracer

        return OpenTelemetryTracer()
    else:
        raise ValueError(f"Unsupported tracing backend: {backend}")


def get_metrics_recorder(
    backend: Optional[str] = None, config: Optional[SagaflowConfig] = None
) -> MetricsRecorder:
    """Factory function to get the configured metrics recorder."""

    config = config or load_config()
    backend = (backend or config.observability.metrics).lower()

    if backend == "noop":
        return NoopMetricsRecorder()
    elif backend == "memory":
        return InMemoryMetricsRecorder()
    elif backend == "otel":
        from .otel import OpenTelemetryMetricsRecorder

        return OpenTelemetryMetricsRecorder()
    else:
        raise ValueError(f"Unsupported metrics backend: {backend}")


__all__ = [
    "Logger",
    "MetricsRecorder",
    "Span",
    "Tracer",
    "StructlogLogger",
    "configure_logging",
    "InMemoryMetricsRecorder",
    "InMemoryTracer",
    "RecordedSpan",
    "NoopMetricsRecorder",
    "NoopSpan",
    "NoopTracer",
    "get_tracer",
    "get_metrics_recorder",
]
