"""Observability interfaces consumed by the workflow engine.

The engine calls these at fixed points of a run and holds no opinion on the
backend; adapters for the standard library, OpenTelemetry and in-memory
recording live next to this module.
"""

from __future__ import annotations

from typing import Any, Optional, Protocol, runtime_checkable

from ..contracts import Status


@runtime_checkable
class Logger(Protocol):
    """Structured logger; ``fields`` are key/value context for the message."""

    def debug(self, msg: str, **fields: Any) -> None: ...

    def info(self, msg: str, **fields: Any) -> None: ...

    def warning(self, msg: str, **fields: Any) -> None: ...

    def error(self, msg: str, **fields: Any) -> None: ...


@runtime_checkable
class MetricsRecorder(Protocol):
    """Sink for workflow and activity timings and outcome counters.

    Durations are in seconds.
    """

    def record_workflow_execution(
        self, workflow_name: str, duration: float, status: Status
    ) -> None: ...

    def record_activity_execution(
        self, workflow_name: str, activity_name: str, duration: float, status: Status
    ) -> None: ...

    def increment_workflow_counter(self, workflow_name: str, status: Status) -> None: ...

    def increment_activity_counter(
        self, workflow_name: str, activity_name: str, status: Status
    ) -> None: ...


@runtime_checkable
class Span(Protocol):
    """A unit of traced work."""

    def end(self) -> None: ...

    def set_attribute(self, key: str, value: Any) -> None: ...

    def record_error(self, error: BaseException) -> None: ...


@runtime_checkable
class Tracer(Protocol):
    """Creates spans; ``parent`` nests the new span under an open one."""

    def start_span(self, name: str, parent: Optional[Span] = None) -> Span: ...


__all__ = ["Logger", "MetricsRecorder", "Span", "Tracer"]
