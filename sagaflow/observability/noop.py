"""Adapters that discard tracing and metrics data."""

from __future__ import annotations

from typing import Any, Optional

from ..contracts import Status
from .ports import Span


class NoopSpan:
    def end(self) -> None:
        pass

    def set_attribute(self, key: str, value: Any) -> None:
        pass

    def record_error(self, error: BaseException) -> None:
        pass


class NoopTracer:
    """Tracer used when tracing is disabled."""

    def start_span(self, name: str, parent: Optional[Span] = None) -> NoopSpan:
        return NoopSpan()


class NoopMetricsRecorder:
    """Metrics recorder used when metrics are disabled."""

    def record_workflow_execution(
        self, workflow_name: str, duration: float, status: Status
    ) -> None:
        pass

    def record_activity_execution(
        self, workflow_name: str, activity_name: str, duration: float, status: Status
    ) -> None:
        pass

    def increment_workflow_counter(self, workflow_name: str, status: Status) -> None:
        pass

    def increment_activity_counter(
        self, workflow_name: str, activity_name: str, status: Status
    ) -> None:
        pass
