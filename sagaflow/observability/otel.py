"""OpenTelemetry adapters for the tracer and metrics ports."""

from __future__ import annotations

from typing import Any, Optional

from opentelemetry import metrics, trace
from opentelemetry.trace import Status as SpanStatus
from opentelemetry.trace import StatusCode

from ..contracts import Status
from .ports import Span

INSTRUMENTATION_NAME = "sagaflow"


def _attribute_value(value: Any) -> Any:
    if isinstance(value, (str, bool, int, float)):
        return value
    return str(value)


class OpenTelemetrySpan:
    """Wrap an OpenTelemetry span behind the engine's span port."""

    def __init__(self, span: trace.Span) -> None:
        self.span = span

    def end(self) -> None:
        self.span.end()

    def set_attribute(self, key: str, value: Any) -> None:
        self.span.set_attribute(key, _attribute_value(value))

    def record_error(self, error: BaseException) -> None:
        self.span.record_exception(error)
        self.span.set_status(SpanStatus(StatusCode.ERROR, str(error)))


class OpenTelemetryTracer:
    """Start OpenTelemetry spans, nesting them under ``parent`` when given."""

    def __init__(self, tracer: Optional[trace.Tracer] = None) -> None:
        self._tracer = tracer or trace.get_tracer(INSTRUMENTATION_NAME)

    def start_span(self, name: str, parent: Optional[Span] = None) -> OpenTelemetrySpan:
        context = None
        if isinstance(parent, OpenTelemetrySpan):
            context = trace.set_span_in_context(parent.span)
        return OpenTelemetrySpan(self._tracer.start_span(name, context=context))


class OpenTelemetryMetricsRecorder:
    """Record workflow metrics as OpenTelemetry histograms and counters."""

    def __init__(self, meter: Optional[metrics.Meter] = None) -> None:
        meter = meter or metrics.get_meter(INSTRUMENTATION_NAME)
        self._workflow_duration = meter.create_histogram(
            "sagaflow.workflow.duration",
            unit="s",
            description="Workflow execution time in seconds",
        )
        self._activity_duration = meter.create_histogram(
            "sagaflow.activity.duration",
            unit="s",
            description="Activity execution time in seconds",
        )
        self._workflow_counter = meter.create_counter(
            "sagaflow.workflow.executions",
            description="Total number of workflow executions",
        )
        self._activity_counter = meter.create_counter(
            "sagaflow.activity.executions",
            description="Total number of activity executions",
        )

    def record_workflow_execution(
        self, workflow_name: str, duration: float, status: Status
    ) -> None:
        self._workflow_duration.record(
            duration, {"workflow": workflow_name, "status": status.value}
        )

    def record_activity_execution(
        self, workflow_name: str, activity_name: str, duration: float, status: Status
    ) -> None:
        self._activity_duration.record(
            duration,
            {"workflow": workflow_name, "activity": activity_name, "status": status.value},
        )

    def increment_workflow_counter(self, workflow_name: str, status: Status) -> None:
        self._workflow_counter.add(1, {"workflow": workflow_name, "status": status.value})

    def increment_activity_counter(
        self, workflow_name: str, activity_name: str, status: Status
    ) -> None:
        self._activity_counter.add(
            1,
            {"workflow": workflow_name, "activity": activity_name, "status": status.value},
        )
