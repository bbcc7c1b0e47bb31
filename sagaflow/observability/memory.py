"""In-memory tracing and metrics adapters.

Useful for tests or local debugging when no telemetry backend is
configured. Data is kept for the lifetime of the adapter instance only.
"""

from __future__ import annotations

from collections import Counter
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from ..contracts import Status
from .ports import Span


class RecordedSpan(BaseModel):
    """Span captured by :class:`InMemoryTracer`."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str
    parent: Optional[str] = None
    attributes: Dict[str, Any] = Field(default_factory=dict)
    errors: List[BaseException] = Field(default_factory=list)
    ended: bool = False

    def end(self) -> None:
        self.ended = True

    def set_attribute(self, key: str, value: Any) -> None:
        self.attributes[key] = value

    def record_error(self, error: BaseException) -> None:
        self.errors.append(error)


class InMemoryTracer:
    """Tracer that keeps every started span in ``spans``, in start order."""

    def __init__(self) -> None:
        self.spans: List[RecordedSpan] = []

    def start_span(self, name: str, parent: Optional[Span] = None) -> RecordedSpan:
        parent_name = parent.name if isinstance(parent, RecordedSpan) else None
        span = RecordedSpan(name=name, parent=parent_name)
        self.spans.append(span)
        return span

    def find(self, name: str) -> List[RecordedSpan]:
        """Return spans called ``name``."""
        return [span for span in self.spans if span.name == name]


class MetricSample(BaseModel):
    workflow: str
    activity: Optional[str] = None
    duration: float
    status: Status


class InMemoryMetricsRecorder:
    """Metrics recorder keeping samples and counters in local memory."""

    def __init__(self) -> None:
        self.workflow_samples: List[MetricSample] = []
        self.activity_samples: List[MetricSample] = []
        self.workflow_counts: Counter[Tuple[str, Status]] = Counter()
        self.activity_counts: Counter[Tuple[str, str, Status]] = Counter()

    # ------------------------------------------------------------------
    def record_workflow_execution(
        self, workflow_name: str, duration: float, status: Status
    ) -> None:
        self.workflow_samples.append(
            MetricSample(workflow=workflow_name, duration=duration, status=status)
        )

    def record_activity_execution(
        self, workflow_name: str, activity_name: str, duration: float, status: Status
    ) -> None:
        self.activity_samples.append(
            MetricSample(
                workflow=workflow_name,
                activity=activity_name,
                duration=duration,
                status=status,
            )
        )

    def increment_workflow_counter(self, workflow_name: str, status: Status) -> None:
        self.workflow_counts[(workflow_name, status)] += 1

    def increment_activity_counter(
        self, workflow_name: str, activity_name: str, status: Status
    ) -> None:
        self.activity_counts[(workflow_name, activity_name, status)] += 1
