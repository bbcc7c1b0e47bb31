"""Execution state models exchanged between the engine and its callers."""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from .observability.ports import Span


class Status(str, Enum):
    """Lifecycle states shared by workflow and activity executions."""

    PENDING = "PENDING"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    COMPENSATING = "COMPENSATING"
    COMPENSATED = "COMPENSATED"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_execution_id() -> str:
    return f"exec-{uuid.uuid4().hex}"


class ActivityExecution(BaseModel):
    """Audit record for one activity slot of a workflow run."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str
    status: Status
    start_time: datetime
    end_time: Optional[datetime] = None
    input: Any = None
    output: Any = None
    error: Optional[BaseException] = None
    attempts: int = 0


class ExecutionContext(BaseModel):
    """Per-run record of a workflow's progress, inputs, outputs and outcome.

    The engine owns the record while the run is in flight and hands back a
    finished, frozen copy once the run ends.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    workflow_id: str
    execution_id: str = Field(default_factory=generate_execution_id)
    status: Status = Status.PENDING
    start_time: datetime = Field(default_factory=utcnow)
    end_time: Optional[datetime] = None
    input: Any = None
    output: Any = None
    error: Optional[BaseException] = None
    compensation_error: Optional[BaseException] = None
    activities: Tuple[ActivityExecution, ...] = ()
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @property
    def duration(self) -> Optional[timedelta]:
        """Wall-clock duration of the run, once it has ended."""
        if self.end_time is None:
            return None
        return self.end_time - self.start_time

    @property
    def succeeded(self) -> bool:
        return self.status == Status.COMPLETED

    @property
    def failed_activity(self) -> Optional[ActivityExecution]:
        """The activity record that stopped forward execution, if any."""
        for record in self.activities:
            if record.status == Status.FAILED:
                return record
        return None


@dataclass(frozen=True)
class ActivityContext:
    """Handle given to every ``execute``/``compensate`` call.

    Carries identifiers for logging, the active tracing span and the
    workflow-wide deadline (event loop time) so long-running activities can
    size their own I/O timeouts.
    """

    workflow_id: str
    execution_id: str
    activity_name: str
    span: "Span"
    attempt: int = 1
    deadline: Optional[float] = None

    def remaining(self) -> Optional[float]:
        """Seconds left before the workflow deadline, ``None`` if unbounded."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - asyncio.get_running_loop().time())


__all__ = [
    "Status",
    "ActivityExecution",
    "ExecutionContext",
    "ActivityContext",
    "generate_execution_id",
    "utcnow",
]
