"""Exception hierarchy for sagaflow workflows."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .contracts import ExecutionContext


class SagaflowError(Exception):
    """Base class for all sagaflow errors.

    Errors raised out of :meth:`~sagaflow.engine.Engine.execute` carry the
    finished :class:`~sagaflow.contracts.ExecutionContext` on ``execution``
    and, when rollback also broke, the :class:`CompensationError` on
    ``compensation_error``.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message
        self.execution: Optional[ExecutionContext] = None
        self.compensation_error: Optional[CompensationError] = None


class ConfigurationError(SagaflowError):
    """Invalid workflow definition or registration."""


class NotFoundError(SagaflowError):
    """Requested workflow is not registered."""

    def __init__(self, workflow_id: str) -> None:
        super().__init__(f"workflow not found: {workflow_id}")
        self.workflow_id = workflow_id


class StepError(SagaflowError):
    """An activity's forward execution failed.

    Activities may raise this directly; ``retryable=False`` tells the engine
    not to spend the remaining retry budget on the step.
    """

    def __init__(
        self,
        message: str,
        activity: Optional[str] = None,
        attempts: int = 0,
        retryable: bool = True,
    ) -> None:
        super().__init__(message)
        self.activity = activity
        self.attempts = attempts
        self.retryable = retryable


class CancellationError(SagaflowError):
    """Execution was cancelled or ran past its timeout."""

    def __init__(self, message: str, activity: Optional[str] = None) -> None:
        super().__init__(message)
        self.activity = activity


class CompensationError(SagaflowError):
    """A compensation step failed while rolling back a workflow."""

    def __init__(self, message: str, activity: str) -> None:
        super().__init__(message)
        self.activity = activity


__all__ = [
    "SagaflowError",
    "ConfigurationError",
    "NotFoundError",
    "StepError",
    "CancellationError",
    "CompensationError",
]
