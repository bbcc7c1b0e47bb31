"""Saga execution engine for sagaflow workflows."""

from __future__ import annotations

import asyncio
import time
from typing import Any, Dict, List, Optional, Tuple

import structlog

from .activity import Activity
from .contracts import (
    ActivityContext,
    ActivityExecution,
    ExecutionContext,
    Status,
    utcnow,
)
from .definition import WorkflowDefinition, validate_activities
from .errors import (
    CancellationError,
    CompensationError,
    ConfigurationError,
    NotFoundError,
    SagaflowError,
    StepError,
)
from .observability import (
    Logger,
    MetricsRecorder,
    NoopMetricsRecorder,
    NoopTracer,
    Span,
    StructlogLogger,
    Tracer,
)
from .persistence import ExecutionRepository
from .utils.retry import sleep_before_retry

_AttemptResult = Tuple[ActivityExecution, Any, Optional[asyncio.CancelledError]]


class Engine:
    """Runs registered workflows as sagas.

    Activities execute sequentially in definition order, each output feeding
    the next activity. A failing activity is retried with a fixed delay; once
    its retries are exhausted every previously succeeded activity is
    compensated in reverse order, using the original workflow input.
    """

    def __init__(
        self,
        logger: Logger | None = None,
        metrics: MetricsRecorder | None = None,
        tracer: Tracer | None = None,
        repository: ExecutionRepository | None = None,
    ) -> None:
        self._workflows: Dict[str, WorkflowDefinition] = {}
        self._logger = logger or StructlogLogger(structlog.get_logger(__name__))
        self._metrics = metrics or NoopMetricsRecorder()
        self._tracer = tracer or NoopTracer()
        self._repository = repository

    @property
    def repository(self) -> ExecutionRepository | None:
        return self._repository

    # ------------------------------------------------------------------
    def register_workflow(self, workflow: WorkflowDefinition) -> None:
        """Make ``workflow`` available to :meth:`execute` under its id.

        Raises:
            ConfigurationError: On an empty or already registered id, an
                empty name, or a workflow without activities.
        """
        if not workflow.id:
            raise ConfigurationError("workflow ID cannot be empty")
        if not workflow.name:
            raise ConfigurationError("workflow name cannot be empty")
        if not workflow.activities:
            raise ConfigurationError("workflow must have at least one activity")
        if workflow.id in self._workflows:
            raise ConfigurationError(f"workflow already registered: {workflow.id}")
        validate_activities(workflow.id, workflow.activities)

        self._workflows[workflow.id] = workflow
        self._logger.info(
            "Workflow registered",
            workflow_id=workflow.id,
            workflow_name=workflow.name,
            activities_count=len(workflow.activities),
        )

    def get_workflow(self, workflow_id: str) -> Optional[WorkflowDefinition]:
        return self._workflows.get(workflow_id)

    def list_workflows(self) -> List[WorkflowDefinition]:
        return list(self._workflows.values())

    # ------------------------------------------------------------------
    async def execute(
        self,
        workflow_id: str,
        input: Any = None,
        *,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> ExecutionContext:
        """Run the workflow registered as ``workflow_id`` over ``input``.

        Returns:
            The finished execution with status ``COMPLETED``.

        Raises:
            NotFoundError: If no workflow is registered under ``workflow_id``.
            StepError: If an activity exhausted its retries.
            CancellationError: If the workflow timeout elapsed.

            Step and cancellation errors carry the finished execution on
            ``execution``; its status is ``COMPENSATED`` when every rollback
            succeeded and ``FAILED`` otherwise, in which case
            ``compensation_error`` is set as well.
        """
        workflow = self._workflows.get(workflow_id)
        if workflow is None:
            raise NotFoundError(workflow_id)

        options = workflow.options
        execution = ExecutionContext(
            workflow_id=workflow.id,
            status=Status.RUNNING,
            input=input,
            metadata=dict(metadata or {}),
        )
        started = time.perf_counter()

        span = self._tracer.start_span(f"workflow.{workflow.name}")
        span.set_attribute("workflow.id", workflow.id)
        span.set_attribute("workflow.execution_id", execution.execution_id)
        self._logger.info(
            "Workflow execution started",
            workflow_id=workflow.id,
            execution_id=execution.execution_id,
        )

        deadline: Optional[float] = None
        if options.timeout > 0:
            deadline = asyncio.get_running_loop().time() + options.timeout

        records: List[ActivityExecution] = []
        executed: List[Activity] = []
        current = input
        forward_error: Optional[BaseException] = None
        interrupt: Optional[asyncio.CancelledError] = None

        for activity in workflow.activities:
            record, output, interrupt = await self._run_activity(
                workflow, execution.execution_id, activity, current, deadline, span
            )
            records.append(record)
            if record.status == Status.FAILED:
                forward_error = record.error
                break
            executed.append(activity)
            current = output

        if forward_error is None:
            execution = execution.model_copy(
                update={
                    "status": Status.COMPLETED,
                    "output": current,
                    "activities": tuple(records),
                }
            )
            return await self._finish(workflow, execution, span, started)

        execution = execution.model_copy(
            update={
                "status": Status.FAILED,
                "error": forward_error,
                "activities": tuple(records),
            }
        )
        if interrupt is not None:
            await self._finish(workflow, execution, span, started)
            raise interrupt

        compensation_error: Optional[CompensationError] = None
        if options.compensate_on_failure:
            self._logger.info(
                "Starting compensation",
                workflow_id=workflow.id,
                execution_id=execution.execution_id,
                activities_count=len(executed),
            )
            execution = execution.model_copy(update={"status": Status.COMPENSATING})
            try:
                compensation_error = await self._compensate(
                    workflow, execution.execution_id, executed, input, span
                )
            except asyncio.CancelledError:
                execution = execution.model_copy(update={"status": Status.FAILED})
                await self._finish(workflow, execution, span, started)
                raise

            if compensation_error is None:
                status = Status.COMPENSATED
            else:
                status = Status.FAILED
                self._logger.error(
                    "Compensation failed",
                    workflow_id=workflow.id,
                    execution_id=execution.execution_id,
                    activity=compensation_error.activity,
                    error=str(compensation_error),
                    original_error=str(forward_error),
                )
            execution = execution.model_copy(
                update={"status": status, "compensation_error": compensation_error}
            )

        execution = await self._finish(workflow, execution, span, started)
        if isinstance(forward_error, SagaflowError):
            forward_error.execution = execution
            forward_error.compensation_error = compensation_error
        raise forward_error

    # ------------------------------------------------------------------
    async def _run_activity(
        self,
        workflow: WorkflowDefinition,
        execution_id: str,
        activity: Activity,
        payload: Any,
        deadline: Optional[float],
        parent: Span,
    ) -> _AttemptResult:
        """Execute ``activity`` with retries and return its audit record."""

        options = workflow.options
        loop = asyncio.get_running_loop()
        start_time = utcnow()
        started = time.perf_counter()

        attempts = 0
        output: Any = None
        error: Optional[BaseException] = None
        interrupt: Optional[asyncio.CancelledError] = None

        while attempts <= options.max_retries:
            if attempts > 0:
                self._logger.warning(
                    "Retrying activity",
                    workflow_id=workflow.id,
                    execution_id=execution_id,
                    activity=activity.name,
                    attempt=attempts + 1,
                    error=str(error),
                )
                try:
                    can_retry = await sleep_before_retry(options.retry_delay, deadline)
                except asyncio.CancelledError as exc:
                    interrupt = exc
                    error = self._cancelled(workflow, activity, exc)
                    break
                if not can_retry:
                    error = self._timed_out(workflow, activity, error)
                    break
            if deadline is not None and loop.time() >= deadline:
                error = self._timed_out(workflow, activity, error)
                break

            attempts += 1
            span = self._tracer.start_span(f"activity.{activity.name}", parent)
            span.set_attribute("activity.name", activity.name)
            span.set_attribute("activity.attempt", attempts)
            ctx = ActivityContext(
                workflow_id=workflow.id,
                execution_id=execution_id,
                activity_name=activity.name,
                span=span,
                attempt=attempts,
                deadline=deadline,
            )

            timer = asyncio.timeout_at(deadline)
            try:
                async with timer:
                    output = await activity.execute(ctx, payload)
            except asyncio.CancelledError as exc:
                span.record_error(exc)
                span.end()
                interrupt = exc
                error = self._cancelled(workflow, activity, exc)
                break
            except Exception as exc:
                span.record_error(exc)
                span.end()
                if timer.expired():
                    error = self._timed_out(workflow, activity, exc)
                    break
                error = exc
                if isinstance(exc, StepError) and not exc.retryable:
                    break
                continue

            span.end()
            error = None
            break

        if error is not None and not isinstance(error, CancellationError):
            step_error = StepError(
                f"activity {activity.name} failed after {attempts} attempt(s): {error}",
                activity=activity.name,
                attempts=attempts,
                retryable=getattr(error, "retryable", True),
            )
            step_error.__cause__ = error
            error = step_error

        status = Status.COMPLETED if error is None else Status.FAILED
        record = ActivityExecution(
            name=activity.name,
            status=status,
            start_time=start_time,
            end_time=utcnow(),
            input=payload,
            output=output if error is None else None,
            error=error,
            attempts=attempts,
        )

        self._metrics.record_activity_execution(
            workflow.name, activity.name, time.perf_counter() - started, status
        )
        self._metrics.increment_activity_counter(workflow.name, activity.name, status)
        if error is None:
            self._logger.debug(
                "Activity completed",
                workflow_id=workflow.id,
                execution_id=execution_id,
                activity=activity.name,
                attempts=attempts,
            )
        else:
            self._logger.error(
                "Activity execution failed",
                workflow_id=workflow.id,
                execution_id=execution_id,
                activity=activity.name,
                attempts=attempts,
                error=str(error),
            )
        return record, output, interrupt

    async def _compensate(
        self,
        workflow: WorkflowDefinition,
        execution_id: str,
        executed: List[Activity],
        payload: Any,
        parent: Span,
    ) -> Optional[CompensationError]:
        """Compensate ``executed`` in reverse order, stopping at the first failure."""

        for activity in reversed(executed):
            self._logger.debug(
                "Compensating activity",
                workflow_id=workflow.id,
                execution_id=execution_id,
                activity=activity.name,
            )
            span = self._tracer.start_span(f"compensate.{activity.name}", parent)
            span.set_attribute("activity.name", activity.name)
            ctx = ActivityContext(
                workflow_id=workflow.id,
                execution_id=execution_id,
                activity_name=activity.name,
                span=span,
            )
            try:
                await activity.compensate(ctx, payload)
            except Exception as exc:
                error = CompensationError(
                    f"compensation failed for activity {activity.name}: {exc}",
                    activity=activity.name,
                )
                error.__cause__ = exc
                span.record_error(error)
                self._logger.error(
                    "Compensation failed for activity",
                    workflow_id=workflow.id,
                    execution_id=execution_id,
                    activity=activity.name,
                    error=str(exc),
                )
                return error
            finally:
                span.end()
        return None

    async def _finish(
        self,
        workflow: WorkflowDefinition,
        execution: ExecutionContext,
        span: Span,
        started: float,
    ) -> ExecutionContext:
        execution = execution.model_copy(update={"end_time": utcnow()})
        duration = time.perf_counter() - started

        span.set_attribute("workflow.status", execution.status.value)
        if execution.error is not None:
            span.record_error(execution.error)
        span.end()

        self._metrics.record_workflow_execution(workflow.name, duration, execution.status)
        self._metrics.increment_workflow_counter(workflow.name, execution.status)

        fields = dict(
            workflow_id=workflow.id,
            execution_id=execution.execution_id,
            status=execution.status.value,
            duration=round(duration, 6),
        )
        if execution.status == Status.COMPLETED:
            self._logger.info("Workflow execution completed", **fields)
        elif execution.status == Status.COMPENSATED:
            self._logger.warning(
                "Workflow execution compensated", error=str(execution.error), **fields
            )
        else:
            self._logger.error(
                "Workflow execution failed", error=str(execution.error), **fields
            )

        if self._repository is not None:
            await self._repository.save_execution(execution)
        return execution

    @staticmethod
    def _timed_out(
        workflow: WorkflowDefinition,
        activity: Activity,
        cause: Optional[BaseException],
    ) -> CancellationError:
        error = CancellationError(
            f"workflow {workflow.id} timed out after {workflow.options.timeout}s "
            f"during activity {activity.name}",
            activity=activity.name,
        )
        error.__cause__ = cause
        return error

    @staticmethod
    def _cancelled(
        workflow: WorkflowDefinition, activity: Activity, cause: BaseException
    ) -> CancellationError:
        error = CancellationError(
            f"workflow {workflow.id} cancelled during activity {activity.name}",
            activity=activity.name,
        )
        error.__cause__ = cause
        return error


__all__ = ["Engine"]
