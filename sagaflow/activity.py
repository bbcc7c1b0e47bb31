"""Activity contract and composite activities."""

from __future__ import annotations

import abc
import asyncio
from typing import Any, Callable, List, Protocol, runtime_checkable

import structlog

from .contracts import ActivityContext

logger = structlog.get_logger(__name__)


@runtime_checkable
class Activity(Protocol):
    """One step of a workflow.

    ``execute`` performs the step's side effect and returns the payload for
    the next step; raising signals failure. It may be retried, so it must
    be idempotent. ``compensate`` undoes a successful ``execute`` and must
    itself detect from the payload whether there is anything to undo. One
    instance serves many concurrent runs, so per-run state belongs in the
    payload.
    """

    name: str

    async def execute(self, ctx: ActivityContext, payload: Any) -> Any: ...

    async def compensate(self, ctx: ActivityContext, payload: Any) -> None: ...


class BaseActivity(metaclass=abc.ABCMeta):
    """Common base for activities with a no-op compensation."""

    def __init__(self, name: str, description: str = "") -> None:
        self.name = name
        self.description = description

    @abc.abstractmethod
    async def execute(self, ctx: ActivityContext, payload: Any) -> Any:
        raise NotImplementedError

    async def compensate(self, ctx: ActivityContext, payload: Any) -> None:
        """Nothing to undo by default (read-only or pure steps)."""
        return None

    def __repr__(self) -> str:  # pragma: no cover - simple formatting
        return f"{type(self).__name__}(name={self.name!r})"


class ConditionalActivity(BaseActivity):
    """Run ``activity`` only when ``condition(payload)`` holds.

    When the condition is false the payload passes through unchanged, and
    compensation is skipped for the same payload.
    """

    def __init__(
        self, name: str, activity: Activity, condition: Callable[[Any], bool]
    ) -> None:
        super().__init__(name, f"Conditional: {activity.name}")
        self.activity = activity
        self.condition = condition

    async def execute(self, ctx: ActivityContext, payload: Any) -> Any:
        if self.condition(payload):
            return await self.activity.execute(ctx, payload)
        return payload

    async def compensate(self, ctx: ActivityContext, payload: Any) -> None:
        if self.condition(payload):
            await self.activity.compensate(ctx, payload)


class ParallelActivity(BaseActivity):
    """Fan ``activities`` out concurrently over the same payload.

    All children run to completion. If any of them fails, the children that
    succeeded are compensated and the first failure in child order is
    raised, so the engine sees a step with nothing left to undo. Otherwise
    the list of child outputs is returned.
    """

    def __init__(self, name: str, *activities: Activity) -> None:
        super().__init__(name, "Parallel execution")
        self.activities: List[Activity] = list(activities)

    async def execute(self, ctx: ActivityContext, payload: Any) -> List[Any]:
        results = await asyncio.gather(
            *(activity.execute(ctx, payload) for activity in self.activities),
            return_exceptions=True,
        )
        errors = [result for result in results if isinstance(result, BaseException)]
        if errors:
            succeeded = [
                activity
                for activity, result in zip(self.activities, results)
                if not isinstance(result, BaseException)
            ]
            await self._rollback(ctx, payload, succeeded)
            raise errors[0]
        return list(results)

    async def compensate(self, ctx: ActivityContext, payload: Any) -> None:
        results = await asyncio.gather(
            *(activity.compensate(ctx, payload) for activity in self.activities),
            return_exceptions=True,
        )
        _raise_first_error(results)

    async def _rollback(
        self, ctx: ActivityContext, payload: Any, succeeded: List[Activity]
    ) -> None:
        results = await asyncio.gather(
            *(activity.compensate(ctx, payload) for activity in succeeded),
            return_exceptions=True,
        )
        for activity, result in zip(succeeded, results):
            if isinstance(result, BaseException):
                logger.warning(
                    "Failed to compensate parallel branch",
                    activity=self.name,
                    branch=activity.name,
                    error=str(result),
                )


def _raise_first_error(results: List[Any]) -> None:
    for result in results:
        if isinstance(result, BaseException):
            raise result


__all__ = ["Activity", "BaseActivity", "ConditionalActivity", "ParallelActivity"]
