"""In-memory implementation of the execution repository."""

from __future__ import annotations

import asyncio
from collections import OrderedDict
from typing import Optional

from ..contracts import ExecutionContext
from .repository import ExecutionRepository


class InMemoryExecutionRepository(ExecutionRepository):
    """Store finished executions in local memory.

    Holds at most ``max_entries`` executions, evicting the oldest first.
    Data is not persisted across process restarts.
    """

    def __init__(self, max_entries: int = 1000) -> None:
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self._max_entries = max_entries
        self._executions: OrderedDict[str, ExecutionContext] = OrderedDict()
        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------
    async def save_execution(self, execution: ExecutionContext) -> None:
        async with self._lock:
            self._executions[execution.execution_id] = execution
            self._executions.move_to_end(execution.execution_id)
            while len(self._executions) > self._max_entries:
                self._executions.popitem(last=False)

    async def get_execution(self, execution_id: str) -> ExecutionContext | None:
        return self._executions.get(execution_id)

    async def list_executions(
        self, workflow_id: Optional[str] = None
    ) -> list[ExecutionContext]:
        return [
            execution
            for execution in self._executions.values()
            if workflow_id is None or execution.workflow_id == workflow_id
        ]

    def __len__(self) -> int:
        return len(self._executions)
