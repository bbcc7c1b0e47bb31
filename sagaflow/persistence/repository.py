"""Repository abstraction for finished workflow executions."""

from __future__ import annotations

from typing import Optional, Protocol

from ..contracts import ExecutionContext


class ExecutionRepository(Protocol):
    """Protocol for execution history backends."""

    async def save_execution(self, execution: ExecutionContext) -> None:
        """Store a finished execution."""

    async def get_execution(self, execution_id: str) -> ExecutionContext | None:
        """Retrieve an execution by id."""

    async def list_executions(
        self, workflow_id: Optional[str] = None
    ) -> list[ExecutionContext]:
        """Return stored executions, oldest first, optionally for one workflow."""
