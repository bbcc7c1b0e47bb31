"""Execution history for sagaflow workflows."""

from __future__ import annotations

from .inmemory import InMemoryExecutionRepository
from .repository import ExecutionRepository

__all__ = ["ExecutionRepository", "InMemoryExecutionRepository"]
