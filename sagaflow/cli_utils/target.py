"""Utility functions to locate engines and render executions for the CLI."""

from __future__ import annotations

import importlib
import json
import os
import sys
from typing import Any, Iterator

from pydantic import BaseModel

from ..contracts import ExecutionContext
from ..definition import WorkflowDefinition
from ..engine import Engine


def resolve_engine(target: str) -> Engine:
    """Import ``module:attribute`` and return the :class:`Engine` it names.

    The attribute may be an engine or a zero-argument callable returning
    one. The current directory is importable, as with ``python -m``.

    Raises:
        ValueError: If ``target`` is malformed or does not yield an engine.
        ImportError: If the module cannot be imported.
    """
    module_name, sep, attribute = target.partition(":")
    if not sep or not module_name or not attribute:
        raise ValueError(f"Target must look like 'module:attribute', got {target!r}")

    cwd = os.getcwd()
    if cwd not in sys.path:
        sys.path.insert(0, cwd)

    module = importlib.import_module(module_name)
    try:
        obj = getattr(module, attribute)
    except AttributeError:
        raise ValueError(f"{module_name} has no attribute {attribute!r}") from None

    if not isinstance(obj, Engine) and callable(obj):
        obj = obj()
    if not isinstance(obj, Engine):
        raise ValueError(f"{target} is not an Engine or an Engine factory")
    return obj


def coerce_input(definition: WorkflowDefinition, raw: Any) -> Any:
    """Validate raw JSON input into the workflow's payload model, if declared."""
    if definition.payload_type is None or raw is None:
        return raw
    return definition.payload_type.model_validate(raw)


def render_value(value: Any) -> str:
    if isinstance(value, BaseModel):
        return value.model_dump_json()
    return json.dumps(value, default=str)


def describe_workflow(definition: WorkflowDefinition) -> Iterator[str]:
    options = definition.options
    yield f"Workflow {definition.id}: {definition.name}"
    if definition.description:
        yield f"Description: {definition.description}"
    yield (
        f"Options: max_retries={options.max_retries} retry_delay={options.retry_delay}s "
        f"timeout={options.timeout}s compensate_on_failure={options.compensate_on_failure}"
    )
    for position, activity in enumerate(definition.activities, start=1):
        yield f"  {position}. {activity.name}"


def describe_execution(execution: ExecutionContext) -> Iterator[str]:
    yield f"Execution {execution.execution_id}: {execution.status.value}"
    for record in execution.activities:
        line = f"- {record.name}: {record.status.value} (attempts={record.attempts})"
        if record.error is not None:
            line += f" error: {record.error}"
        yield line
    if execution.compensation_error is not None:
        yield f"Compensation error: {execution.compensation_error}"
    if execution.output is not None:
        yield f"Output: {render_value(execution.output)}"
