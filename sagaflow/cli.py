"""Command line interface for inspecting and running sagaflow workflows."""

from __future__ import annotations

import asyncio
import json
from typing import Optional

import typer
from pydantic import ValidationError

from sagaflow.cli_utils.target import (
    coerce_input,
    describe_execution,
    describe_workflow,
    resolve_engine,
)
from sagaflow.engine import Engine
from sagaflow.errors import SagaflowError

app = typer.Typer(help="CLI for sagaflow workflows")

workflow_app = typer.Typer(help="Commands for registered workflows")

app.add_typer(workflow_app, name="workflow")


@app.callback()
def main() -> None:
    """Sagaflow CLI entry point."""
    pass


def _load_engine(target: str) -> Engine:
    try:
        return resolve_engine(target)
    except (ImportError, ValueError) as exc:
        typer.secho(f"Cannot load engine from {target}: {exc}", fg=typer.colors.RED)
        raise typer.Exit(code=1)


@workflow_app.command("list")
def workflow_list(target: str) -> None:
    """
    List the workflows registered on an engine.

    Args:
        target: ``module:attribute`` naming an Engine or a factory returning one

    Example:
        sagaflow workflow list myshop.wiring:build_engine
        # Output: checkout    Checkout Workflow    4 activities
    """
    engine = _load_engine(target)
    workflows = engine.list_workflows()
    if not workflows:
        typer.echo("No workflows registered")
        return
    for wf in workflows:
        typer.echo(f"{wf.id}\t{wf.name}\t{len(wf.activities)} activities")


@workflow_app.command("show")
def workflow_show(target: str, workflow_id: str) -> None:
    """
    Show the activities and execution policy of one workflow.

    Example:
        sagaflow workflow show myshop.wiring:build_engine checkout
    """
    engine = _load_engine(target)
    definition = engine.get_workflow(workflow_id)
    if definition is None:
        typer.echo("Workflow not found")
        raise typer.Exit(code=1)
    for line in describe_workflow(definition):
        typer.echo(line)


@workflow_app.command("run")
def workflow_run(
    target: str,
    workflow_id: str,
    input: Optional[str] = typer.Option(
        None, "--input", help="JSON payload passed to the first activity"
    ),
) -> None:
    """
    Execute a workflow in-process and print its execution record.

    The JSON input is validated into the workflow's payload model when the
    workflow declares one. Exits with code 1 when the workflow fails, after
    printing which activity broke and whether compensation succeeded.

    Example:
        sagaflow workflow run myshop.wiring:build_engine payment \\
            --input '{"order_id": 1, "customer_id": 7, "amount": "19.99", "payment_method_id": 3}'
        # Output: Execution exec-4f1c...: COMPLETED
        #         - ValidatePayment: COMPLETED (attempts=1)
    """
    engine = _load_engine(target)
    definition = engine.get_workflow(workflow_id)
    if definition is None:
        typer.echo("Workflow not found")
        raise typer.Exit(code=1)

    try:
        raw = json.loads(input) if input else None
        payload = coerce_input(definition, raw)
    except (json.JSONDecodeError, ValidationError) as exc:
        typer.secho(f"Invalid input: {exc}", fg=typer.colors.RED)
        raise typer.Exit(code=1)

    try:
        execution = asyncio.run(engine.execute(workflow_id, payload))
    except SagaflowError as exc:
        if exc.execution is not None:
            for line in describe_execution(exc.execution):
                typer.echo(line)
        typer.secho(f"Workflow failed: {exc}", fg=typer.colors.RED)
        raise typer.Exit(code=1)

    for line in describe_execution(execution):
        typer.echo(line)


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    app()
