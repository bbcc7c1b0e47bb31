"""Engine construction from configuration."""

from __future__ import annotations

from typing import Optional

from .config import SagaflowConfig, load_config
from .definition import WorkflowOptions
from .engine import Engine
from .observability import (
    StructlogLogger,
    configure_logging,
    get_metrics_recorder,
    get_tracer,
)
from .persistence import InMemoryExecutionRepository


def create_engine(config: Optional[SagaflowConfig] = None) -> Engine:
    """Factory function to build an :class:`Engine` from configuration.

    Logging is configured from ``config.logging``, tracer and metrics
    backends are picked from ``config.observability`` and an in-memory
    execution history is attached when ``config.history.enabled`` is set.
    """

    config = config or load_config()
    configure_logging(config.logging)

    repository = None
    if config.history.enabled:
        repository = InMemoryExecutionRepository(config.history.max_entries)

    return Engine(
        logger=StructlogLogger(),
        metrics=get_metrics_recorder(config=config),
        tracer=get_tracer(config=config),
        repository=repository,
    )


def default_options(config: Optional[SagaflowConfig] = None) -> WorkflowOptions:
    """Workflow options seeded from ``config.defaults``.

    Example:
        engine.register_workflow(checkout_workflow(..., options=default_options()))
    """

    config = config or load_config()
    return WorkflowOptions.from_config(config.defaults)
