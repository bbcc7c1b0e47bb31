"""Sagaflow: in-process saga orchestration with retries and compensation."""

from .activity import Activity, BaseActivity, ConditionalActivity, ParallelActivity
from .config import SagaflowConfig, load_config
from .contracts import ActivityContext, ActivityExecution, ExecutionContext, Status
from .definition import WorkflowBuilder, WorkflowDefinition, WorkflowOptions
from .engine import Engine
from .errors import (
    CancellationError,
    CompensationError,
    ConfigurationError,
    NotFoundError,
    SagaflowError,
    StepError,
)
from .factory import create_engine, default_options

__version__ = "0.1.0"
__all__ = [
    "Activity",
    "ActivityContext",
    "ActivityExecution",
    "BaseActivity",
    "CancellationError",
    "CompensationError",
    "ConditionalActivity",
    "ConfigurationError",
    "Engine",
    "ExecutionContext",
    "NotFoundError",
    "ParallelActivity",
    "SagaflowConfig",
    "SagaflowError",
    "Status",
    "StepError",
    "WorkflowBuilder",
    "WorkflowDefinition",
    "WorkflowOptions",
    "create_engine",
    "default_options",
    "load_config",
]
