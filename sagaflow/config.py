from __future__ import annotations

import os
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, Field

DEFAULT_CONFIG_PATH = "sagaflow.yaml"


class DefaultsConfig(BaseModel):
    """Execution policy applied to workflows built from configuration."""

    max_retries: int = Field(default=3, ge=0)
    retry_delay: float = Field(default=1.0, ge=0)
    timeout: float = Field(default=300.0, ge=0)
    compensate_on_failure: bool = True


class LoggingConfig(BaseModel):
    """Logging configuration settings."""

    level: str = "INFO"
    format: str = "%(asctime)s %(levelname)s %(name)s %(message)s"
    renderer: Literal["keyvalue", "json"] = "keyvalue"


class ObservabilityConfig(BaseModel):
    """Tracing and metrics backends."""

    tracing: Literal["noop", "memory", "otel"] = "noop"
    metrics: Literal["noop", "memory", "otel"] = "noop"


class HistoryConfig(BaseModel):
    """In-process execution history."""

    enabled: bool = False
    max_entries: int = Field(default=1000, gt=0)


class SagaflowConfig(BaseModel):
    """Top-level configuration model."""

    defaults: DefaultsConfig = DefaultsConfig()
    logging: LoggingConfig = LoggingConfig()
    observability: ObservabilityConfig = ObservabilityConfig()
    history: HistoryConfig = HistoryConfig()


def load_config(path: Optional[str] = None) -> SagaflowConfig:
    """Load configuration from YAML file.

    Args:
        path: Optional path to config file. Falls back to SAGAFLOW_CONFIG env
            variable or 'sagaflow.yaml' in the current directory.
    """

    config_path = path or os.getenv("SAGAFLOW_CONFIG", DEFAULT_CONFIG_PATH)
    if os.path.exists(config_path):
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        config = SagaflowConfig(**data)
    else:
        config = SagaflowConfig()

    env_level = os.getenv("SAGAFLOW_LOG_LEVEL")
    if env_level:
        config.logging.level = env_level
    env_tracing = os.getenv("SAGAFLOW_TRACING")
    if env_tracing:
        config.observability = ObservabilityConfig(
            **{**config.observability.model_dump(), "tracing": env_tracing.lower()}
        )
    env_metrics = os.getenv("SAGAFLOW_METRICS")
    if env_metrics:
        config.observability = ObservabilityConfig(
            **{**config.observability.model_dump(), "metrics": env_metrics.lower()}
        )
    return config
