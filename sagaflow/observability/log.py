"""structlog adapter for the engine's logger port."""

from __future__ import annotations

import logging
from typing import Any, Optional

import structlog

from ..config import LoggingConfig


class StructlogLogger:
    """Forward structured log calls to a structlog logger.

    Fields travel as event keys, so renderers and processors see them
    unflattened.
    """

    def __init__(self, logger: Optional[Any] = None) -> None:
        self._logger = logger or structlog.get_logger("sagaflow.engine")

    def debug(self, msg: str, **fields: Any) -> None:
        self._logger.debug(msg, **fields)

    def info(self, msg: str, **fields: Any) -> None:
        self._logger.info(msg, **fields)

    def warning(self, msg: str, **fields: Any) -> None:
        self._logger.warning(msg, **fields)

    def error(self, msg: str, **fields: Any) -> None:
        self._logger.error(msg, **fields)


def configure_logging(config: LoggingConfig) -> None:
    """Route structlog through the ``sagaflow`` stdlib logger.

    Level and line format come from ``config``; events are rendered as
    ``key=value`` pairs or as JSON depending on ``config.renderer``.
    """

    logger = logging.getLogger("sagaflow")
    logger.setLevel(config.level.upper())
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(config.format))
        logger.addHandler(handler)

    if config.renderer == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.processors.KeyValueRenderer(key_order=["event"])

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
    )
