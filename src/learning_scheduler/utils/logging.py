from __future__ import annotations

import logging
from typing import Optional, Union

import structlog

from learning_scheduler.config.schema import LoggingConfig

SCHEDULER_LOGGER = "learning_scheduler"


def resolve_level(level: Union[str, int]) -> int:
    """Map a level name (any case) or number to a logging constant, defaulting to INFO."""
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.strip().upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def configure_logging(level: Union[str, int] = "INFO", json_output: bool = False) -> None:
    """
    Route scheduler logging through one threshold and one structlog pipeline.

    The ledger, strategy engine and sequencer log through stdlib loggers under
    `learning_scheduler`; the CLI emits structlog events. Both honour `level`.
    JSON rendering suits the API deployment, the console renderer suits the CLI.
    """
    numeric_level = resolve_level(level)
    logging.basicConfig(level=numeric_level)
    logging.getLogger(SCHEDULER_LOGGER).setLevel(numeric_level)

    renderer = structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.stdlib.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
    )


def configure_from_settings(config: LoggingConfig) -> None:
    configure_logging(config.level, config.json_output)


def get_logger(name: Optional[str] = None):
    """Return a structlog logger that inherits the global configuration."""
    return structlog.get_logger(name)
