"""Structured logging configuration using structlog.

All modules log through ``get_logger(__name__)`` with snake_case event names and
keyword context, e.g. ``logger.info("session_initialized", reused=False)``.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

from config import get_settings

__all__ = ["setup_logging", "get_logger"]


def setup_logging(level: str | None = None, log_format: str | None = None) -> None:
    """Configure structlog and the standard library logging bridge.

    Args:
        level: Log level name. Defaults to settings.log_level.
        log_format: "json" or "console". Defaults to settings.log_format.
    """
    settings = get_settings()
    level_name = (level or settings.log_level).upper()
    log_format = log_format or settings.log_format
    log_level = getattr(logging, level_name, logging.INFO)

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    renderer: Any
    if log_format == "console":
        renderer = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[*shared_processors, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=False,
    )

    # uvicorn and playwright log through the standard library
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level, force=True)


def get_logger(name: str | None = None) -> Any:
    """Get a structured logger bound to a module name.

    Args:
        name: Logger name, usually ``__name__``.

    Returns:
        structlog bound logger
    """
    return structlog.get_logger(name)
