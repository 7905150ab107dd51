"""Structured logging configuration.

This module configures structlog once per process with a JSON renderer.
Log lines go to stderr so dump files written to stdout stay clean.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Any

import structlog

from core.constants import DEFAULT_LOG_LEVEL, SUPPORTED_LOG_LEVELS

_CONFIGURED_LEVEL: str | None = None


def configure_logging(level: str = DEFAULT_LOG_LEVEL) -> None:
    """Configure structlog processors and the minimum level.

    Args:
        level: One of ``debug``, ``info``, ``warning``, ``error``.
    """
    global _CONFIGURED_LEVEL
    normalized_level = level.lower() if level.lower() in SUPPORTED_LOG_LEVELS else "info"
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(sort_keys=True),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(normalized_level.upper())
        ),
        logger_factory=_stderr_logger,
        cache_logger_on_first_use=False,
    )
    _CONFIGURED_LEVEL = normalized_level


def get_logger(name: str) -> Any:
    """Return a module logger instance.

    Args:
        name: Logger name, usually __name__.

    Returns:
        A structlog logger bound to the module name.
    """
    if _CONFIGURED_LEVEL is None:
        configure_logging(os.getenv("ESTOOL_LOG_LEVEL", DEFAULT_LOG_LEVEL))
    return structlog.get_logger(name)


def _stderr_logger(*args: Any) -> structlog.PrintLogger:
    """Bind a print logger to the current stderr stream."""
    return structlog.PrintLogger(file=sys.stderr)
