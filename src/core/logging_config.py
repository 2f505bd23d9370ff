"""Structured logging configuration.

This module initializes structlog with a stable JSON line format.
The minimum level is read once from ``CONFLUX_LOG_LEVEL``.
"""

from __future__ import annotations

import logging
import os
from typing import Any

import structlog

from core.constants import DEFAULT_LOG_LEVEL, ENV_LOG_LEVEL

_configured = False
_LEVELS_BY_NAME = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def get_logger(name: str) -> Any:
    """Return a module logger instance.

    Args:
        name: Logger name, usually __name__.

    Returns:
        A structlog bound logger with structured output.
    """
    _configure_structlog()
    return structlog.get_logger(name)


def _configure_structlog() -> None:
    global _configured
    if _configured:
        return
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(_resolve_log_level()),
        cache_logger_on_first_use=True,
    )
    _configured = True


def _resolve_log_level() -> int:
    """Map the configured level name onto a stdlib level number.

    Unknown names fall back to the default level rather than failing
    import of every module that logs.
    """
    level_name = os.getenv(ENV_LOG_LEVEL, DEFAULT_LOG_LEVEL).strip().upper()
    return _LEVELS_BY_NAME.get(level_name, _LEVELS_BY_NAME[DEFAULT_LOG_LEVEL])
