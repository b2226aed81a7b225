"""Structured logging for the storage client and CLI.

Quick Start:
    from s3_service.infra.logging import setup_logging, get_logger

    setup_logging()
    logger = get_logger(__name__, log_scope="s3")
    logger.info("ready")
"""

from __future__ import annotations

from .config import complete, configure_logging, setup_logging, shutdown
from .context import (
    ContextBoundLogger,
    ContextInjectingFilter,
    clear_log_context,
    get_logger,
    set_log_context,
)
from .formatters import JSONFormatter

__all__ = [
    "ContextBoundLogger",
    "ContextInjectingFilter",
    "JSONFormatter",
    "clear_log_context",
    "complete",
    "configure_logging",
    "get_logger",
    "set_log_context",
    "setup_logging",
    "shutdown",
]
