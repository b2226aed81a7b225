"""Context propagation for structured logging.

Fields can be attached to log records two ways:

- ``set_log_context`` stores them in a ContextVar; ContextInjectingFilter on
  the queue handler copies them onto every record emitted in that task.
- ``ContextBoundLogger`` binds them to one logger instance. The storage
  client uses this to tag every record with its ``log_scope``.
"""

from __future__ import annotations

import logging
from contextvars import ContextVar
from typing import Any

_log_context: ContextVar[dict[str, Any]] = ContextVar("log_context", default={})


def set_log_context(**kwargs: Any) -> None:
    """Add fields to the logging context of the current task.

    Example:
        set_log_context(command="put", bucket="uploads")
        logger.info("uploading")  # record carries command and bucket
    """
    current = _log_context.get().copy()
    current.update(kwargs)
    _log_context.set(current)


def clear_log_context() -> None:
    """Drop every field from the current logging context."""
    _log_context.set({})


class ContextInjectingFilter(logging.Filter):
    """Copy the ContextVar logging context onto each LogRecord.

    Existing record attributes are never overwritten.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in _log_context.get().items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True


class ContextBoundLogger(logging.LoggerAdapter):
    """Logger adapter that binds context to a logger instance.

    Example:
        logger = ContextBoundLogger(logging.getLogger(__name__), log_scope="s3")
        logger.debug("get object", extra={"bucket": "b", "key": "k"})

        uploads = logger.bind(bucket="uploads")
        uploads.info("ready")  # carries log_scope and bucket
    """

    def __init__(self, logger: logging.Logger, **context: Any) -> None:
        super().__init__(logger, context)

    @property
    def context(self) -> dict[str, Any]:
        """Fields bound to this logger."""
        return dict(self.extra or {})

    def bind(self, **context: Any) -> ContextBoundLogger:
        """Return a new logger carrying this logger's context plus ``context``."""
        return ContextBoundLogger(self.logger, **{**self.context, **context})

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        extra = kwargs.get("extra", {})
        kwargs["extra"] = {**self.context, **extra}
        return msg, kwargs


def get_logger(name: str, **context: Any) -> ContextBoundLogger:
    """Get a logger with bound context.

    Example:
        logger = get_logger(__name__, log_scope="s3")
        logger.info("connected", extra={"endpoint": "localhost:9000"})
    """
    return ContextBoundLogger(logging.getLogger(name), **context)
