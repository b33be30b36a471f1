"""Structured JSON logging for retryable.

The engine logs through module-level stdlib loggers and tags records
with ``operation`` and ``attempt``; this module renders them.

Usage:
    from retryable.observability.logging import configure_logging, get_logger

    # Configure at application startup
    configure_logging(log_level="INFO", json_format=True)

    # Tag everything logged inside the block
    with RetryLogContext(operation="PaymentsClient.charge"):
        await charge(order)
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any

# Attributes every LogRecord carries; anything else came from ``extra``.
_RESERVED_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "message",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "thread",
        "threadName",
        "taskName",
        "exc_info",
        "exc_text",
        "stack_info",
        "operation",
        "attempt",
    }
)


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging.

    Outputs log records as JSON with timestamp, level, message, and the
    retry context (operation and attempt number) when present.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if hasattr(record, "operation"):
            log_data["operation"] = record.operation

        if hasattr(record, "attempt"):
            log_data["attempt"] = record.attempt

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_data[key] = value

        return json.dumps(log_data, default=str)


class ContextFilter(logging.Filter):
    """Stamp fixed context fields onto records that do not already carry them."""

    def __init__(self, **context: Any) -> None:
        super().__init__()
        self.context = context

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in self.context.items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True


def configure_logging(
    log_level: str = "INFO",
    json_format: bool = True,
    include_stdlib: bool = False,
) -> None:
    """Route all logging to a single stdout handler.

    Any handlers already on the root logger are replaced, so calling this
    twice does not duplicate output.

    Args:
        log_level: Level name, case-insensitive.
        json_format: Render records with :class:`JSONFormatter`; otherwise
            one plain line per record.
        include_stdlib: Leave the ``asyncio`` logger at *log_level*
            instead of raising it to ``WARNING``.
    """
    level = logging.getLevelName(log_level.upper())
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(
        JSONFormatter()
        if json_format
        else logging.Formatter("%(asctime)s %(levelname)-8s %(name)s: %(message)s")
    )

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers[:] = [handler]

    if not include_stdlib:
        logging.getLogger("asyncio").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance with the given name (usually ``__name__``)."""
    return logging.getLogger(name)


class RetryLogContext:
    """Tag every record emitted inside the block with *context*.

    The filter goes on the root logger's handlers, because filters on a
    logger do not see records propagated from its children.

    Usage:
        with RetryLogContext(operation="sync-orders", tenant="acme"):
            await retry_async(sync_orders, policy)
    """

    def __init__(self, **context: Any) -> None:
        self._filter = ContextFilter(**context)
        self._handlers: list[logging.Handler] = []

    def __enter__(self) -> RetryLogContext:
        self._handlers = list(logging.getLogger().handlers)
        for handler in self._handlers:
            handler.addFilter(self._filter)
        return self

    def __exit__(self, *args: Any) -> None:
        for handler in self._handlers:
            handler.removeFilter(self._filter)
        self._handlers = []
