"""Structured JSON logging configuration (infrastructure layer).

Every line is one JSON object. Request and subscriber ids are carried in
context variables so that logs emitted anywhere below an HTTP request or a
WebSocket connection are tagged with them.

Usage:
    setup_logging("INFO", debug_namespaces=["ws"])
    with log_context(request_id="req_1"):
        logging.getLogger("records").info("Adding new record")
"""

import json
import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any

request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)
subscriber_id_var: ContextVar[str | None] = ContextVar("subscriber_id", default=None)

# Attributes passed via ``extra=`` that make it into the JSON line
LOGGED_EXTRA_FIELDS = (
    "record_id",
    "event",
    "operation",
    "duration_ms",
    "subscriber_count",
    "error_code",
    "error",
    "error_type",
    "metadata",
)

NOISY_LOGGERS = ("asyncio", "uvicorn.access", "httpx", "httpcore", "aiosqlite", "websockets")


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "ts": datetime.now(UTC).isoformat(),
            "level": record.levelname.lower(),
            "message": record.getMessage(),
            "logger": record.name,
            "service": getattr(record, "service", record.name.split(".")[0]),
        }

        # An explicit extra wins over the ambient context
        for name, var in (("request_id", request_id_var), ("subscriber_id", subscriber_id_var)):
            value = getattr(record, name, None) or var.get()
            if value:
                log_data[name] = value

        for field in LOGGED_EXTRA_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_data[field] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class NamespaceFilter(logging.Filter):
    """Lets INFO and above through, DEBUG only for enabled logger namespaces."""

    def __init__(self, debug_namespaces: list[str]):
        super().__init__()
        self.debug_namespaces = frozenset(debug_namespaces)

    def filter(self, record: logging.LogRecord) -> bool:
        if record.levelno >= logging.INFO:
            return True
        return record.name.split(".")[0] in self.debug_namespaces


def setup_logging(log_level: str = "INFO", debug_namespaces: list[str] | None = None) -> None:
    """Install one JSON stdout handler on the root logger.

    Args:
        log_level: Default log level (DEBUG, INFO, WARNING, ERROR)
        debug_namespaces: Logger namespaces (``ws``, ``events``...) to open up to DEBUG
    """
    debug_namespaces = debug_namespaces or []

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredFormatter())
    handler.addFilter(NamespaceFilter(debug_namespaces))

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    # With namespaces enabled the filter decides what DEBUG gets through
    root_logger.setLevel(logging.DEBUG if debug_namespaces else log_level)

    for noisy_logger in NOISY_LOGGERS:
        logging.getLogger(noisy_logger).setLevel(logging.WARNING)

    logging.getLogger("app").info(
        "Logging configured",
        extra={
            "service": "app",
            "metadata": {"log_level": log_level, "debug_namespaces": debug_namespaces},
        },
    )


@contextmanager
def log_context(
    request_id: str | None = None,
    subscriber_id: str | None = None,
) -> Iterator[None]:
    """Tag every log line emitted inside the block; previous values are restored on exit."""
    tokens = []
    if request_id is not None:
        tokens.append((request_id_var, request_id_var.set(request_id)))
    if subscriber_id is not None:
        tokens.append((subscriber_id_var, subscriber_id_var.set(subscriber_id)))
    try:
        yield
    finally:
        for var, token in reversed(tokens):
            var.reset(token)


__all__ = [
    "LOGGED_EXTRA_FIELDS",
    "StructuredFormatter",
    "NamespaceFilter",
    "setup_logging",
    "log_context",
    "request_id_var",
    "subscriber_id_var",
]
