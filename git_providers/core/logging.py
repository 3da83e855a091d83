"""
Structured Logging
==================

Logging setup for the git provider layer.

Features:
- JSON-formatted log output for log aggregation systems
- Context propagation (service, operation, transport) across awaits
- Timing utility for transport calls

Tokens are never passed to loggers by this package; the formatters do not
need to scrub anything.
"""

from __future__ import annotations

import contextvars
import json
import logging
import sys
import time
import traceback
from datetime import datetime, timezone
from typing import Any

_context_data: contextvars.ContextVar[dict[str, Any] | None] = contextvars.ContextVar(
    "git_provider_log_context", default=None
)

# Extra record attributes copied into structured output
_EXTRA_FIELDS = (
    "duration_ms",
    "status",
    "error_code",
    "attempt",
    "attempts",
    "delay",
    "transport",
)


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_entry: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        context_data = _context_data.get()
        if context_data:
            log_entry["context"] = context_data

        if record.exc_info:
            log_entry["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": "".join(traceback.format_exception(*record.exc_info)),
            }

        for key in _EXTRA_FIELDS:
            if hasattr(record, key):
                log_entry[key] = getattr(record, key)

        log_entry["location"] = f"{record.filename}:{record.lineno}"

        return json.dumps(log_entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """Human-readable console formatter with colors."""

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
        "RESET": "\033[0m",
    }

    def format(self, record: logging.LogRecord) -> str:
        """Format log record for console output."""
        color = self.COLORS.get(record.levelname, self.COLORS["RESET"])
        reset = self.COLORS["RESET"]

        context_data = _context_data.get() or {}
        context_parts = [
            f"[{context_data[key]}]"
            for key in ("service", "operation")
            if context_data.get(key)
        ]
        context_str = " ".join(context_parts)
        if context_str:
            context_str = f" {context_str}"

        message = record.getMessage()
        if hasattr(record, "duration_ms"):
            message += f" ({record.duration_ms:.1f}ms)"

        return f"{color}{record.levelname:8}{reset}{context_str} {record.name}: {message}"


def configure_logging(
    level: int = logging.INFO,
    structured: bool = False,
    logger_name: str = "git_providers",
) -> logging.Logger:
    """
    Attach a stdout handler to the package logger.

    Args:
        level: Minimum log level
        structured: Use JSON format (for production)
        logger_name: Logger to configure (defaults to the package root)

    Returns:
        The configured logger
    """
    logger = logging.getLogger(logger_name)
    logger.setLevel(level)

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredFormatter() if structured else ConsoleFormatter())
    logger.addHandler(handler)
    return logger


def get_log_context() -> dict[str, Any]:
    """Get a copy of the current log context."""
    return (_context_data.get() or {}).copy()


def log_context(**kwargs: Any):
    """
    Context manager for temporarily adding log context.

    Usage:
        with log_context(service="gitlab", operation="create_merge_request"):
            logger.info("Creating merge request")
    """

    class LogContextManager:
        def __init__(self, context: dict[str, Any]):
            self.context = context
            self.token: contextvars.Token | None = None

        def __enter__(self):
            current = get_log_context()
            current.update(self.context)
            self.token = _context_data.set(current)
            return self

        def __exit__(self, exc_type, exc_val, exc_tb):
            if self.token is not None:
                _context_data.reset(self.token)
            return False

    return LogContextManager(kwargs)


class Timer:
    """
    Context manager for timing code blocks.

    Usage:
        with Timer("GET /user") as timer:
            response = await session.get(...)
        logger.debug("done", extra={"duration_ms": timer.duration_ms})
    """

    def __init__(self, name: str = "operation"):
        self.name = name
        self.start_time: float = 0
        self.end_time: float = 0
        self.duration_ms: float = 0

    def __enter__(self) -> Timer:
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.end_time = time.perf_counter()
        self.duration_ms = (self.end_time - self.start_time) * 1000
        return False
