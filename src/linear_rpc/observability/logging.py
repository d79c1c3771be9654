"""Structured logging configuration for linear-rpc.

Provides JSON-formatted structured logging with contextual fields
(request_id, operation) via contextvars. Call sites attach per-record
structured fields with ``extra={"fields": {...}}``.
"""

import json
import logging
import sys
from contextvars import ContextVar
from typing import Any, Dict, Optional

# Context variables for request-scoped logging fields
_request_id: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
_operation: ContextVar[Optional[str]] = ContextVar("operation", default=None)


def set_log_context(
    request_id: Optional[str] = None,
    operation: Optional[str] = None,
):
    """Set contextual logging fields for the current async context."""
    if request_id is not None:
        _request_id.set(request_id)
    if operation is not None:
        _operation.set(operation)


def clear_log_context():
    """Clear all contextual logging fields."""
    _request_id.set(None)
    _operation.set(None)


def _context_fields(record: logging.LogRecord) -> Dict[str, Any]:
    fields: Dict[str, Any] = {}

    request_id = _request_id.get()
    if request_id:
        fields["request_id"] = request_id

    operation = _operation.get()
    if operation:
        fields["operation"] = operation

    extra = getattr(record, "fields", None)
    if isinstance(extra, dict):
        fields.update(extra)

    return fields


class StructuredFormatter(logging.Formatter):
    """JSON structured log formatter with context fields."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        log_entry.update(_context_fields(record))

        # Add exception info if present
        if record.exc_info and record.exc_info[1]:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


class HumanReadableFormatter(logging.Formatter):
    """Human-readable log formatter with context fields for development."""

    def format(self, record: logging.LogRecord) -> str:
        parts = [
            f"[{self.formatTime(record, self.datefmt)}]",
            f"{record.levelname:8s}",
            f"{record.name}:",
            record.getMessage(),
        ]

        ctx = _context_fields(record)
        if ctx:
            parts.append("[" + ", ".join(f"{k}={v}" for k, v in ctx.items()) + "]")

        msg = " ".join(parts)

        if record.exc_info and record.exc_info[1]:
            msg += "\n" + self.formatException(record.exc_info)

        return msg


def configure_logging(environment: str = "development", log_level: str = "INFO"):
    """Configure structured logging for the application.

    Args:
        environment: "production" for JSON output, anything else for human-readable.
        log_level: Logging level string (DEBUG, INFO, WARNING, ERROR).
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    # Remove existing handlers
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)

    if environment == "production":
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(HumanReadableFormatter(
            datefmt="%Y-%m-%d %H:%M:%S"
        ))

    root_logger.addHandler(handler)

    # Quiet noisy third-party loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
