"""
LogAllot - Structured Logging
=============================

Provides consistent, structured JSON logging for the analysis service.
Includes correlation ID propagation so every line emitted while processing
one analysis can be tied back to its analysis ID.

Usage:
    from shared.utils.logging import get_logger, setup_logging

    setup_logging(service_name="ai-analysis", log_level="INFO")
    logger = get_logger(__name__)

    logger.info("Dispatching request", extra={"provider": "groq"})
"""

import logging
import json
import sys
from datetime import datetime, timezone
from typing import Any, Optional
from contextvars import ContextVar

from shared.utils.redaction import redact_secrets

# Correlation ID for the analysis currently being processed
correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)

# LogRecord attributes that are never treated as structured extras
_STANDARD_ATTRS = frozenset({
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "pathname", "process", "processName", "relativeCreated",
    "stack_info", "exc_info", "exc_text", "thread", "threadName",
    "taskName", "message",
})

# Identifiers look like opaque tokens but are safe and needed for tracing
_UNREDACTED_EXTRAS = frozenset({"correlation_id", "analysis_id", "request_id", "event_id"})


class StructuredFormatter(logging.Formatter):
    """
    Formatter that renders each record as a single JSON object.

    Fields: timestamp (ISO 8601, UTC), level, service, logger, message,
    correlation_id when set, exception when present, and every extra
    passed through the ``extra`` dict.
    """

    def __init__(self, service_name: str):
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "service": self.service_name,
            "logger": record.name,
            "message": record.getMessage(),
        }

        correlation_id = getattr(record, "correlation_id", None) or correlation_id_var.get()
        if correlation_id:
            log_entry["correlation_id"] = correlation_id

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS and not key.startswith("_") and key not in log_entry:
                log_entry[key] = value

        return json.dumps(log_entry, default=str)


class RedactingFilter(logging.Filter):
    """
    Masks long opaque tokens in the rendered message and string extras.

    Vendor error bodies and prompts can echo credentials back; this keeps
    them out of log aggregation.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        record.msg = redact_secrets(record.getMessage())
        record.args = None
        for key, value in list(record.__dict__.items()):
            if key in _STANDARD_ATTRS or key in _UNREDACTED_EXTRAS:
                continue
            if isinstance(value, str):
                setattr(record, key, redact_secrets(value))
        return True


class ContextualLogger(logging.LoggerAdapter):
    """Logger adapter that injects the current correlation ID into extras."""

    def process(self, msg: str, kwargs: dict) -> tuple[str, dict]:
        extra = dict(kwargs.get("extra") or {})

        if "correlation_id" not in extra:
            correlation_id = correlation_id_var.get()
            if correlation_id:
                extra["correlation_id"] = correlation_id

        kwargs["extra"] = extra
        return msg, kwargs


_loggers: dict[str, ContextualLogger] = {}


def setup_logging(
    service_name: str,
    log_level: str = "INFO",
    json_output: bool = True
) -> None:
    """
    Configure the root logger for the service.

    Call once at startup. Replaces any existing root handlers.

    Args:
        service_name: Name stamped on every record (e.g., "ai-analysis")
        log_level: Minimum level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: JSON lines when True, human-readable text otherwise
    """
    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(RedactingFilter())

    if json_output:
        handler.setFormatter(StructuredFormatter(service_name))
    else:
        handler.setFormatter(logging.Formatter(
            f"%(asctime)s | {service_name} | %(levelname)s | %(name)s | %(message)s"
        ))

    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    # Vendor SDKs and HTTP clients are chatty at INFO
    for noisy in ("httpx", "httpcore", "openai"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str) -> ContextualLogger:
    """
    Get a cached contextual logger for a module.

    Example:
        logger = get_logger(__name__)
        logger.warning("Persona failed", extra={"persona": "Primary"})
    """
    if name not in _loggers:
        _loggers[name] = ContextualLogger(logging.getLogger(name), {})
    return _loggers[name]


def set_correlation_id(correlation_id: Optional[str]) -> None:
    """Bind a correlation ID to the current async context."""
    correlation_id_var.set(correlation_id)


def get_correlation_id() -> Optional[str]:
    """Return the correlation ID bound to the current context, if any."""
    return correlation_id_var.get()
