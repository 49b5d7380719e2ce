"""Structured logging configuration for promptsync."""

import json
import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, Optional, Set

# Context variable for cycle-scoped data (artifact kind, slug)
sync_context: ContextVar[Dict[str, Any]] = ContextVar("sync_context", default={})

# Keys whose values are always redacted in logged data
SENSITIVE_KEYS: Set[str] = {
    "x-portkey-api-key",
    "authorization",
    "api_key",
    "portkey_api_key",
    "key",
    "x-api-key",
}

# Version identity tokens look like tokens but are not secrets
IDENTITY_KEY_SUFFIX = "version_id"


def _is_token_like(value: str) -> bool:
    """Check if a string looks like a sensitive token."""
    if len(value) < 24 or " " in value:
        return False
    # Token-like: alphanumeric with hyphens/underscores allowed
    return value.replace("-", "").replace("_", "").isalnum()


def _redact_value(value: Any) -> str:
    """Redact a sensitive value.

    Args:
        value: The value to redact
    """
    if not isinstance(value, str):
        return "[REDACTED]"

    # Short secrets (<12 chars): fully mask
    if len(value) < 12:
        return "<REDACTED>"

    return f"{value[:3]}***{value[-3:]}"


def redact_sensitive_data(data: Any) -> Any:
    """Recursively redact sensitive data from dictionaries or strings.

    Redacts:
    - API key headers and settings values
    - Long token-like strings (shows first/last chars, not middle)

    Values under ``*version_id`` keys are kept so identity mismatches stay
    diagnosable.
    """
    if isinstance(data, dict):
        redacted = {}
        for key, value in data.items():
            if isinstance(key, str) and key.lower() in SENSITIVE_KEYS:
                redacted[key] = _redact_value(value)
            elif isinstance(key, str) and key.lower().endswith(IDENTITY_KEY_SUFFIX):
                redacted[key] = value
            else:
                redacted[key] = redact_sensitive_data(value)
        return redacted
    elif isinstance(data, list):
        return [redact_sensitive_data(item) for item in data]
    elif isinstance(data, str):
        if _is_token_like(data):
            return _redact_value(data)
    return data


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        ctx = sync_context.get()
        if ctx:
            log_data["artifact_kind"] = ctx.get("artifact_kind")
            log_data["slug"] = ctx.get("slug")

        # Add extra data if provided (with sensitive data redacted)
        if hasattr(record, "data") and record.data:
            log_data["data"] = redact_sensitive_data(record.data)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class ConsoleFormatter(logging.Formatter):
    """Human-readable formatter for console output."""

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",   # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        """Format log record for console."""
        color = self.COLORS.get(record.levelname, "")
        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")

        ctx = sync_context.get()
        scope = f"{ctx.get('artifact_kind', '-')}:{ctx.get('slug') or '-'}" if ctx else "-"

        message = f"{timestamp} | {color}{record.levelname:8}{self.RESET} | {scope} | {record.name} | {record.getMessage()}"

        if hasattr(record, "data") and record.data:
            message += f" | {redact_sensitive_data(record.data)}"

        if record.exc_info:
            message += f"\n{self.formatException(record.exc_info)}"

        return message


class ContextLogger(logging.LoggerAdapter):
    """Logger adapter that accepts a ``data`` kwarg for structured fields."""

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        """Process log message with context."""
        extra = kwargs.get("extra", {})
        if "data" in kwargs:
            extra["data"] = kwargs.pop("data")
        kwargs["extra"] = extra
        return msg, kwargs


_loggers: Dict[str, ContextLogger] = {}


def get_logger(name: str) -> ContextLogger:
    """Get a context-aware logger."""
    if name not in _loggers:
        logger = logging.getLogger(name)
        _loggers[name] = ContextLogger(logger, {})
    return _loggers[name]


@contextmanager
def artifact_scope(artifact_kind: str, slug: Optional[str]) -> Iterator[None]:
    """Tag log records emitted inside the block with the artifact being synced."""
    token = sync_context.set({"artifact_kind": artifact_kind, "slug": slug})
    try:
        yield
    finally:
        sync_context.reset(token)


def setup_logging(
    level: str = "INFO",
    json_output: bool = False,
    log_file: Optional[str] = None,
) -> None:
    """Configure application logging."""
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    # Remove existing handlers
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    if json_output:
        console_handler.setFormatter(StructuredFormatter())
    else:
        console_handler.setFormatter(ConsoleFormatter())
    root_logger.addHandler(console_handler)

    # File handler (always JSON)
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(StructuredFormatter())
        root_logger.addHandler(file_handler)

    # Quiet noisy loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
