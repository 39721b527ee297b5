"""
unistream - Structured JSON Logging

Structured logging with automatic context injection.

Features:
- JSON-formatted logs for easy parsing
- Per-session context injection (request_id, provider, model)
- Log levels configurable via environment
- Sensitive data redaction (API keys never reach the log stream)

Usage:
    from unistream.observability.logging import setup_logging, get_logger

    setup_logging(level="INFO")

    logger = get_logger(__name__)
    logger.info("Stream started", chunks=0)

Output:
    {"timestamp": "2024-01-15T10:30:00Z", "level": "INFO", "logger": "unistream.transport",
     "message": "Stream started", "chunks": 0, "request_id": "req_xyz",
     "provider": "openai", "model": "gpt-4o"}
"""

import os
import re
import sys
import json
import logging
from contextlib import contextmanager
from typing import Optional, Dict, Any, Iterator, Union
from datetime import datetime, timezone
from dataclasses import dataclass, field
from contextvars import ContextVar

_request_context: ContextVar[Optional["LogContext"]] = ContextVar("unistream_log_context", default=None)

# key=... query parameters (Gemini puts the API key in the URL)
_URL_KEY_PATTERN = re.compile(r"([?&]key=)[^&\s]+")


def redact_url(url: str) -> str:
    """Mask API keys carried in URL query strings."""
    return _URL_KEY_PATTERN.sub(r"\1[REDACTED]", url)


@dataclass
class LogContext:
    """
    Logging context with correlation IDs.

    Stored in a ContextVar so concurrent sessions never see each other's fields.
    """
    request_id: str = ""
    provider: str = ""
    model: str = ""
    operation: str = ""
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def get_current(cls) -> Optional["LogContext"]:
        """Get current log context."""
        return _request_context.get()

    @classmethod
    def set_current(cls, ctx: "LogContext"):
        """Set current log context."""
        _request_context.set(ctx)

    @classmethod
    def clear(cls):
        """Clear current log context."""
        _request_context.set(None)

    @classmethod
    @contextmanager
    def scope(cls, **fields) -> Iterator["LogContext"]:
        """Bind a context for the duration of a block, restoring the previous one."""
        ctx = cls()
        ctx.update(**fields)
        token = _request_context.set(ctx)
        try:
            yield ctx
        finally:
            _request_context.reset(token)

    def update(self, **kwargs):
        """Update context fields."""
        for key, value in kwargs.items():
            if hasattr(self, key) and key != "extra":
                setattr(self, key, value)
            else:
                self.extra[key] = value

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        if self.request_id:
            result["request_id"] = self.request_id
        if self.provider:
            result["provider"] = self.provider
        if self.model:
            result["model"] = self.model
        if self.operation:
            result["operation"] = self.operation
        result.update(self.extra)
        return result


class JSONFormatter(logging.Formatter):
    """
    JSON log formatter with automatic context injection.

    Output format:
    {
        "timestamp": "2024-01-15T10:30:00.123456Z",
        "level": "INFO",
        "logger": "module.name",
        "message": "Log message",
        "request_id": "req_abc123",
        ... additional fields
    }
    """

    SENSITIVE_FIELDS = {
        "password", "secret", "token", "api_key", "apikey",
        "authorization", "auth", "credential", "private_key",
    }

    # Numeric counters whose names contain a sensitive word
    SAFE_FIELDS = {"max_tokens", "thinking_budget_tokens"}

    RESERVED_ATTRS = {
        "name", "msg", "args", "created", "filename",
        "funcName", "levelname", "levelno", "lineno",
        "module", "msecs", "pathname", "process",
        "processName", "relativeCreated", "stack_info",
        "exc_info", "exc_text", "thread", "threadName",
        "message", "taskName",
    }

    def __init__(
        self,
        include_timestamp: bool = True,
        include_location: bool = False,
        redact_sensitive: bool = True,
    ):
        super().__init__()
        self.include_timestamp = include_timestamp
        self.include_location = include_location
        self.redact_sensitive = redact_sensitive

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data: Dict[str, Any] = {}

        if self.include_timestamp:
            log_data["timestamp"] = datetime.now(timezone.utc).isoformat()

        log_data["level"] = record.levelname
        log_data["logger"] = record.name
        log_data["message"] = record.getMessage()

        if self.include_location:
            log_data["location"] = f"{record.filename}:{record.lineno}"

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        ctx = LogContext.get_current()
        if ctx:
            log_data.update(ctx.to_dict())

        for key, value in record.__dict__.items():
            if key in self.RESERVED_ATTRS:
                continue
            if self.redact_sensitive and self._is_sensitive(key):
                value = "[REDACTED]"
            elif key == "url" and isinstance(value, str):
                value = redact_url(value)
            log_data[key] = value

        return json.dumps(log_data, default=str, ensure_ascii=False)

    def _is_sensitive(self, field_name: str) -> bool:
        """Check if field name indicates sensitive data."""
        field_lower = field_name.lower()
        if field_lower in self.SAFE_FIELDS:
            return False
        return any(sensitive in field_lower for sensitive in self.SENSITIVE_FIELDS)


class StructuredLogger:
    """
    Structured logger wrapper with convenience methods.

    Keyword arguments other than exc_info/stack_info/stacklevel become
    structured fields on the record.
    """

    def __init__(self, logger: logging.Logger):
        self._logger = logger

    @property
    def name(self) -> str:
        return self._logger.name

    def _log(self, level: int, msg: str, *args, **kwargs):
        if not self._logger.isEnabledFor(level):
            return
        extra = kwargs.pop("extra", {})

        ctx = LogContext.get_current()
        if ctx:
            for key, value in ctx.to_dict().items():
                extra.setdefault(key, value)

        for key in list(kwargs):
            if key not in {"exc_info", "stack_info", "stacklevel"}:
                extra[key] = kwargs.pop(key)

        kwargs["extra"] = extra
        self._logger.log(level, msg, *args, **kwargs)

    def debug(self, msg: str, *args, **kwargs):
        self._log(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg: str, *args, **kwargs):
        self._log(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs):
        self._log(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg: str, *args, **kwargs):
        self._log(logging.ERROR, msg, *args, **kwargs)

    def exception(self, msg: str, *args, **kwargs):
        """Log exception with traceback."""
        kwargs["exc_info"] = True
        self._log(logging.ERROR, msg, *args, **kwargs)


_logging_configured = False


def setup_logging(
    level: Union[str, int] = "INFO",
    json_output: bool = True,
    include_location: bool = False,
    redact_sensitive: bool = True,
) -> None:
    """
    Setup structured logging for the unistream logger tree.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: Use JSON formatter (True) or standard formatter (False)
        include_location: Include filename:lineno in logs
        redact_sensitive: Redact sensitive fields like api keys
    """
    global _logging_configured

    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    package_logger = logging.getLogger("unistream")
    package_logger.setLevel(level)

    for handler in package_logger.handlers[:]:
        package_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)

    if json_output:
        formatter: logging.Formatter = JSONFormatter(
            include_location=include_location,
            redact_sensitive=redact_sensitive,
        )
    else:
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )

    handler.setFormatter(formatter)
    package_logger.addHandler(handler)

    # Suppress noisy loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    _logging_configured = True


def get_logger(name: str) -> StructuredLogger:
    """
    Get a structured logger.

    Auto-configures from UNISTREAM_LOG_LEVEL / LOG_LEVEL and
    UNISTREAM_LOG_FORMAT / LOG_FORMAT on first use.
    """
    if not _logging_configured:
        level = os.getenv("UNISTREAM_LOG_LEVEL") or os.getenv("LOG_LEVEL", "INFO")
        log_format = os.getenv("UNISTREAM_LOG_FORMAT") or os.getenv("LOG_FORMAT", "json")
        setup_logging(level=level, json_output=log_format.lower() == "json")

    return StructuredLogger(logging.getLogger(name))
