"""Structured logging configuration for kql-symbols.

This module provides JSON or text formatted logging with automatic
sanitization of credentials, including secrets embedded in cluster
connection strings.
"""

import json
import logging
import re
import sys
from typing import Any, ClassVar


class SensitiveDataFilter(logging.Filter):
    """Filter to sanitize sensitive data from log records.

    This filter masks:
    - Secret-named keys in ``extra`` dictionaries
    - Secret values inside connection strings (``AppKey=...``,
      ``Password=...``) found in messages and arguments

    Example:
        >>> handler = logging.StreamHandler()
        >>> handler.addFilter(SensitiveDataFilter())
    """

    SENSITIVE_KEYS: ClassVar[set[str]] = {
        "password",
        "pwd",
        "secret",
        "token",
        "access_token",
        "connection",
        "connection_string",
        "appkey",
        "application_key",
        "application_certificate_blob",
        "client_secret",
        "authorization",
    }

    CONNECTION_SECRET: ClassVar[re.Pattern[str]] = re.compile(
        r"(?i)\b(password|pwd|appkey|application key|application certificate blob"
        r"|user token|usertoken|application token|apptoken|client secret)\s*=\s*[^;]*"
    )

    def filter(self, record: logging.LogRecord) -> bool:
        """Filter and sanitize the log record.

        Args:
            record: The log record to filter.

        Returns:
            bool: Always True to allow the record through (after sanitization).
        """
        if isinstance(record.msg, str):
            record.msg = self.mask_connection_secrets(record.msg)

        if record.args:
            record.args = self._sanitize_data(record.args)

        for key in list(record.__dict__.keys()):
            if key.lower() in self.SENSITIVE_KEYS:
                record.__dict__[key] = "***REDACTED***"
            elif isinstance(record.__dict__[key], dict):
                record.__dict__[key] = self._sanitize_dict(record.__dict__[key])

        return True

    @classmethod
    def mask_connection_secrets(cls, text: str) -> str:
        """Replace secret values in connection-string text.

        Example:
            >>> SensitiveDataFilter.mask_connection_secrets("Data Source=x;AppKey=abc")
            'Data Source=x;AppKey=***'
        """
        return cls.CONNECTION_SECRET.sub(lambda m: f"{m.group(1)}=***", text)

    def _sanitize_data(self, data: Any) -> Any:
        if isinstance(data, dict):
            return self._sanitize_dict(data)
        elif isinstance(data, (list, tuple)):
            return type(data)(self._sanitize_data(item) for item in data)
        elif isinstance(data, str):
            return self.mask_connection_secrets(data)
        return data

    def _sanitize_dict(self, data: dict[str, Any]) -> dict[str, Any]:
        sanitized: dict[str, Any] = {}
        for key, value in data.items():
            if key.lower() in self.SENSITIVE_KEYS:
                sanitized[key] = "***REDACTED***"
            else:
                sanitized[key] = self._sanitize_data(value)
        return sanitized


_STANDARD_ATTRIBUTES = frozenset(
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
        "exc_info",
        "exc_text",
        "stack_info",
        "taskName",
    }
)


class JSONFormatter(logging.Formatter):
    """JSON log formatter for structured logging.

    Example:
        >>> handler = logging.StreamHandler()
        >>> handler.setFormatter(JSONFormatter())
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        extra_fields = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _STANDARD_ATTRIBUTES
        }
        if extra_fields:
            log_data["extra"] = extra_fields

        return json.dumps(log_data, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable text formatter.

    Example:
        >>> handler = logging.StreamHandler()
        >>> handler.setFormatter(TextFormatter())
    """

    def format(self, record: logging.LogRecord) -> str:
        # Base format: timestamp [level] logger - message
        formatted = (
            f"{self.formatTime(record, self.datefmt)} "
            f"[{record.levelname}] "
            f"{record.name} - "
            f"{record.getMessage()}"
        )

        if record.exc_info:
            formatted += f"\n{self.formatException(record.exc_info)}"

        return formatted


def configure_logging(
    level: str = "WARNING",
    log_format: str = "text",
    enable_sensitive_filter: bool = True,
) -> None:
    """Configure logging.

    Log output goes to stderr so that stdout stays reserved for the
    per-document analysis report.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_format: Format type ("json" or "text").
        enable_sensitive_filter: Whether to enable sensitive data filtering.

    Example:
        >>> configure_logging(level="DEBUG", log_format="json")
        >>> logger = logging.getLogger(__name__)
        >>> logger.info("Loaded database", extra={"cluster": "help.kusto.windows.net"})
    """
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)

    formatter: logging.Formatter
    if log_format == "json":
        formatter = JSONFormatter(datefmt="%Y-%m-%dT%H:%M:%S")
    else:
        formatter = TextFormatter(datefmt="%Y-%m-%d %H:%M:%S")

    handler.setFormatter(formatter)

    if enable_sensitive_filter:
        handler.addFilter(SensitiveDataFilter())

    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, level.upper()))

    # Reduce noise from third-party libraries
    logging.getLogger("azure").setLevel(logging.WARNING)
    logging.getLogger("aiohttp").setLevel(logging.WARNING)
    logging.getLogger("msal").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance with the given name."""
    return logging.getLogger(name)
