"""Custom exceptions and error codes for kql-symbols.

This module defines a hierarchy of exceptions for the schema loading and
resolution layers, each tagged with an error code.
"""

from enum import StrEnum
from typing import Any


class ErrorCode(StrEnum):
    """Standardized error codes for the library."""

    # Lookup errors
    DATABASE_NOT_FOUND = "database_not_found"

    # Remote errors
    REMOTE_COMMAND_FAILED = "remote_command_failed"

    # Cache errors
    CACHE_READ_ERROR = "cache_read_error"
    CACHE_WRITE_ERROR = "cache_write_error"

    # Fatal errors
    CONFIGURATION_ERROR = "configuration_error"
    SCHEMA_FORMAT_ERROR = "schema_format_error"
    INTERNAL_ERROR = "internal_error"


class KqlSymbolsError(Exception):
    """Base exception for all kql-symbols errors.

    All custom exceptions in this library inherit from this class.
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize base error.

        Args:
            message: Human-readable error message.
            code: Error code identifier.
            details: Optional additional context.
        """
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code}, message={self.message!r})"


class DatabaseNotFoundError(KqlSymbolsError):
    """Exception raised when a database is known not to exist."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message=message, code=ErrorCode.DATABASE_NOT_FOUND, details=details)


class RemoteCommandError(KqlSymbolsError):
    """Exception raised when a control command against a cluster fails.

    The remote endpoint does not tell an unknown database apart from an
    unreachable cluster or an authorization failure, so this error covers
    all of them. The original exception is available as ``__cause__``.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize remote command error.

        Args:
            message: Error message describing the failure.
            details: Optional context (cluster, database, command).
        """
        super().__init__(message=message, code=ErrorCode.REMOTE_COMMAND_FAILED, details=details)


class CacheReadError(KqlSymbolsError):
    """Exception raised when a cached schema file cannot be read or parsed."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message=message, code=ErrorCode.CACHE_READ_ERROR, details=details)


class CacheWriteError(KqlSymbolsError):
    """Exception raised when a schema file cannot be written to the cache."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message=message, code=ErrorCode.CACHE_WRITE_ERROR, details=details)


class ConfigurationError(KqlSymbolsError):
    """Exception raised for unrecoverable configuration or protocol mismatches.

    This includes:
    - Column types reported by a cluster that have no scalar type mapping
    - Connection strings without a data source
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message=message, code=ErrorCode.CONFIGURATION_ERROR, details=details)


class SchemaFormatError(KqlSymbolsError):
    """Exception raised when table schema text cannot be parsed."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message=message, code=ErrorCode.SCHEMA_FORMAT_ERROR, details=details)
