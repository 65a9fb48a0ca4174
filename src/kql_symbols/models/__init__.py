"""Data models module."""

from kql_symbols.models.cache_format import (
    DatabaseInfo,
    DatabaseNamesInfo,
    FunctionInfo,
    TableInfo,
)
from kql_symbols.models.errors import (
    CacheReadError,
    CacheWriteError,
    ConfigurationError,
    DatabaseNotFoundError,
    ErrorCode,
    KqlSymbolsError,
    RemoteCommandError,
    SchemaFormatError,
)
from kql_symbols.models.symbols import (
    ClusterSymbol,
    ColumnSymbol,
    DatabaseSymbol,
    FunctionSymbol,
    GlobalState,
    Member,
    TableSymbol,
    format_schema,
    parse_schema,
    quote_name,
)
from kql_symbols.models.types import ScalarType, scalar_type_from_clr, scalar_type_from_name

__all__ = [
    # Symbols
    "ScalarType",
    "ColumnSymbol",
    "TableSymbol",
    "FunctionSymbol",
    "Member",
    "DatabaseSymbol",
    "ClusterSymbol",
    "GlobalState",
    "parse_schema",
    "format_schema",
    "quote_name",
    "scalar_type_from_clr",
    "scalar_type_from_name",
    # Cache documents
    "DatabaseInfo",
    "DatabaseNamesInfo",
    "TableInfo",
    "FunctionInfo",
    # Errors
    "ErrorCode",
    "KqlSymbolsError",
    "DatabaseNotFoundError",
    "RemoteCommandError",
    "CacheReadError",
    "CacheWriteError",
    "ConfigurationError",
    "SchemaFormatError",
]
