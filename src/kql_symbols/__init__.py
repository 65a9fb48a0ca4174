"""KQL schema symbols - schema resolution and caching for query analysis.

Loads cluster and database schemas from clusters or a local file cache and
resolves the databases a query references into an immutable symbol
snapshot for an analysis engine.
"""

__version__ = "0.1.0"

from kql_symbols.config.settings import Settings, get_settings
from kql_symbols.loaders import (
    CachedSymbolLoader,
    FileSymbolLoader,
    RemoteSymbolLoader,
    SymbolLoader,
    add_or_update_database,
    add_or_update_default_database,
)
from kql_symbols.models.errors import (
    CacheReadError,
    CacheWriteError,
    ConfigurationError,
    ErrorCode,
    KqlSymbolsError,
    RemoteCommandError,
)
from kql_symbols.models.symbols import (
    ClusterSymbol,
    ColumnSymbol,
    DatabaseSymbol,
    FunctionSymbol,
    GlobalState,
    TableSymbol,
)
from kql_symbols.resolver import QueryDocument, SymbolResolver

__all__ = [
    "__version__",
    # Config
    "Settings",
    "get_settings",
    # Symbols
    "ClusterSymbol",
    "ColumnSymbol",
    "DatabaseSymbol",
    "FunctionSymbol",
    "GlobalState",
    "TableSymbol",
    # Loaders
    "SymbolLoader",
    "RemoteSymbolLoader",
    "FileSymbolLoader",
    "CachedSymbolLoader",
    "add_or_update_database",
    "add_or_update_default_database",
    # Resolution
    "QueryDocument",
    "SymbolResolver",
    # Errors
    "KqlSymbolsError",
    "ConfigurationError",
    "RemoteCommandError",
    "CacheReadError",
    "CacheWriteError",
    "ErrorCode",
]
