"""Schema loaders.

This package provides the remote, file and cached schema loaders together
with the snapshot helpers that merge a loaded database into a GlobalState.
"""

from kql_symbols.loaders.base import (
    SymbolLoader,
    add_or_update_database,
    add_or_update_default_database,
)
from kql_symbols.loaders.cached import CachedSymbolLoader, CacheGenerationResult
from kql_symbols.loaders.file import FileSymbolLoader, sanitize_name
from kql_symbols.loaders.remote import RemoteSymbolLoader

__all__ = [
    "CacheGenerationResult",
    "CachedSymbolLoader",
    "FileSymbolLoader",
    "RemoteSymbolLoader",
    "SymbolLoader",
    "add_or_update_database",
    "add_or_update_default_database",
    "sanitize_name",
]
