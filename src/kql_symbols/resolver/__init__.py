"""Reference scanning and lazy schema resolution."""

from kql_symbols.resolver.document import (
    ClusterReference,
    DatabaseReference,
    QueryBlock,
    QueryDocument,
    split_blocks,
    tokenize,
)
from kql_symbols.resolver.resolver import SymbolResolver

__all__ = [
    "ClusterReference",
    "DatabaseReference",
    "QueryBlock",
    "QueryDocument",
    "SymbolResolver",
    "split_blocks",
    "tokenize",
]
