"""Read-through schema loading.

This module combines the file cache with the remote loader: schemas are
served from disk when present and fetched from the cluster otherwise, with
remote results written back to disk.
"""

import logging
from pathlib import Path

from pydantic import BaseModel, Field

from kql_symbols.kusto.client import ClientFactory, create_client
from kql_symbols.kusto.connection import ConnectionInfo
from kql_symbols.loaders.base import SymbolLoader
from kql_symbols.loaders.file import FileSymbolLoader
from kql_symbols.loaders.remote import RemoteSymbolLoader
from kql_symbols.models.symbols import DatabaseSymbol

logger = logging.getLogger(__name__)


class CacheGenerationResult(BaseModel):
    """Outcome of a bulk cache generation run."""

    cluster: str | None = Field(None, description="Cluster that was enumerated")
    databases_found: int = Field(default=0, description="Databases reported by the cluster")
    databases_saved: int = Field(default=0, description="Databases written to the cache")
    failed: list[str] = Field(default_factory=list, description="Databases that could not be cached")
    succeeded: bool = Field(default=False, description="Whether every database was cached")


class CachedSymbolLoader(SymbolLoader):
    """Serves schemas from the file cache, falling back to the remote loader.

    Cache write failures are logged and never affect the value returned to
    the caller.

    Attributes:
        file_loader: The on-disk cache.
        remote_loader: The source of truth.

    Example:
        >>> loader = CachedSymbolLoader.from_connection(
        ...     "https://help.kusto.windows.net;Fed=true", "~/.kql-symbols/schemas"
        ... )
        >>> db = await loader.load_database("Samples")  # remote, then cached
        >>> db = await loader.load_database("Samples")  # from disk
    """

    def __init__(self, file_loader: FileSymbolLoader, remote_loader: RemoteSymbolLoader) -> None:
        self.file_loader = file_loader
        self.remote_loader = remote_loader

    @classmethod
    def from_connection(
        cls,
        connection: str | ConnectionInfo,
        cache_path: str | Path,
        default_domain: str | None = None,
        client_factory: ClientFactory = create_client,
    ) -> "CachedSymbolLoader":
        """Create a cached loader whose file and remote halves target the same cluster."""
        remote_loader = RemoteSymbolLoader(
            connection, default_domain=default_domain, client_factory=client_factory
        )
        file_loader = FileSymbolLoader(
            cache_path,
            default_cluster=remote_loader.default_cluster,
            default_domain=remote_loader.default_domain,
        )
        return cls(file_loader, remote_loader)

    @property
    def default_cluster(self) -> str:
        return self.remote_loader.default_cluster

    @property
    def default_domain(self) -> str:
        return self.remote_loader.default_domain

    @property
    def default_database(self) -> str | None:
        return self.remote_loader.default_database

    async def get_database_names(
        self,
        cluster_name: str | None = None,
        *,
        throw_on_error: bool = False,
    ) -> list[str] | None:
        cluster = self.resolve_cluster_name(cluster_name)

        names = await self.file_loader.get_database_names(cluster)
        if names is not None:
            return names

        names = await self.remote_loader.get_database_names(cluster, throw_on_error=throw_on_error)
        if names is not None:
            await self.file_loader.save_database_names(names, cluster)
        return names

    async def load_database(
        self,
        database_name: str,
        cluster_name: str | None = None,
        *,
        throw_on_error: bool = False,
    ) -> DatabaseSymbol | None:
        cluster = self.resolve_cluster_name(cluster_name)

        database = await self.file_loader.load_database(database_name, cluster)
        if database is not None:
            return database

        database = await self.remote_loader.load_database(
            database_name, cluster, throw_on_error=throw_on_error
        )
        if database is not None and not await self.file_loader.save_database(database, cluster):
            logger.warning("Database '%s' loaded but not cached", database.name)
        return database

    async def generate_cache(self, cluster_name: str | None = None) -> CacheGenerationResult:
        """Load every database of a cluster from the remote source into the cache.

        Existing cache files are overwritten. Databases that fail to load or
        save are listed in the result; the remaining ones are still cached.

        Args:
            cluster_name: Cluster to enumerate; the default cluster if None.

        Returns:
            CacheGenerationResult: Counts and the names that failed.
        """
        cluster = self.resolve_cluster_name(cluster_name)

        names = await self.remote_loader.get_database_names(cluster)
        if names is None:
            logger.warning("Cannot enumerate databases of %s", cluster)
            return CacheGenerationResult(cluster=cluster)

        result = CacheGenerationResult(cluster=cluster, databases_found=len(names))
        for name in names:
            database = await self.remote_loader.load_database(name, cluster)
            if database is not None and await self.file_loader.save_database(database, cluster):
                result.databases_saved += 1
            else:
                result.failed.append(name)

        index_saved = await self.file_loader.save_database_names(names, cluster)
        result.succeeded = index_saved and not result.failed

        logger.info(
            "Generated schema cache for %s: %d of %d databases saved",
            cluster,
            result.databases_saved,
            result.databases_found,
        )
        return result
