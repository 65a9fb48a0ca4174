"""File-backed schema cache.

Databases are stored one JSON document per file under
``<root>/<cluster>/<database>.json``. Cluster and database names are
sanitized so that lookups are case-insensitive and cannot escape the
cluster directory.
"""

import logging
import os
import shutil
import uuid
from collections.abc import Iterable
from pathlib import Path

import anyio
from anyio import to_thread
from pydantic import ValidationError

from kql_symbols.config.settings import DEFAULT_DOMAIN
from kql_symbols.kusto.connection import get_full_host_name
from kql_symbols.loaders.base import SymbolLoader
from kql_symbols.models.cache_format import DatabaseInfo, DatabaseNamesInfo
from kql_symbols.models.errors import CacheReadError, CacheWriteError, SchemaFormatError
from kql_symbols.models.symbols import ClusterSymbol, DatabaseSymbol
from kql_symbols.observability.metrics import MetricsCollector, metrics

logger = logging.getLogger(__name__)

SCHEMA_EXTENSION = ".json"
DATABASE_NAMES_FILE = "databases.index"


def sanitize_name(name: str) -> str:
    """Make a cluster or database name safe to use as a single path segment.

    Example:
        >>> sanitize_name("My/Db")
        'my_db'
    """
    return name.replace("/", "_").replace("\\", "_").lower()


class FileSymbolLoader(SymbolLoader):
    """Reads and writes database schemas in a local directory tree.

    A missing file is the normal "not cached yet" case and is reported as
    None. Unreadable or malformed files are treated the same way unless
    strict mode is requested.

    Example:
        >>> loader = FileSymbolLoader("~/.kql-symbols/schemas", "help")
        >>> await loader.save_database(db)
        True
        >>> await loader.load_database(db.name)
        DatabaseSymbol(name='Samples', ...)
    """

    def __init__(
        self,
        cache_path: str | Path,
        default_cluster: str | None = None,
        default_domain: str | None = None,
        metrics_collector: MetricsCollector | None = None,
    ) -> None:
        """Initialize file loader.

        Args:
            cache_path: Cache root; ``~`` and environment variables are expanded.
            default_cluster: Cluster used when none is given.
            default_domain: Domain appended to short cluster names.
            metrics_collector: Metrics sink; the global collector if None.
        """
        self.cache_path = Path(os.path.expandvars(os.path.expanduser(str(cache_path))))
        self._default_domain = default_domain or DEFAULT_DOMAIN
        self._default_cluster = (
            get_full_host_name(default_cluster, self._default_domain) if default_cluster else None
        )
        self.metrics = metrics_collector or metrics

    @property
    def default_cluster(self) -> str | None:
        return self._default_cluster

    @property
    def default_domain(self) -> str:
        return self._default_domain

    def get_cluster_cache_path(self, cluster_name: str | None = None) -> Path | None:
        """Directory holding one cluster's cached databases, or None without a cluster."""
        cluster = self.resolve_cluster_name(cluster_name)
        if not cluster:
            return None
        return self.cache_path / sanitize_name(cluster)

    def get_database_cache_path(
        self, database_name: str, cluster_name: str | None = None
    ) -> Path | None:
        cluster_path = self.get_cluster_cache_path(cluster_name)
        if cluster_path is None:
            return None
        return cluster_path / (sanitize_name(database_name) + SCHEMA_EXTENSION)

    def get_database_names_path(self, cluster_name: str | None = None) -> Path | None:
        cluster_path = self.get_cluster_cache_path(cluster_name)
        if cluster_path is None:
            return None
        return cluster_path / DATABASE_NAMES_FILE

    async def get_database_names(
        self,
        cluster_name: str | None = None,
        *,
        throw_on_error: bool = False,
    ) -> list[str] | None:
        """Read the cluster's database name index.

        Returns:
            list[str] | None: Names from the index, or None if there is no
                usable index file.
        """
        path = self.get_database_names_path(cluster_name)
        if path is None:
            return None

        text = await self._read_text(path, "database_names", throw_on_error)
        if text is None:
            return None

        try:
            info = DatabaseNamesInfo.model_validate_json(text)
        except ValidationError as e:
            return self._corrupt(path, "database_names", e, throw_on_error)

        self.metrics.increment_cache_lookup("database_names", "hit")
        return list(info.databases)

    async def load_database(
        self,
        database_name: str,
        cluster_name: str | None = None,
        *,
        throw_on_error: bool = False,
    ) -> DatabaseSymbol | None:
        path = self.get_database_cache_path(database_name, cluster_name)
        if path is None:
            return None

        text = await self._read_text(path, "database", throw_on_error)
        if text is None:
            return None

        try:
            database = DatabaseInfo.model_validate_json(text).to_symbol()
        except (ValidationError, SchemaFormatError) as e:
            return self._corrupt(path, "database", e, throw_on_error)

        self.metrics.increment_cache_lookup("database", "hit")
        logger.debug("Loaded database '%s' from %s", database.name, path)
        return database

    async def save_database(
        self,
        database: DatabaseSymbol,
        cluster_name: str | None = None,
        *,
        throw_on_error: bool = False,
    ) -> bool:
        """Write a database to the cache.

        Returns:
            bool: True if the file was written.

        Raises:
            CacheWriteError: If writing failed and ``throw_on_error`` is True.
        """
        path = self.get_database_cache_path(database.name, cluster_name)
        if path is None:
            return False
        return await self._write_text(
            path, DatabaseInfo.from_symbol(database).to_json(), "database", throw_on_error
        )

    async def save_database_names(
        self,
        database_names: Iterable[str],
        cluster_name: str | None = None,
        *,
        throw_on_error: bool = False,
    ) -> bool:
        """Write the cluster's database name index."""
        path = self.get_database_names_path(cluster_name)
        if path is None:
            return False
        info = DatabaseNamesInfo(
            cluster=self.resolve_cluster_name(cluster_name), databases=list(database_names)
        )
        return await self._write_text(path, info.to_json(), "database_names", throw_on_error)

    async def save_cluster(self, cluster: ClusterSymbol, *, throw_on_error: bool = False) -> bool:
        """Write every loaded database of a cluster.

        Placeholders carry no schema and are skipped. A cluster whose database
        list came from an enumeration also gets its name index written.
        """
        succeeded = True
        for database in cluster.databases:
            if database.is_placeholder:
                continue
            if not await self.save_database(database, cluster.name, throw_on_error=throw_on_error):
                succeeded = False

        if not cluster.is_open:
            names = [database.name for database in cluster.databases]
            if not await self.save_database_names(names, cluster.name, throw_on_error=throw_on_error):
                succeeded = False

        return succeeded

    async def save_clusters(
        self, clusters: Iterable[ClusterSymbol], *, throw_on_error: bool = False
    ) -> bool:
        succeeded = True
        for cluster in clusters:
            if not await self.save_cluster(cluster, throw_on_error=throw_on_error):
                succeeded = False
        return succeeded

    async def delete_cache(self) -> bool:
        """Delete the whole cache root.

        Returns:
            bool: True if the cache no longer exists.
        """
        return await self._delete_tree(self.cache_path)

    async def delete_cluster_cache(self, cluster_name: str | None = None) -> bool:
        """Delete one cluster's cached databases.

        Returns:
            bool: True if the cluster directory no longer exists, False when
                it could not be removed or no cluster was given.
        """
        path = self.get_cluster_cache_path(cluster_name)
        if path is None:
            return False
        return await self._delete_tree(path)

    async def _read_text(self, path: Path, kind: str, throw_on_error: bool) -> str | None:
        file = anyio.Path(path)
        if not await file.exists():
            self.metrics.increment_cache_lookup(kind, "miss")
            return None

        try:
            return await file.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            return self._corrupt(path, kind, e, throw_on_error)

    def _corrupt(self, path: Path, kind: str, error: Exception, throw_on_error: bool) -> None:
        self.metrics.increment_cache_lookup(kind, "corrupt")
        if throw_on_error:
            raise CacheReadError(
                f"Cannot read schema cache file: {error!s}", details={"path": str(path)}
            ) from error
        logger.warning("Ignoring unreadable schema cache file %s: %s", path, error)
        return None

    async def _write_text(self, path: Path, text: str, kind: str, throw_on_error: bool) -> bool:
        target = anyio.Path(path)
        temp = target.with_name(f".{target.name}.{uuid.uuid4().hex}.tmp")
        try:
            await target.parent.mkdir(parents=True, exist_ok=True)
            await temp.write_text(text, encoding="utf-8")
            await temp.replace(target)
        except OSError as e:
            self.metrics.increment_cache_write(kind, "error")
            await self._discard(temp)
            if throw_on_error:
                raise CacheWriteError(
                    f"Cannot write schema cache file: {e!s}", details={"path": str(path)}
                ) from e
            logger.warning("Failed to write schema cache file %s: %s", path, e)
            return False

        self.metrics.increment_cache_write(kind, "success")
        return True

    @staticmethod
    async def _discard(temp: anyio.Path) -> None:
        try:
            await temp.unlink(missing_ok=True)
        except OSError as e:
            logger.debug("Could not remove temporary file %s: %s", temp, e)

    @staticmethod
    async def _delete_tree(path: Path) -> bool:
        if not await anyio.Path(path).exists():
            return True
        try:
            await to_thread.run_sync(shutil.rmtree, path)
        except OSError as e:
            logger.warning("Failed to delete schema cache %s: %s", path, e)
            return False
        logger.info("Deleted schema cache %s", path)
        return True
