"""Schema loader interface and shared snapshot orchestration.

Every loader can enumerate the databases of a cluster and load one
database's schema. Merging a loaded database into a :class:`GlobalState`
only depends on that interface, so it lives here as plain functions.
"""

from abc import ABC, abstractmethod

from kql_symbols.kusto.connection import get_full_host_name
from kql_symbols.models.errors import DatabaseNotFoundError
from kql_symbols.models.symbols import ClusterSymbol, DatabaseSymbol, GlobalState


class SymbolLoader(ABC):
    """Retrieves schema information for clusters and databases.

    Both operations return None when nothing could be loaded. With
    ``throw_on_error=True`` the underlying failure is raised instead.
    """

    @property
    @abstractmethod
    def default_cluster(self) -> str | None:
        """Fully qualified host name used when no cluster is given."""

    @property
    @abstractmethod
    def default_domain(self) -> str:
        """Domain suffix used to expand short cluster names."""

    @abstractmethod
    async def get_database_names(
        self,
        cluster_name: str | None = None,
        *,
        throw_on_error: bool = False,
    ) -> list[str] | None:
        """Get the names of all databases in a cluster.

        Args:
            cluster_name: Cluster name or URI; the default cluster if None.
            throw_on_error: Raise failures instead of returning None.

        Returns:
            list[str] | None: Database names, or None if unavailable.
        """

    @abstractmethod
    async def load_database(
        self,
        database_name: str,
        cluster_name: str | None = None,
        *,
        throw_on_error: bool = False,
    ) -> DatabaseSymbol | None:
        """Load the full schema of a database.

        Args:
            database_name: Database name.
            cluster_name: Cluster name or URI; the default cluster if None.
            throw_on_error: Raise failures instead of returning None.

        Returns:
            DatabaseSymbol | None: Fully populated database, or None if unavailable.
        """

    def resolve_cluster_name(self, cluster_name: str | None) -> str | None:
        """Expand ``cluster_name`` to a full host name, or use the default cluster."""
        if not cluster_name:
            return self.default_cluster
        return get_full_host_name(cluster_name, self.default_domain)


async def add_or_update_database(
    loader: SymbolLoader,
    state: GlobalState,
    database_name: str,
    cluster_name: str | None = None,
    *,
    throw_on_error: bool = False,
) -> GlobalState:
    """Load a database and return a snapshot with it added or updated.

    An unknown cluster is installed as an open (provisional) cluster holding
    only this database. The default cluster/database pointer is left as is.

    Returns:
        GlobalState: New snapshot, or ``state`` itself when nothing was loaded.
    """
    return await _add_or_update_database(
        loader, state, database_name, cluster_name, as_default=False, throw_on_error=throw_on_error
    )


async def add_or_update_default_database(
    loader: SymbolLoader,
    state: GlobalState,
    database_name: str,
    cluster_name: str | None = None,
    *,
    throw_on_error: bool = False,
) -> GlobalState:
    """Like :func:`add_or_update_database`, then make the database the default scope.

    Raises:
        DatabaseNotFoundError: If nothing was loaded and ``throw_on_error`` is True.

    Example:
        >>> state = await add_or_update_default_database(loader, GlobalState.default(), "Samples")
        >>> state.database.name
        'Samples'
    """
    return await _add_or_update_database(
        loader, state, database_name, cluster_name, as_default=True, throw_on_error=throw_on_error
    )


async def _add_or_update_database(
    loader: SymbolLoader,
    state: GlobalState,
    database_name: str,
    cluster_name: str | None,
    *,
    as_default: bool,
    throw_on_error: bool,
) -> GlobalState:
    host = loader.resolve_cluster_name(cluster_name)

    database = await loader.load_database(database_name, host, throw_on_error=throw_on_error)
    if database is None or host is None:
        if as_default and throw_on_error:
            raise DatabaseNotFoundError(
                f"Default database '{database_name}' not found",
                details={"cluster": host, "database": database_name},
            )
        return state

    cluster = state.get_cluster(host)
    if cluster is None:
        cluster = ClusterSymbol(name=host, databases=(database,), is_open=True)
    else:
        cluster = cluster.add_or_update_database(database)
    state = state.add_or_replace_cluster(cluster)

    if as_default:
        state = state.with_default(cluster.name, database.name)

    return state
