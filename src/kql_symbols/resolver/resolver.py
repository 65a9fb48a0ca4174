"""Lazy schema resolution for explicitly referenced clusters and databases.

The resolver inspects each block of a document in two phases. Cluster
references are enumerated first, installing every database of the cluster
as an open placeholder. Database references are then loaded in full, but
only when the snapshot does not already hold their schema.
"""

import logging

from kql_symbols.loaders.base import SymbolLoader, add_or_update_database
from kql_symbols.models.symbols import ClusterSymbol, DatabaseSymbol, GlobalState
from kql_symbols.observability.metrics import MetricsCollector, metrics
from kql_symbols.resolver.document import QueryBlock, QueryDocument

logger = logging.getLogger(__name__)


class SymbolResolver:
    """Adds the schema a document references to its symbol snapshot.

    The resolver remembers, for its whole lifetime, which clusters failed to
    enumerate and the database names of those that succeeded. It does not ask
    the loader about either again; a snapshot missing an enumerated cluster
    gets it reinstalled from the remembered names.

    Attributes:
        loader: Loader used for enumeration and database loads.

    Example:
        >>> resolver = SymbolResolver(loader)
        >>> doc = QueryDocument(text="cluster('help').database('Samples').StormEvents")
        >>> doc = await resolver.add_referenced_databases(doc)
        >>> doc.globals.get_cluster("help.kusto.windows.net").get_database("Samples").is_placeholder
        False
    """

    def __init__(self, loader: SymbolLoader, metrics_collector: MetricsCollector | None = None) -> None:
        self.loader = loader
        self.metrics = metrics_collector or metrics
        self._bad_cluster_names: set[str] = set()
        self._enumerated_clusters: dict[str, list[str]] = {}

    def is_known_bad_cluster(self, cluster_name: str) -> bool:
        host = self.loader.resolve_cluster_name(cluster_name) or ""
        return host.lower() in self._bad_cluster_names

    async def add_referenced_databases(
        self, document: QueryDocument, *, throw_on_error: bool = False
    ) -> QueryDocument:
        """Load the clusters and databases a document references.

        Unresolvable references are left alone; reporting them is up to the
        analysis of the document.

        Args:
            document: Document bound to the starting snapshot.
            throw_on_error: Propagate loader failures.

        Returns:
            QueryDocument: The document bound to the updated snapshot.
        """
        state = document.globals
        for block in document.blocks:
            state = await self._add_referenced_clusters(block, state, throw_on_error)
            state = await self._add_referenced_databases(block, state, throw_on_error)

        if state is document.globals:
            return document
        return document.with_globals(state)

    async def _add_referenced_clusters(
        self, block: QueryBlock, state: GlobalState, throw_on_error: bool
    ) -> GlobalState:
        for reference in block.cluster_references:
            host = self.loader.resolve_cluster_name(reference.cluster)
            if not host:
                continue

            key = host.lower()
            if key in self._bad_cluster_names:
                logger.debug("Skipping cluster '%s': known not to exist", host)
                self.metrics.increment_negative_cache_hit("resolver")
                continue

            existing = state.get_cluster(host)
            if existing is not None and not existing.is_open:
                continue

            names = self._enumerated_clusters.get(key)
            if names is None:
                names = await self.loader.get_database_names(host, throw_on_error=throw_on_error)
                if names is None:
                    logger.info("Cannot enumerate databases of cluster '%s'", host)
                    self._bad_cluster_names.add(key)
                    continue
                self._enumerated_clusters[key] = names

            state = state.add_or_replace_cluster(_enumerated_cluster(host, existing, names))

        return state

    async def _add_referenced_databases(
        self, block: QueryBlock, state: GlobalState, throw_on_error: bool
    ) -> GlobalState:
        for reference in block.database_references:
            if reference.cluster:
                cluster_name = self.loader.resolve_cluster_name(reference.cluster)
            else:
                cluster_name = state.default_cluster_name

            cluster = state.get_cluster(cluster_name) if cluster_name else None
            if cluster is None:
                continue

            database = cluster.get_database(reference.database)
            if database is not None and not database.is_placeholder:
                continue

            state = await add_or_update_database(
                self.loader, state, reference.database, cluster.name, throw_on_error=throw_on_error
            )

        return state


def _enumerated_cluster(
    host: str, existing: ClusterSymbol | None, database_names: list[str]
) -> ClusterSymbol:
    """Build a fully enumerated cluster.

    Databases already loaded in ``existing`` are kept; every other name
    becomes an open placeholder.
    """
    databases: list[DatabaseSymbol] = []
    seen: set[str] = set()

    for name in database_names:
        if name.lower() in seen:
            continue
        seen.add(name.lower())
        loaded = existing.get_database(name) if existing is not None else None
        databases.append(loaded if loaded is not None else DatabaseSymbol.placeholder(name))

    if existing is not None:
        for database in existing.databases:
            if database.name.lower() not in seen and not database.is_placeholder:
                seen.add(database.name.lower())
                databases.append(database)

    name = existing.name if existing is not None else host
    return ClusterSymbol(name=name, databases=tuple(databases), is_open=False)
