"""Remote schema loading.

This module loads database schema directly from a cluster by issuing
control commands and translating their tabular results into symbols.
"""

import logging
import time
from typing import TypeVar

from pydantic import BaseModel, ConfigDict, Field

from kql_symbols.config.settings import DEFAULT_DOMAIN
from kql_symbols.kusto.client import ClientFactory, ManagementClient, create_client
from kql_symbols.kusto.connection import ConnectionInfo, get_full_host_name
from kql_symbols.loaders.base import SymbolLoader
from kql_symbols.models.errors import RemoteCommandError, SchemaFormatError
from kql_symbols.models.symbols import (
    ColumnSymbol,
    DatabaseSymbol,
    FunctionSymbol,
    TableSymbol,
    quote_name,
)
from kql_symbols.models.types import scalar_type_from_clr
from kql_symbols.observability.metrics import MetricsCollector, metrics

logger = logging.getLogger(__name__)

_ROW_CONFIG = ConfigDict(extra="ignore", populate_by_name=True)


class ShowDatabasesRow(BaseModel):
    """Row of ``.show databases``."""

    model_config = _ROW_CONFIG

    database_name: str = Field(..., alias="DatabaseName")


class ShowDatabaseSchemaRow(BaseModel):
    """Row of ``.show database <db> schema``.

    A row without a column name describes the table itself.
    """

    model_config = _ROW_CONFIG

    database_name: str | None = Field(None, alias="DatabaseName")
    table_name: str | None = Field(None, alias="TableName")
    column_name: str | None = Field(None, alias="ColumnName")
    column_type: str | None = Field(None, alias="ColumnType")
    doc_string: str | None = Field(None, alias="DocString")


class ShowExternalTablesRow(BaseModel):
    """Row of ``.show external tables``."""

    model_config = _ROW_CONFIG

    table_name: str = Field(..., alias="TableName")
    doc_string: str | None = Field(None, alias="DocString")


class ShowExternalTableSchemaRow(BaseModel):
    """Row of ``.show external table <t> cslschema``."""

    model_config = _ROW_CONFIG

    table_name: str | None = Field(None, alias="TableName")
    schema_text: str = Field(..., alias="Schema")


class ShowMaterializedViewsRow(BaseModel):
    """Row of ``.show materialized-views``."""

    model_config = _ROW_CONFIG

    name: str = Field(..., alias="Name")
    doc_string: str | None = Field(None, alias="DocString")


class ShowMaterializedViewSchemaRow(BaseModel):
    """Row of ``.show materialized-view <v> cslschema``."""

    model_config = _ROW_CONFIG

    name: str | None = Field(None, alias="Name")
    schema_text: str = Field(..., alias="Schema")


class ShowFunctionsRow(BaseModel):
    """Row of ``.show functions``."""

    model_config = _ROW_CONFIG

    name: str = Field(..., alias="Name")
    parameters: str = Field(default="()", alias="Parameters")
    body: str = Field(default="", alias="Body")
    doc_string: str | None = Field(None, alias="DocString")


RowT = TypeVar("RowT", bound=BaseModel)


class RemoteSymbolLoader(SymbolLoader):
    """Loads schema symbols from cluster servers.

    Other clusters than the one in the connection are reached with the same
    credentials. Database names that failed to load are remembered per
    cluster for the lifetime of the loader and are not requested again.

    Attributes:
        connection: Connection for the default cluster.

    Example:
        >>> loader = RemoteSymbolLoader("https://help.kusto.windows.net;Fed=true")
        >>> db = await loader.load_database("Samples")
        >>> [t.name for t in db.tables][:1]
        ['StormEvents']
    """

    def __init__(
        self,
        connection: str | ConnectionInfo,
        default_domain: str | None = None,
        client_factory: ClientFactory = create_client,
        metrics_collector: MetricsCollector | None = None,
    ) -> None:
        """Initialize remote loader.

        Args:
            connection: Connection string or parsed connection for the default cluster.
            default_domain: Domain appended to short cluster names.
            client_factory: Creates a control command client for a connection.
            metrics_collector: Metrics sink; the global collector if None.
        """
        self.connection = (
            connection if isinstance(connection, ConnectionInfo) else ConnectionInfo.parse(connection)
        )
        self._default_domain = default_domain or DEFAULT_DOMAIN
        self._default_cluster = get_full_host_name(self.connection.data_source, self._default_domain)
        self._client_factory = client_factory
        self._clients: dict[str, ManagementClient] = {}
        self._bad_database_names: dict[str, set[str]] = {}
        self.metrics = metrics_collector or metrics

    @property
    def default_cluster(self) -> str:
        return self._default_cluster

    @property
    def default_domain(self) -> str:
        return self._default_domain

    @property
    def default_database(self) -> str | None:
        """The default database named in the connection."""
        return self.connection.initial_catalog

    def is_known_bad_database(self, database_name: str, cluster_name: str | None = None) -> bool:
        cluster = self.resolve_cluster_name(cluster_name) or ""
        return database_name.lower() in self._bad_database_names.get(cluster, set())

    async def get_database_names(
        self,
        cluster_name: str | None = None,
        *,
        throw_on_error: bool = False,
    ) -> list[str] | None:
        cluster = self.resolve_cluster_name(cluster_name) or self._default_cluster
        rows = await self._execute(
            cluster, None, ".show databases", ShowDatabasesRow, "show_databases", throw_on_error
        )
        if rows is None:
            return None
        return [row.database_name for row in rows]

    async def load_database(
        self,
        database_name: str,
        cluster_name: str | None = None,
        *,
        throw_on_error: bool = False,
    ) -> DatabaseSymbol | None:
        cluster = self.resolve_cluster_name(cluster_name) or self._default_cluster

        if self.is_known_bad_database(database_name, cluster):
            logger.debug("Skipping database '%s' on %s: known not to load", database_name, cluster)
            self.metrics.increment_negative_cache_hit("loader")
            return None

        loaded = await self._load_tables(cluster, database_name, throw_on_error)
        if loaded is None:
            self._bad_database_names.setdefault(cluster, set()).add(database_name.lower())
            return None
        name, tables = loaded

        external_tables = await self._load_external_tables(cluster, database_name, throw_on_error)
        materialized_views = await self._load_materialized_views(
            cluster, database_name, throw_on_error
        )
        functions = await self._load_functions(cluster, database_name, throw_on_error)

        logger.info(
            "Loaded database '%s' from %s: %d tables, %d external tables, "
            "%d materialized views, %d functions",
            name,
            cluster,
            len(tables),
            len(external_tables),
            len(materialized_views),
            len(functions),
        )
        return DatabaseSymbol(
            name=name,
            members=(*tables, *external_tables, *materialized_views, *functions),
        )

    async def _load_tables(
        self, cluster: str, database_name: str, throw_on_error: bool
    ) -> tuple[str, list[TableSymbol]] | None:
        """Load regular tables.

        Returns:
            The database name as spelled by the cluster and its tables, or
            None if the schema command failed.

        Raises:
            ConfigurationError: If a column type has no scalar type mapping.
        """
        rows = await self._execute(
            cluster,
            database_name,
            f".show database {quote_name(database_name)} schema",
            ShowDatabaseSchemaRow,
            "show_database_schema",
            throw_on_error,
        )
        if rows is None:
            return None

        name = next((r.database_name for r in rows if r.database_name), database_name)

        grouped: dict[str, list[ShowDatabaseSchemaRow]] = {}
        for row in rows:
            if row.table_name:
                grouped.setdefault(row.table_name, []).append(row)

        tables = []
        for table_name, table_rows in grouped.items():
            doc_string = next(
                (r.doc_string for r in table_rows if not r.column_name and r.doc_string), None
            )
            columns = tuple(
                ColumnSymbol(
                    name=r.column_name,
                    type=scalar_type_from_clr(r.column_type or ""),
                    description=r.doc_string,
                )
                for r in table_rows
                if r.column_name
            )
            tables.append(TableSymbol(name=table_name, columns=columns, description=doc_string))

        return name, tables

    async def _load_external_tables(
        self, cluster: str, database_name: str, throw_on_error: bool
    ) -> list[TableSymbol]:
        rows = await self._execute(
            cluster,
            database_name,
            ".show external tables",
            ShowExternalTablesRow,
            "show_external_tables",
            throw_on_error,
        )

        tables = []
        for row in rows or ():
            schemas = await self._execute(
                cluster,
                database_name,
                f".show external table {quote_name(row.table_name)} cslschema",
                ShowExternalTableSchemaRow,
                "show_external_table_schema",
                throw_on_error,
            )
            if schemas:
                table = self._table_from_schema(
                    row.table_name, schemas[0].schema_text, row.doc_string, throw_on_error
                )
                if table is not None:
                    tables.append(table.with_is_external())
        return tables

    async def _load_materialized_views(
        self, cluster: str, database_name: str, throw_on_error: bool
    ) -> list[TableSymbol]:
        rows = await self._execute(
            cluster,
            database_name,
            ".show materialized-views",
            ShowMaterializedViewsRow,
            "show_materialized_views",
            throw_on_error,
        )

        views = []
        for row in rows or ():
            schemas = await self._execute(
                cluster,
                database_name,
                f".show materialized-view {quote_name(row.name)} cslschema",
                ShowMaterializedViewSchemaRow,
                "show_materialized_view_schema",
                throw_on_error,
            )
            if schemas:
                view = self._table_from_schema(
                    row.name, schemas[0].schema_text, row.doc_string, throw_on_error
                )
                if view is not None:
                    views.append(view.with_is_materialized_view())
        return views

    async def _load_functions(
        self, cluster: str, database_name: str, throw_on_error: bool
    ) -> list[FunctionSymbol]:
        rows = await self._execute(
            cluster,
            database_name,
            ".show functions",
            ShowFunctionsRow,
            "show_functions",
            throw_on_error,
        )

        return [
            FunctionSymbol(
                name=row.name,
                parameters=row.parameters,
                body=row.body,
                description=row.doc_string,
            )
            for row in rows or ()
        ]

    @staticmethod
    def _table_from_schema(
        name: str, schema: str, doc_string: str | None, throw_on_error: bool
    ) -> TableSymbol | None:
        try:
            return TableSymbol.from_schema(name, schema, doc_string)
        except SchemaFormatError:
            if throw_on_error:
                raise
            logger.warning("Skipping '%s': unreadable schema %r", name, schema)
            return None

    def _get_connection(self, cluster: str) -> ConnectionInfo:
        if cluster == self._default_cluster:
            return self.connection
        # borrow credentials from the default connection
        return self.connection.for_cluster(cluster)

    def _get_client(self, cluster: str) -> ManagementClient:
        client = self._clients.get(cluster)
        if client is None:
            client = self._client_factory(self._get_connection(cluster))
            self._clients[cluster] = client
        return client

    async def _execute(
        self,
        cluster: str,
        database: str | None,
        command: str,
        row_type: type[RowT],
        command_kind: str,
        throw_on_error: bool,
    ) -> list[RowT] | None:
        """Execute a control command and validate its rows.

        Returns:
            list | None: Parsed rows, or None if the command failed and
                ``throw_on_error`` is False.

        Raises:
            RemoteCommandError: If the command failed and ``throw_on_error`` is True.
        """
        client = self._get_client(cluster)
        start = time.perf_counter()
        try:
            rows = await client.execute(database, command)
            result = [row_type.model_validate(row) for row in rows]
        except Exception as e:
            self.metrics.increment_remote_command(command_kind, "error")
            if throw_on_error:
                raise RemoteCommandError(
                    f"Command failed on {cluster}: {e!s}",
                    details={"cluster": cluster, "database": database, "command": command},
                ) from e
            logger.warning("Command '%s' failed on %s (database=%s): %s", command, cluster, database, e)
            return None
        finally:
            self.metrics.observe_remote_command_duration(command_kind, time.perf_counter() - start)

        self.metrics.increment_remote_command(command_kind, "success")
        return result
