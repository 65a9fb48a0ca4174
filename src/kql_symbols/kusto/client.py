"""Control command client.

The loaders talk to clusters through the small :class:`ManagementClient`
interface so that the transport can be replaced in tests. The default
implementation uses the asynchronous Azure Data Explorer client.
"""

from collections.abc import Callable
from typing import Any, Protocol

from azure.kusto.data import KustoConnectionStringBuilder
from azure.kusto.data.aio import KustoClient

from kql_symbols.kusto.connection import ConnectionInfo


class ManagementClient(Protocol):
    """Executes control commands and returns the primary result rows."""

    async def execute(self, database: str | None, command: str) -> list[dict[str, Any]]:
        """Execute a control command.

        Args:
            database: Database context for the command, or None for the
                connection's default.
            command: Control command text, e.g. ``.show databases``.

        Returns:
            list[dict[str, Any]]: Rows of the primary result, keyed by column name.
        """
        ...


ClientFactory = Callable[[ConnectionInfo], ManagementClient]


class KustoManagementClient:
    """:class:`ManagementClient` backed by ``azure.kusto.data.aio.KustoClient``.

    A client is opened per command and closed afterwards, which keeps the
    loader free of connection lifecycle management.
    """

    def __init__(self, connection: ConnectionInfo) -> None:
        """Initialize client.

        Args:
            connection: Connection for the target cluster.
        """
        self.connection = connection
        self._kcsb = KustoConnectionStringBuilder(connection.to_connection_string())

    async def execute(self, database: str | None, command: str) -> list[dict[str, Any]]:
        async with KustoClient(self._kcsb) as client:
            response = await client.execute_mgmt(database or None, command)

        table = response.primary_results[0]
        columns = [column.column_name for column in table.columns]
        return [{name: row[index] for index, name in enumerate(columns)} for row in table.rows]


def create_client(connection: ConnectionInfo) -> ManagementClient:
    """Default client factory.

    Example:
        >>> client = create_client(ConnectionInfo.parse("https://help.kusto.windows.net;Fed=true"))
        >>> rows = await client.execute(None, ".show databases")
    """
    return KustoManagementClient(connection)
