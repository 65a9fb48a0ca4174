"""Cluster connection and control command utilities.

This package provides connection string handling, host name expansion and
the control command client used by the remote schema loader.
"""

from kql_symbols.kusto.client import (
    ClientFactory,
    KustoManagementClient,
    ManagementClient,
    create_client,
)
from kql_symbols.kusto.connection import (
    ConnectionInfo,
    get_full_host_name,
    get_host_name,
)

__all__ = [
    "ClientFactory",
    "ConnectionInfo",
    "KustoManagementClient",
    "ManagementClient",
    "create_client",
    "get_full_host_name",
    "get_host_name",
]
