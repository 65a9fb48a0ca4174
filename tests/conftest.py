"""Pytest configuration and shared fixtures.

This module provides shared fixtures and configuration for all tests.
"""

import os
from typing import Any

import pytest

from kql_symbols.config.settings import reset_settings
from kql_symbols.kusto.connection import ConnectionInfo
from kql_symbols.models.symbols import DatabaseSymbol, FunctionSymbol, TableSymbol


class FakeManagementClient:
    """In-memory control command client.

    Commands are answered from ``responses``; any other command fails the
    way an unknown database or an unreachable cluster would.
    """

    def __init__(
        self,
        connection: ConnectionInfo | None = None,
        responses: dict[str, list[dict[str, Any]]] | None = None,
        errors: dict[str, Exception] | None = None,
    ) -> None:
        self.connection = connection
        self.responses = responses or {}
        self.errors = errors or {}
        self.calls: list[tuple[str | None, str]] = []

    async def execute(self, database: str | None, command: str) -> list[dict[str, Any]]:
        self.calls.append((database, command))
        if command in self.errors:
            raise self.errors[command]
        if command not in self.responses:
            raise RuntimeError(f"Semantic error: '{command}' has no result")
        return self.responses[command]

    def count(self, prefix: str) -> int:
        return sum(1 for _, command in self.calls if command.startswith(prefix))


def samples_responses() -> dict[str, list[dict[str, Any]]]:
    """Control command results of a small ``Samples`` database."""
    return {
        ".show databases": [{"DatabaseName": "Samples"}, {"DatabaseName": "Other"}],
        ".show database Samples schema": [
            {"DatabaseName": "Samples", "TableName": "", "ColumnName": "", "ColumnType": ""},
            {
                "DatabaseName": "Samples",
                "TableName": "StormEvents",
                "ColumnName": "",
                "ColumnType": "",
                "DocString": "US storm events",
            },
            {
                "DatabaseName": "Samples",
                "TableName": "StormEvents",
                "ColumnName": "StartTime",
                "ColumnType": "System.DateTime",
                "DocString": "",
            },
            {
                "DatabaseName": "Samples",
                "TableName": "StormEvents",
                "ColumnName": "State",
                "ColumnType": "System.String",
                "DocString": "US state",
            },
            {
                "DatabaseName": "Samples",
                "TableName": "StormEvents",
                "ColumnName": "DamageProperty",
                "ColumnType": "System.UInt32",
            },
        ],
        ".show external tables": [{"TableName": "Archive", "DocString": ""}],
        ".show external table Archive cslschema": [
            {"TableName": "Archive", "Schema": "Id:long,Payload:dynamic"}
        ],
        ".show materialized-views": [{"Name": "DailyCounts"}],
        ".show materialized-view DailyCounts cslschema": [
            {"Name": "DailyCounts", "Schema": "Day:datetime,Count:long"}
        ],
        ".show functions": [
            {
                "Name": "TopStates",
                "Parameters": "(n:long)",
                "Body": "{ StormEvents | top n by State }",
                "DocString": "Top states",
            }
        ],
    }


class FakeClientFactory:
    """Client factory that hands out one shared fake client and records connections."""

    def __init__(self, client: FakeManagementClient) -> None:
        self.client = client
        self.connections: list[ConnectionInfo] = []

    def __call__(self, connection: ConnectionInfo) -> FakeManagementClient:
        self.connections.append(connection)
        return self.client


@pytest.fixture
def fake_client() -> FakeManagementClient:
    """Fake client serving the Samples database."""
    return FakeManagementClient(responses=samples_responses())


@pytest.fixture
def client_factory(fake_client: FakeManagementClient) -> FakeClientFactory:
    return FakeClientFactory(fake_client)


@pytest.fixture
def samples_database() -> DatabaseSymbol:
    """Database with one member of every kind."""
    return DatabaseSymbol(
        name="Samples",
        members=(
            TableSymbol.from_schema(
                "StormEvents", "(StartTime: datetime, State: string)", "US storm events"
            ),
            TableSymbol.from_schema("Archive", "(Id: long, Payload: dynamic)", is_external=True),
            TableSymbol.from_schema(
                "DailyCounts", "(Day: datetime, Count: long)", is_materialized_view=True
            ),
            FunctionSymbol(name="TopStates", parameters="(n: long)", body="{ StormEvents }"),
        ),
    )


@pytest.fixture(autouse=True)
def reset_config() -> None:
    """Reset global settings before each test."""
    reset_settings()


@pytest.fixture(autouse=True)
def disable_metrics_for_tests():
    """Disable metrics for tests to avoid port conflicts."""
    os.environ["OBSERVABILITY_METRICS_ENABLED"] = "false"
    yield
    # Clean up
    if "OBSERVABILITY_METRICS_ENABLED" in os.environ:
        del os.environ["OBSERVABILITY_METRICS_ENABLED"]
