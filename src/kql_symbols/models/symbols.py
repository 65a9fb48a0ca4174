"""Schema symbol models.

This module defines the immutable symbols that describe remote schema:
clusters, databases, tables (including external tables and materialized
views), functions, and the :class:`GlobalState` snapshot that indexes them.

Every model is frozen. Operations that "change" a symbol return a new
instance, so a snapshot handed to a caller never changes underneath it.
"""

import re
from typing import Self

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from kql_symbols.models.errors import SchemaFormatError
from kql_symbols.models.types import ScalarType, scalar_type_from_name

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _empty_to_none(value: str | None) -> str | None:
    if value is None or not str(value).strip():
        return None
    return value


def quote_name(name: str) -> str:
    """Quote a name for use in KQL text when it is not a plain identifier.

    Example:
        >>> quote_name("StormEvents")
        'StormEvents'
        >>> quote_name("my table")
        "['my table']"
    """
    if _IDENTIFIER.match(name):
        return name
    escaped = name.replace("\\", "\\\\").replace("'", "\\'")
    return f"['{escaped}']"


class ColumnSymbol(BaseModel):
    """A table column."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Column name")
    type: ScalarType = Field(..., description="Column scalar type")
    description: str | None = Field(None, description="Column doc string")

    @field_validator("description", mode="before")
    @classmethod
    def normalize_description(cls, v: str | None) -> str | None:
        return _empty_to_none(v)


class TableSymbol(BaseModel):
    """A table, external table or materialized view."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Table name")
    columns: tuple[ColumnSymbol, ...] = Field(default=(), description="Columns in order")
    description: str | None = Field(None, description="Table doc string")
    is_external: bool = Field(default=False, description="Whether this is an external table")
    is_materialized_view: bool = Field(
        default=False, description="Whether this is a materialized view"
    )

    @field_validator("description", mode="before")
    @classmethod
    def normalize_description(cls, v: str | None) -> str | None:
        return _empty_to_none(v)

    @model_validator(mode="after")
    def check_kind(self) -> Self:
        if self.is_external and self.is_materialized_view:
            raise ValueError("A table cannot be both external and a materialized view")
        return self

    @classmethod
    def from_schema(
        cls,
        name: str,
        schema: str,
        description: str | None = None,
        *,
        is_external: bool = False,
        is_materialized_view: bool = False,
    ) -> "TableSymbol":
        """Create a table from schema text such as ``(a: string, b: long)``.

        Args:
            name: Table name.
            schema: Schema text; the surrounding parentheses are optional.
            description: Optional doc string.
            is_external: Mark the table as an external table.
            is_materialized_view: Mark the table as a materialized view.

        Returns:
            TableSymbol: The table with its parsed columns.

        Raises:
            SchemaFormatError: If the schema text cannot be parsed.
        """
        return cls(
            name=name,
            columns=parse_schema(schema),
            description=description,
            is_external=is_external,
            is_materialized_view=is_materialized_view,
        )

    @property
    def schema_text(self) -> str:
        """Canonical schema text, e.g. ``(a: string, b: long)``."""
        return format_schema(self.columns)

    def with_is_external(self, value: bool = True) -> "TableSymbol":
        """Return a copy marked (or unmarked) as an external table."""
        return self.model_copy(update={"is_external": value, "is_materialized_view": False})

    def with_is_materialized_view(self, value: bool = True) -> "TableSymbol":
        """Return a copy marked (or unmarked) as a materialized view."""
        return self.model_copy(update={"is_materialized_view": value, "is_external": False})

    def get_column(self, name: str) -> ColumnSymbol | None:
        for column in self.columns:
            if column.name == name:
                return column
        return None


class FunctionSymbol(BaseModel):
    """A stored function with a single signature."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Function name")
    parameters: str = Field(default="()", description="Parameter list text, e.g. '(x: long)'")
    body: str = Field(default="", description="Function body text")
    description: str | None = Field(None, description="Function doc string")

    @field_validator("description", mode="before")
    @classmethod
    def normalize_description(cls, v: str | None) -> str | None:
        return _empty_to_none(v)


Member = TableSymbol | FunctionSymbol


class DatabaseSymbol(BaseModel):
    """A database and its members.

    An open database with no members is a placeholder: the name is known to
    exist but its schema has not been fetched. It is distinct from a fetched
    database that happens to be empty (``is_open=False``).
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Database name")
    members: tuple[Member, ...] = Field(default=(), description="Tables and functions")
    is_open: bool = Field(default=False, description="Whether the member set is unknown")

    @model_validator(mode="after")
    def check_members(self) -> Self:
        if self.is_open and self.members:
            raise ValueError(f"Open database '{self.name}' cannot have members")
        seen: set[str] = set()
        for member in self.members:
            key = member.name.lower()
            if key in seen:
                raise ValueError(f"Duplicate member '{member.name}' in database '{self.name}'")
            seen.add(key)
        return self

    @classmethod
    def placeholder(cls, name: str) -> "DatabaseSymbol":
        """Create an open placeholder for a database whose schema is not loaded."""
        return cls(name=name, is_open=True)

    @property
    def is_placeholder(self) -> bool:
        return self.is_open and not self.members

    @property
    def tables(self) -> list[TableSymbol]:
        """Regular tables (excluding external tables and materialized views)."""
        return [
            m
            for m in self.members
            if isinstance(m, TableSymbol) and not m.is_external and not m.is_materialized_view
        ]

    @property
    def external_tables(self) -> list[TableSymbol]:
        return [m for m in self.members if isinstance(m, TableSymbol) and m.is_external]

    @property
    def materialized_views(self) -> list[TableSymbol]:
        return [m for m in self.members if isinstance(m, TableSymbol) and m.is_materialized_view]

    @property
    def functions(self) -> list[FunctionSymbol]:
        return [m for m in self.members if isinstance(m, FunctionSymbol)]

    def get_member(self, name: str) -> Member | None:
        """Find a member by case-insensitive name."""
        key = name.lower()
        for member in self.members:
            if member.name.lower() == key:
                return member
        return None


class ClusterSymbol(BaseModel):
    """A cluster and the databases known on it.

    ``is_open`` is False when the database list came from a full enumeration
    of the cluster, and True when the list is provisional.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Fully qualified cluster host name")
    databases: tuple[DatabaseSymbol, ...] = Field(default=(), description="Known databases")
    is_open: bool = Field(default=False, description="Whether the database list is provisional")

    @model_validator(mode="after")
    def check_databases(self) -> Self:
        seen: set[str] = set()
        for database in self.databases:
            key = database.name.lower()
            if key in seen:
                raise ValueError(f"Duplicate database '{database.name}' in cluster '{self.name}'")
            seen.add(key)
        return self

    def get_database(self, name: str) -> DatabaseSymbol | None:
        """Find a database by case-insensitive name."""
        key = name.lower()
        for database in self.databases:
            if database.name.lower() == key:
                return database
        return None

    def add_or_update_database(self, database: DatabaseSymbol) -> "ClusterSymbol":
        """Return a copy with ``database`` added, or replacing the same-named one."""
        key = database.name.lower()
        databases = list(self.databases)
        for index, existing in enumerate(databases):
            if existing.name.lower() == key:
                databases[index] = database
                break
        else:
            databases.append(database)
        return self.model_copy(update={"databases": tuple(databases)})


class GlobalState(BaseModel):
    """Immutable snapshot of all known clusters plus the default scope.

    The default cluster and database are stored by name and resolved on
    access, so replacing a cluster never leaves a stale default pointer.
    """

    model_config = ConfigDict(frozen=True)

    clusters: tuple[ClusterSymbol, ...] = Field(default=(), description="Known clusters")
    default_cluster_name: str | None = Field(None, description="Default cluster host name")
    default_database_name: str | None = Field(None, description="Default database name")

    @classmethod
    def default(cls) -> "GlobalState":
        """The empty snapshot."""
        return cls()

    @property
    def cluster(self) -> ClusterSymbol | None:
        """The default cluster, if set and known."""
        if self.default_cluster_name is None:
            return None
        return self.get_cluster(self.default_cluster_name)

    @property
    def database(self) -> DatabaseSymbol | None:
        """The default database, if set and known."""
        cluster = self.cluster
        if cluster is None or self.default_database_name is None:
            return None
        return cluster.get_database(self.default_database_name)

    def get_cluster(self, name: str) -> ClusterSymbol | None:
        """Find a cluster by case-insensitive host name."""
        key = name.lower()
        for cluster in self.clusters:
            if cluster.name.lower() == key:
                return cluster
        return None

    def add_or_replace_cluster(self, cluster: ClusterSymbol) -> "GlobalState":
        """Return a snapshot with ``cluster`` added, or replacing the same-named one."""
        key = cluster.name.lower()
        clusters = list(self.clusters)
        for index, existing in enumerate(clusters):
            if existing.name.lower() == key:
                clusters[index] = cluster
                break
        else:
            clusters.append(cluster)
        return self.model_copy(update={"clusters": tuple(clusters)})

    def with_default(self, cluster_name: str | None, database_name: str | None) -> "GlobalState":
        """Return a snapshot with the default cluster/database pointer changed."""
        return self.model_copy(
            update={"default_cluster_name": cluster_name, "default_database_name": database_name}
        )


def _split_top_level(text: str) -> list[str]:
    parts: list[str] = []
    depth = 0
    quote: str | None = None
    current: list[str] = []
    index = 0
    while index < len(text):
        ch = text[index]
        if quote is not None:
            current.append(ch)
            if ch == "\\" and index + 1 < len(text):
                current.append(text[index + 1])
                index += 1
            elif ch == quote:
                quote = None
        elif ch in "'\"":
            quote = ch
            current.append(ch)
        elif ch in "[(":
            depth += 1
            current.append(ch)
        elif ch in "])":
            depth -= 1
            current.append(ch)
        elif ch == "," and depth == 0:
            parts.append("".join(current))
            current = []
        else:
            current.append(ch)
        index += 1
    if quote is not None or depth != 0:
        raise SchemaFormatError(f"Unbalanced schema text: {text!r}")
    parts.append("".join(current))
    return parts


def _parse_column_name(text: str) -> str:
    text = text.strip()
    if text.startswith("[") and text.endswith("]"):
        inner = text[1:-1].strip()
        if len(inner) >= 2 and inner[0] == inner[-1] and inner[0] in "'\"":
            body = inner[1:-1]
            return re.sub(r"\\(.)", r"\1", body)
        raise SchemaFormatError(f"Invalid quoted column name: {text!r}")
    if not text:
        raise SchemaFormatError("Missing column name")
    return text


def _find_separator(part: str) -> int:
    depth = 0
    quote: str | None = None
    for index, ch in enumerate(part):
        if quote is not None:
            if ch == quote and part[index - 1] != "\\":
                quote = None
        elif ch in "'\"":
            quote = ch
        elif ch == "[":
            depth += 1
        elif ch == "]":
            depth -= 1
        elif ch == ":" and depth == 0:
            return index
    return -1


def parse_schema(schema: str) -> tuple[ColumnSymbol, ...]:
    """Parse schema text into columns.

    Args:
        schema: Text such as ``(a: string, ['b c']: long)`` or ``a:string,b:long``.

    Returns:
        tuple[ColumnSymbol, ...]: Columns in declaration order.

    Raises:
        SchemaFormatError: If the text is malformed or names an unknown type.
    """
    text = schema.strip()
    if text.startswith("(") and text.endswith(")"):
        text = text[1:-1].strip()
    if not text:
        return ()

    columns = []
    for part in _split_top_level(text):
        separator = _find_separator(part)
        if separator < 0:
            raise SchemaFormatError(f"Column declaration without type: {part.strip()!r}")
        name = _parse_column_name(part[:separator])
        columns.append(ColumnSymbol(name=name, type=scalar_type_from_name(part[separator + 1 :])))
    return tuple(columns)


def format_schema(columns: tuple[ColumnSymbol, ...] | list[ColumnSymbol]) -> str:
    """Render columns as canonical schema text."""
    return "(" + ", ".join(f"{quote_name(c.name)}: {c.type.value}" for c in columns) + ")"
