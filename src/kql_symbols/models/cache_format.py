"""On-disk schema cache document format.

Each cached database is stored as one JSON document. Categories that are
empty and descriptions that are absent are omitted from the output, so the
files stay small and readable.
"""

from pydantic import BaseModel, ConfigDict, Field

from kql_symbols.models.symbols import DatabaseSymbol, FunctionSymbol, TableSymbol

_FORMAT_CONFIG = ConfigDict(populate_by_name=True, extra="ignore")


class TableInfo(BaseModel):
    """Cached table, external table or materialized view.

    Column doc strings do not fit into schema text and are kept by column
    name in ``ColumnDescriptions``.
    """

    model_config = _FORMAT_CONFIG

    name: str = Field(..., alias="Name")
    schema_text: str = Field(..., alias="Schema")
    description: str | None = Field(None, alias="Description")
    column_descriptions: dict[str, str] | None = Field(None, alias="ColumnDescriptions")

    @classmethod
    def from_symbol(cls, table: TableSymbol) -> "TableInfo":
        column_descriptions = {c.name: c.description for c in table.columns if c.description}
        return cls(
            name=table.name,
            schema_text=table.schema_text,
            description=table.description,
            column_descriptions=column_descriptions or None,
        )

    def to_symbol(self, *, is_external: bool = False, is_materialized_view: bool = False) -> TableSymbol:
        table = TableSymbol.from_schema(
            self.name,
            self.schema_text,
            self.description,
            is_external=is_external,
            is_materialized_view=is_materialized_view,
        )
        if not self.column_descriptions:
            return table
        columns = tuple(
            c.model_copy(update={"description": self.column_descriptions.get(c.name) or None})
            for c in table.columns
        )
        return table.model_copy(update={"columns": columns})


class FunctionInfo(BaseModel):
    """Cached function."""

    model_config = _FORMAT_CONFIG

    name: str = Field(..., alias="Name")
    parameters: str = Field(default="()", alias="Parameters")
    body: str = Field(default="", alias="Body")
    description: str | None = Field(None, alias="Description")

    @classmethod
    def from_symbol(cls, function: FunctionSymbol) -> "FunctionInfo":
        return cls(
            name=function.name,
            parameters=function.parameters,
            body=function.body,
            description=function.description,
        )

    def to_symbol(self) -> FunctionSymbol:
        return FunctionSymbol(
            name=self.name,
            parameters=self.parameters,
            body=self.body,
            description=self.description,
        )


class DatabaseInfo(BaseModel):
    """Cached database document."""

    model_config = _FORMAT_CONFIG

    name: str = Field(..., alias="Name")
    tables: list[TableInfo] | None = Field(None, alias="Tables")
    external_tables: list[TableInfo] | None = Field(None, alias="ExternalTables")
    materialized_views: list[TableInfo] | None = Field(None, alias="MaterializedViews")
    functions: list[FunctionInfo] | None = Field(None, alias="Functions")

    @classmethod
    def from_symbol(cls, database: DatabaseSymbol) -> "DatabaseInfo":
        """Build the cache document for a database symbol."""
        return cls(
            name=database.name,
            tables=[TableInfo.from_symbol(t) for t in database.tables] or None,
            external_tables=[TableInfo.from_symbol(t) for t in database.external_tables] or None,
            materialized_views=[TableInfo.from_symbol(t) for t in database.materialized_views]
            or None,
            functions=[FunctionInfo.from_symbol(f) for f in database.functions] or None,
        )

    def to_symbol(self) -> DatabaseSymbol:
        """Rebuild the database symbol.

        Raises:
            SchemaFormatError: If any table schema text cannot be parsed.
        """
        members: list[TableSymbol | FunctionSymbol] = []
        members.extend(t.to_symbol() for t in self.tables or ())
        members.extend(t.to_symbol(is_external=True) for t in self.external_tables or ())
        members.extend(
            t.to_symbol(is_materialized_view=True) for t in self.materialized_views or ()
        )
        members.extend(f.to_symbol() for f in self.functions or ())
        return DatabaseSymbol(name=self.name, members=tuple(members))

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True, indent=2)


class DatabaseNamesInfo(BaseModel):
    """Cached list of the database names on a cluster."""

    model_config = _FORMAT_CONFIG

    cluster: str = Field(..., alias="Cluster")
    databases: list[str] = Field(default_factory=list, alias="Databases")

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=2)
