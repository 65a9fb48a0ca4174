"""Unit tests for schema symbol models.

This module tests the immutable symbols, the GlobalState snapshot
operations, schema text parsing and the scalar type mappings.
"""

import pytest
from pydantic import ValidationError

from kql_symbols.models.cache_format import DatabaseInfo
from kql_symbols.models.errors import ConfigurationError, ErrorCode, SchemaFormatError
from kql_symbols.models.symbols import (
    ClusterSymbol,
    ColumnSymbol,
    DatabaseSymbol,
    FunctionSymbol,
    GlobalState,
    TableSymbol,
    format_schema,
    parse_schema,
    quote_name,
)
from kql_symbols.models.types import ScalarType, scalar_type_from_clr, scalar_type_from_name


class TestScalarTypeMapping:
    """Tests for CLR and KQL type name mapping."""

    @pytest.mark.parametrize(
        "clr_type,expected",
        [
            ("System.Int32", ScalarType.INT),
            ("System.UInt32", ScalarType.LONG),
            ("System.Int64", ScalarType.LONG),
            ("System.UInt64", ScalarType.DECIMAL),
            ("System.Data.SqlTypes.SqlDecimal", ScalarType.DECIMAL),
            ("System.Double", ScalarType.REAL),
            ("System.Guid", ScalarType.GUID),
            ("System.DateTime", ScalarType.DATETIME),
            ("System.TimeSpan", ScalarType.TIMESPAN),
            ("System.String", ScalarType.STRING),
            ("System.Boolean", ScalarType.BOOL),
            ("System.Object", ScalarType.DYNAMIC),
            ("System.Type", ScalarType.TYPE),
        ],
    )
    def test_clr_type_mapping(self, clr_type: str, expected: ScalarType):
        """Test that CLR type names map to the expected scalar types."""
        assert scalar_type_from_clr(clr_type) == expected

    def test_unknown_clr_type_is_configuration_error(self):
        """Test that an unmapped CLR type raises ConfigurationError."""
        with pytest.raises(ConfigurationError) as exc_info:
            scalar_type_from_clr("System.Numerics.BigInteger")

        assert exc_info.value.code == ErrorCode.CONFIGURATION_ERROR
        assert "System.Numerics.BigInteger" in exc_info.value.message

    def test_kql_type_aliases(self):
        """Test that documented KQL aliases are accepted."""
        assert scalar_type_from_name("double") == ScalarType.REAL
        assert scalar_type_from_name(" Boolean ") == ScalarType.BOOL
        assert scalar_type_from_name("uuid") == ScalarType.GUID

    def test_unknown_kql_type_is_schema_format_error(self):
        """Test that unknown schema type names raise SchemaFormatError."""
        with pytest.raises(SchemaFormatError):
            scalar_type_from_name("varchar")


class TestSchemaText:
    """Tests for schema text parsing and formatting."""

    def test_parse_with_parentheses(self):
        """Test parsing of parenthesized schema text."""
        columns = parse_schema("(a: string, b: long)")

        assert columns == (
            ColumnSymbol(name="a", type=ScalarType.STRING),
            ColumnSymbol(name="b", type=ScalarType.LONG),
        )

    def test_parse_csl_schema(self):
        """Test parsing of compact cslschema text."""
        columns = parse_schema("Id:long,Payload:dynamic")

        assert [c.name for c in columns] == ["Id", "Payload"]
        assert [c.type for c in columns] == [ScalarType.LONG, ScalarType.DYNAMIC]

    def test_parse_quoted_names(self):
        """Test that bracket-quoted names may contain separators."""
        columns = parse_schema("(['a, b']: string, ['c:d']: int)")

        assert [c.name for c in columns] == ["a, b", "c:d"]

    def test_parse_empty_schema(self):
        """Test that empty schema text has no columns."""
        assert parse_schema("()") == ()
        assert parse_schema("") == ()

    @pytest.mark.parametrize("schema", ["(a string)", "(a: string", "(['a: string)", "(: int)"])
    def test_parse_malformed_schema(self, schema: str):
        """Test that malformed schema text raises SchemaFormatError."""
        with pytest.raises(SchemaFormatError):
            parse_schema(schema)

    def test_format_quotes_non_identifiers(self):
        """Test that formatting quotes names that are not identifiers."""
        columns = (
            ColumnSymbol(name="plain", type=ScalarType.INT),
            ColumnSymbol(name="with space", type=ScalarType.STRING),
        )

        assert format_schema(columns) == "(plain: int, ['with space']: string)"

    def test_quote_name_escapes_quotes(self):
        """Test that quote characters in names are escaped."""
        assert quote_name("it's") == "['it\\'s']"

    def test_schema_text_round_trip(self):
        """Test that schema_text parses back to the same columns."""
        table = TableSymbol.from_schema("T", "(['my col']: string, n: long)")

        assert parse_schema(table.schema_text) == table.columns


class TestSymbols:
    """Tests for symbol invariants."""

    def test_symbols_are_frozen(self):
        """Test that symbols cannot be mutated."""
        table = TableSymbol(name="T")

        with pytest.raises(ValidationError):
            table.name = "U"

    def test_empty_description_is_none(self):
        """Test that empty descriptions are normalized to None."""
        assert TableSymbol(name="T", description="").description is None
        assert ColumnSymbol(name="c", type=ScalarType.INT, description="  ").description is None
        assert FunctionSymbol(name="f", description="").description is None

    def test_table_cannot_be_external_and_view(self):
        """Test that a table has at most one kind flag."""
        with pytest.raises(ValidationError):
            TableSymbol(name="T", is_external=True, is_materialized_view=True)

    def test_with_kind_flags(self):
        """Test that kind helpers return re-tagged copies."""
        table = TableSymbol(name="T")

        external = table.with_is_external()
        view = external.with_is_materialized_view()

        assert external.is_external and not external.is_materialized_view
        assert view.is_materialized_view and not view.is_external
        assert not table.is_external

    def test_placeholder_database(self):
        """Test the placeholder state of a database."""
        placeholder = DatabaseSymbol.placeholder("db")
        empty = DatabaseSymbol(name="db")

        assert placeholder.is_placeholder
        assert not empty.is_placeholder

    def test_open_database_cannot_have_members(self):
        """Test that a database is never partially populated."""
        with pytest.raises(ValidationError):
            DatabaseSymbol(name="db", members=(TableSymbol(name="T"),), is_open=True)

    def test_duplicate_member_names_rejected(self):
        """Test that member names are unique regardless of case."""
        with pytest.raises(ValidationError):
            DatabaseSymbol(
                name="db",
                members=(TableSymbol(name="T"), FunctionSymbol(name="t")),
            )

    def test_member_categories(self, samples_database: DatabaseSymbol):
        """Test that members are sorted into their categories."""
        assert [t.name for t in samples_database.tables] == ["StormEvents"]
        assert [t.name for t in samples_database.external_tables] == ["Archive"]
        assert [t.name for t in samples_database.materialized_views] == ["DailyCounts"]
        assert [f.name for f in samples_database.functions] == ["TopStates"]
        assert samples_database.get_member("stormevents").name == "StormEvents"

    def test_duplicate_database_names_rejected(self):
        """Test that database names are unique within a cluster."""
        with pytest.raises(ValidationError):
            ClusterSymbol(
                name="c", databases=(DatabaseSymbol(name="db"), DatabaseSymbol(name="DB"))
            )

    def test_cluster_add_or_update_database(self):
        """Test that a same-named database is replaced in place."""
        cluster = ClusterSymbol(
            name="c",
            databases=(DatabaseSymbol.placeholder("a"), DatabaseSymbol.placeholder("b")),
        )

        updated = cluster.add_or_update_database(DatabaseSymbol(name="A"))
        extended = updated.add_or_update_database(DatabaseSymbol(name="c"))

        assert [d.name for d in updated.databases] == ["A", "b"]
        assert not updated.get_database("a").is_open
        assert [d.name for d in extended.databases] == ["A", "b", "c"]
        assert cluster.get_database("a").is_placeholder


class TestGlobalState:
    """Tests for GlobalState snapshot operations."""

    def test_default_is_empty(self):
        """Test that the default snapshot has no clusters or default scope."""
        state = GlobalState.default()

        assert state.clusters == ()
        assert state.cluster is None
        assert state.database is None

    def test_add_or_replace_cluster_returns_new_snapshot(self):
        """Test that adding a cluster leaves the original snapshot unchanged."""
        state = GlobalState.default()

        added = state.add_or_replace_cluster(ClusterSymbol(name="c1"))
        replaced = added.add_or_replace_cluster(ClusterSymbol(name="C1", is_open=True))

        assert state.clusters == ()
        assert len(added.clusters) == 1
        assert len(replaced.clusters) == 1
        assert replaced.get_cluster("c1").is_open
        assert not added.get_cluster("c1").is_open

    def test_default_pointer_follows_replaced_cluster(self):
        """Test that the default database resolves against the current cluster."""
        cluster = ClusterSymbol(name="c", databases=(DatabaseSymbol.placeholder("db"),))
        state = GlobalState.default().add_or_replace_cluster(cluster).with_default("c", "db")

        assert state.database.is_placeholder

        loaded = cluster.add_or_update_database(DatabaseSymbol(name="db"))
        state = state.add_or_replace_cluster(loaded)

        assert state.cluster is loaded
        assert not state.database.is_placeholder


class TestCacheFormat:
    """Tests for the cached database document."""

    def test_round_trip(self, samples_database: DatabaseSymbol):
        """Test that a database survives a JSON round trip."""
        text = DatabaseInfo.from_symbol(samples_database).to_json()

        assert DatabaseInfo.model_validate_json(text).to_symbol() == samples_database

    def test_empty_categories_are_omitted(self):
        """Test that empty categories and descriptions are not written."""
        database = DatabaseSymbol(name="db", members=(TableSymbol.from_schema("T", "(a: int)"),))

        text = DatabaseInfo.from_symbol(database).to_json()

        assert '"Tables"' in text
        assert '"Schema": "(a: int)"' in text
        assert "ExternalTables" not in text
        assert "Functions" not in text
        assert "Description" not in text

    def test_pascal_case_document_is_read(self):
        """Test reading a hand-written cache document."""
        text = """
        {
            "Name": "db",
            "Tables": [{"Name": "T", "Schema": "(a:string)", "Description": ""}],
            "Functions": [{"Name": "f", "Parameters": "()", "Body": "{ T }"}]
        }
        """

        database = DatabaseInfo.model_validate_json(text).to_symbol()

        assert database.get_member("T").columns[0].type == ScalarType.STRING
        assert database.get_member("T").description is None
        assert database.get_member("f").body == "{ T }"
