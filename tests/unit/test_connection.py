"""Unit tests for connection strings and host names."""

import pytest

from kql_symbols.kusto.connection import (
    DEFAULT_CATALOG,
    ConnectionInfo,
    get_full_host_name,
    get_host_name,
)
from kql_symbols.models.errors import ConfigurationError


class TestHostNames:
    """Tests for host name extraction and expansion."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("https://Help.Kusto.Windows.Net", "help.kusto.windows.net"),
            ("https://help.kusto.windows.net:443/Samples", "help.kusto.windows.net"),
            ("help.kusto.windows.net/Samples", "help.kusto.windows.net"),
            ("Help", "help"),
            ("user@help:443", "help"),
        ],
    )
    def test_get_host_name(self, value: str, expected: str):
        """Test host extraction from names and URIs."""
        assert get_host_name(value) == expected

    def test_short_name_is_expanded(self):
        """Test that short names get the default domain."""
        assert get_full_host_name("help") == "help.kusto.windows.net"
        assert get_full_host_name("help", ".example.com") == "help.example.com"

    def test_qualified_name_is_kept(self):
        """Test that fully qualified names are not expanded."""
        assert get_full_host_name("help.contoso.com") == "help.contoso.com"
        assert get_full_host_name("https://HELP.contoso.com") == "help.contoso.com"


class TestConnectionInfo:
    """Tests for connection string parsing."""

    def test_parse_bare_data_source(self):
        """Test that a leading segment without '=' is the data source."""
        info = ConnectionInfo.parse("https://help.kusto.windows.net;Fed=true")

        assert info.data_source == "https://help.kusto.windows.net"
        assert info.host == "help.kusto.windows.net"
        assert info.get("fed") == "true"
        assert info.initial_catalog is None

    def test_parse_keyword_aliases(self):
        """Test that data source and catalog aliases are normalized."""
        info = ConnectionInfo.parse("Server=https://help.kusto.windows.net;Database=Samples")

        assert info.data_source == "https://help.kusto.windows.net"
        assert info.initial_catalog == "Samples"

    def test_missing_data_source(self):
        """Test that a connection without data source is rejected."""
        with pytest.raises(ConfigurationError):
            ConnectionInfo.parse("Fed=true")

    def test_bare_segment_after_first_is_rejected(self):
        """Test that only the first segment may omit the keyword."""
        with pytest.raises(ConfigurationError):
            ConnectionInfo.parse("Data Source=https://x;Fed")

    def test_for_cluster_borrows_credentials(self):
        """Test that another cluster keeps credentials but resets the catalog."""
        info = ConnectionInfo.parse(
            "Data Source=https://help.kusto.windows.net;Initial Catalog=Samples;"
            "AppClientId=app;AppKey=secret"
        )

        other = info.for_cluster("other.kusto.windows.net")

        assert other.data_source == "https://other.kusto.windows.net"
        assert other.initial_catalog == DEFAULT_CATALOG
        assert other.get("AppClientId") == "app"
        assert other.get("AppKey") == "secret"
        assert info.initial_catalog == "Samples"

    def test_to_connection_string_round_trip(self):
        """Test that the connection string is rebuilt in order."""
        info = ConnectionInfo.parse("Data Source=https://help.kusto.windows.net;Fed=true")

        assert info.to_connection_string() == "Data Source=https://help.kusto.windows.net;Fed=true"

    def test_safe_connection_string_masks_secrets(self):
        """Test that secrets are masked for logging."""
        info = ConnectionInfo.parse("Data Source=https://x.kusto.windows.net;AppKey=s3cr3t")

        assert "s3cr3t" not in info.safe_connection_string
        assert "https://x.kusto.windows.net" in info.safe_connection_string
