"""Cluster connection strings and host names.

Connection strings are ``key=value`` pairs separated by semicolons, for
example ``Data Source=https://help.kusto.windows.net;Fed=true``. A leading
segment without ``=`` is taken as the data source, so
``https://help.kusto.windows.net;Fed=true`` is accepted too.
"""

from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, Field

from kql_symbols.config.settings import DEFAULT_DOMAIN
from kql_symbols.models.errors import ConfigurationError
from kql_symbols.observability.logging import SensitiveDataFilter

DATA_SOURCE = "Data Source"
INITIAL_CATALOG = "Initial Catalog"
DEFAULT_CATALOG = "NetDefaultDB"

_KEYWORD_ALIASES = {
    "data source": DATA_SOURCE,
    "datasource": DATA_SOURCE,
    "addr": DATA_SOURCE,
    "address": DATA_SOURCE,
    "network address": DATA_SOURCE,
    "server": DATA_SOURCE,
    "initial catalog": INITIAL_CATALOG,
    "database": INITIAL_CATALOG,
}


def get_host_name(cluster_name_or_uri: str) -> str:
    """Extract the lower-cased host name from a cluster name or URI.

    Example:
        >>> get_host_name("https://Help.Kusto.Windows.Net:443/Samples")
        'help.kusto.windows.net'
        >>> get_host_name("help")
        'help'
    """
    text = cluster_name_or_uri.strip()
    if "://" in text:
        return (urlsplit(text).hostname or "").lower()
    host = text.split("/", 1)[0]
    host = host.rsplit("@", 1)[-1]
    host = host.split(":", 1)[0]
    return host.lower()


def get_full_host_name(cluster_name_or_uri: str, default_domain: str = DEFAULT_DOMAIN) -> str:
    """Expand a short cluster name into a fully qualified host name.

    Example:
        >>> get_full_host_name("help", ".kusto.windows.net")
        'help.kusto.windows.net'
        >>> get_full_host_name("https://help.kusto.windows.net")
        'help.kusto.windows.net'
    """
    host = get_host_name(cluster_name_or_uri)
    if host and "." not in host:
        host = host + default_domain.lower()
    return host


class ConnectionInfo(BaseModel):
    """Parsed cluster connection string.

    Keys keep their original spelling and order, except that data source
    and initial catalog aliases are normalized.
    """

    model_config = ConfigDict(frozen=True)

    properties: tuple[tuple[str, str], ...] = Field(
        default=(), description="Ordered connection string key/value pairs"
    )

    @classmethod
    def parse(cls, connection_string: str) -> "ConnectionInfo":
        """Parse a connection string.

        Raises:
            ConfigurationError: If the connection string has no data source.
        """
        properties: list[tuple[str, str]] = []
        for index, segment in enumerate(s.strip() for s in connection_string.split(";")):
            if not segment:
                continue
            if "=" not in segment:
                if index == 0:
                    properties.append((DATA_SOURCE, segment))
                    continue
                raise ConfigurationError(
                    "Invalid connection string segment",
                    details={"segment": SensitiveDataFilter.mask_connection_secrets(segment)},
                )
            key, value = segment.split("=", 1)
            key = _KEYWORD_ALIASES.get(key.strip().lower(), key.strip())
            properties.append((key, value.strip()))

        info = cls(properties=tuple(properties))
        if not info.data_source:
            raise ConfigurationError("Connection string does not specify a data source")
        return info

    def get(self, key: str) -> str | None:
        lowered = key.lower()
        for name, value in self.properties:
            if name.lower() == lowered:
                return value
        return None

    def with_property(self, key: str, value: str) -> "ConnectionInfo":
        """Return a copy with ``key`` set, replacing an existing value in place."""
        lowered = key.lower()
        properties = list(self.properties)
        for index, (name, _) in enumerate(properties):
            if name.lower() == lowered:
                properties[index] = (name, value)
                break
        else:
            properties.append((key, value))
        return self.model_copy(update={"properties": tuple(properties)})

    @property
    def data_source(self) -> str:
        return self.get(DATA_SOURCE) or ""

    @property
    def initial_catalog(self) -> str | None:
        return self.get(INITIAL_CATALOG) or None

    @property
    def scheme(self) -> str:
        if "://" in self.data_source:
            return self.data_source.split("://", 1)[0]
        return "https"

    @property
    def host(self) -> str:
        return get_host_name(self.data_source)

    def for_cluster(self, cluster_host: str) -> "ConnectionInfo":
        """Connection for another cluster that borrows this one's credentials.

        The data source is replaced (keeping this connection's scheme) and the
        initial catalog is reset to the cluster default database.
        """
        data_source = cluster_host
        if "://" not in data_source:
            data_source = f"{self.scheme}://{data_source}"
        return self.with_property(DATA_SOURCE, data_source).with_property(
            INITIAL_CATALOG, DEFAULT_CATALOG
        )

    def to_connection_string(self) -> str:
        return ";".join(f"{key}={value}" for key, value in self.properties)

    @property
    def safe_connection_string(self) -> str:
        """Connection string with secrets masked, for logging."""
        return SensitiveDataFilter.mask_connection_secrets(self.to_connection_string())
