"""Scalar types and type-name mapping.

Clusters describe column types with CLR type names (``System.Int32``,
``System.String``...), while schema text uses KQL type names (``int``,
``string``...). Both are mapped onto the fixed :class:`ScalarType` set.
"""

from enum import StrEnum

from kql_symbols.models.errors import ConfigurationError, SchemaFormatError


class ScalarType(StrEnum):
    """KQL scalar types known to the symbol model."""

    INT = "int"
    LONG = "long"
    REAL = "real"
    DECIMAL = "decimal"
    GUID = "guid"
    DATETIME = "datetime"
    TIMESPAN = "timespan"
    STRING = "string"
    BOOL = "bool"
    DYNAMIC = "dynamic"
    TYPE = "type"


_CLR_TYPES: dict[str, ScalarType] = {
    "System.Byte": ScalarType.INT,
    "Byte": ScalarType.INT,
    "byte": ScalarType.INT,
    "System.SByte": ScalarType.INT,
    "SByte": ScalarType.INT,
    "sbyte": ScalarType.INT,
    "System.Int16": ScalarType.INT,
    "Int16": ScalarType.INT,
    "short": ScalarType.INT,
    "System.UInt16": ScalarType.INT,
    "UInt16": ScalarType.INT,
    "ushort": ScalarType.INT,
    "System.Int32": ScalarType.INT,
    "Int32": ScalarType.INT,
    "int": ScalarType.INT,
    # unsigned 32-bit values do not fit into int
    "System.UInt32": ScalarType.LONG,
    "UInt32": ScalarType.LONG,
    "uint": ScalarType.LONG,
    "System.Int64": ScalarType.LONG,
    "Int64": ScalarType.LONG,
    "long": ScalarType.LONG,
    "System.Double": ScalarType.REAL,
    "Double": ScalarType.REAL,
    "double": ScalarType.REAL,
    "float": ScalarType.REAL,
    "System.single": ScalarType.REAL,
    "System.Single": ScalarType.REAL,
    "Single": ScalarType.REAL,
    # unsigned 64-bit values do not fit into long
    "System.UInt64": ScalarType.DECIMAL,
    "UInt64": ScalarType.DECIMAL,
    "ulong": ScalarType.DECIMAL,
    "System.Decimal": ScalarType.DECIMAL,
    "Decimal": ScalarType.DECIMAL,
    "decimal": ScalarType.DECIMAL,
    "System.Data.SqlTypes.SqlDecimal": ScalarType.DECIMAL,
    "SqlDecimal": ScalarType.DECIMAL,
    "System.Guid": ScalarType.GUID,
    "Guid": ScalarType.GUID,
    "System.DateTime": ScalarType.DATETIME,
    "DateTime": ScalarType.DATETIME,
    "System.TimeSpan": ScalarType.TIMESPAN,
    "TimeSpan": ScalarType.TIMESPAN,
    "System.String": ScalarType.STRING,
    "String": ScalarType.STRING,
    "string": ScalarType.STRING,
    "System.Boolean": ScalarType.BOOL,
    "Boolean": ScalarType.BOOL,
    "bool": ScalarType.BOOL,
    "System.Object": ScalarType.DYNAMIC,
    "Object": ScalarType.DYNAMIC,
    "object": ScalarType.DYNAMIC,
    "System.Type": ScalarType.TYPE,
    "Type": ScalarType.TYPE,
}

# KQL names and their documented aliases
_KQL_TYPES: dict[str, ScalarType] = {
    **{t.value: t for t in ScalarType},
    "int32": ScalarType.INT,
    "int64": ScalarType.LONG,
    "double": ScalarType.REAL,
    "float": ScalarType.REAL,
    "boolean": ScalarType.BOOL,
    "date": ScalarType.DATETIME,
    "time": ScalarType.TIMESPAN,
    "uniqueid": ScalarType.GUID,
    "uuid": ScalarType.GUID,
}


def scalar_type_from_clr(clr_type_name: str) -> ScalarType:
    """Map a CLR type name reported by a cluster to a scalar type.

    Args:
        clr_type_name: Type name such as ``System.Int64`` or ``Int64``.

    Returns:
        ScalarType: The mapped scalar type.

    Raises:
        ConfigurationError: If the type name has no mapping. This indicates a
            protocol or version mismatch with the cluster.

    Example:
        >>> scalar_type_from_clr("System.UInt32")
        <ScalarType.LONG: 'long'>
    """
    try:
        return _CLR_TYPES[clr_type_name]
    except KeyError:
        raise ConfigurationError(
            f"Unhandled clr type: {clr_type_name}",
            details={"clr_type": clr_type_name},
        ) from None


def scalar_type_from_name(type_name: str) -> ScalarType:
    """Map a KQL type name (or alias) used in schema text to a scalar type.

    Raises:
        SchemaFormatError: If the name is not a known scalar type.
    """
    scalar = _KQL_TYPES.get(type_name.strip().lower())
    if scalar is None:
        raise SchemaFormatError(
            f"Unknown scalar type: {type_name!r}",
            details={"type": type_name},
        )
    return scalar
