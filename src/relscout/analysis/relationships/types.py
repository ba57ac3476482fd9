"""Declared type families for foreign key candidate generation.

Two columns can only form a candidate when their declared types fall in the
same joinable family. Widening within a family (INT4 -> INT8,
VARCHAR(36) -> TEXT) is allowed; crossing families never is.
"""

from __future__ import annotations

from enum import Enum


class TypeFamily(str, Enum):
    """Compatibility family of a declared column type."""

    INTEGER = "integer"
    STRING = "string"
    UUID = "uuid"
    NUMERIC = "numeric"
    BOOLEAN = "boolean"
    TEMPORAL = "temporal"
    JSON = "json"


# Families whose columns may take part in a foreign key
JOINABLE_FAMILIES = frozenset(
    {TypeFamily.INTEGER, TypeFamily.STRING, TypeFamily.UUID, TypeFamily.NUMERIC}
)

TYPE_FAMILIES: dict[TypeFamily, set[str]] = {
    TypeFamily.INTEGER: {
        "TINYINT",
        "INT1",
        "SMALLINT",
        "INT2",
        "SHORT",
        "INTEGER",
        "INT",
        "INT4",
        "SIGNED",
        "MEDIUMINT",
        "BIGINT",
        "INT8",
        "LONG",
        "HUGEINT",
        "UTINYINT",
        "USMALLINT",
        "UINTEGER",
        "UBIGINT",
        "UHUGEINT",
        "SERIAL",
        "SERIAL2",
        "SERIAL4",
        "SERIAL8",
        "SMALLSERIAL",
        "BIGSERIAL",
    },
    TypeFamily.STRING: {
        "CHAR",
        "CHARACTER",
        "CHARACTER VARYING",
        "VARCHAR",
        "VARCHAR2",
        "NVARCHAR",
        "NCHAR",
        "BPCHAR",
        "TEXT",
        "NTEXT",
        "STRING",
        "CITEXT",
    },
    TypeFamily.UUID: {"UUID", "UNIQUEIDENTIFIER"},
    TypeFamily.NUMERIC: {
        "DECIMAL",
        "NUMERIC",
        "NUMBER",
        "FLOAT",
        "FLOAT4",
        "FLOAT8",
        "REAL",
        "DOUBLE",
        "DOUBLE PRECISION",
        "MONEY",
        "SMALLMONEY",
    },
    TypeFamily.BOOLEAN: {"BOOLEAN", "BOOL", "BIT", "LOGICAL"},
    TypeFamily.TEMPORAL: {
        "DATE",
        "TIME",
        "TIMETZ",
        "TIME WITH TIME ZONE",
        "TIME WITHOUT TIME ZONE",
        "TIMESTAMP",
        "TIMESTAMPTZ",
        "TIMESTAMP WITH TIME ZONE",
        "TIMESTAMP WITHOUT TIME ZONE",
        "TIMESTAMP_S",
        "TIMESTAMP_MS",
        "TIMESTAMP_NS",
        "DATETIME",
        "DATETIME2",
        "DATETIMEOFFSET",
        "SMALLDATETIME",
        "INTERVAL",
    },
    TypeFamily.JSON: {"JSON", "JSONB"},
}

_LOOKUP: dict[str, TypeFamily] = {
    name: family for family, names in TYPE_FAMILIES.items() for name in names
}


def normalize_type(data_type: str | None) -> str:
    """Uppercase, drop length/precision and unsigned modifiers.

    "character varying(255)" -> "CHARACTER VARYING", "int unsigned" -> "INT"
    """
    if not data_type:
        return ""
    normalized = data_type.upper().split("(")[0].strip()
    normalized = normalized.removesuffix(" UNSIGNED").strip()
    return " ".join(normalized.split())


def get_type_family(data_type: str | None) -> TypeFamily | None:
    """Get the family of a declared type, or None when the type is unknown."""
    normalized = normalize_type(data_type)
    if not normalized:
        return None

    family = _LOOKUP.get(normalized)
    if family is not None:
        return family

    # Vendor spellings not in the table ("timestamp(3) with local time zone", "datetime64")
    if "TIMESTAMP" in normalized or "DATETIME" in normalized:
        return TypeFamily.TEMPORAL
    return None


def is_excluded_source_type(data_type: str | None) -> bool:
    """Whether a declared type can never hold a foreign key (temporal, boolean, JSON)."""
    return get_type_family(data_type) in (TypeFamily.TEMPORAL, TypeFamily.BOOLEAN, TypeFamily.JSON)


def are_types_compatible(source_type: str | None, target_type: str | None) -> bool:
    """Check whether a source column may reference a target column.

    Compatible iff both types are known and in the same joinable family.
    Unknown types are never compatible.
    """
    source_family = get_type_family(source_type)
    if source_family is None or source_family not in JOINABLE_FAMILIES:
        return False
    return source_family == get_type_family(target_type)
