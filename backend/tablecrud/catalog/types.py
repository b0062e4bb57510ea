"""Typed table metadata learned from catalog introspection."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum


class TypeFamily(str, Enum):
    """Coarse grouping of column type names sharing one validation rule."""

    INTEGER = "integer"
    FLOAT = "float"
    TEXT = "text"
    BOOLEAN = "boolean"
    DATETIME = "datetime"
    UUID = "uuid"
    JSON = "json"
    UNKNOWN = "unknown"


_FAMILY_TYPE_NAMES: dict[TypeFamily, frozenset[str]] = {
    TypeFamily.INTEGER: frozenset(
        {
            "int",
            "integer",
            "smallint",
            "bigint",
            "tinyint",
            "mediumint",
            "serial",
            "smallserial",
            "bigserial",
            "int2",
            "int4",
            "int8",
        }
    ),
    TypeFamily.FLOAT: frozenset(
        {"float", "float4", "float8", "double", "double precision", "real", "numeric", "decimal"}
    ),
    TypeFamily.TEXT: frozenset(
        {
            "varchar",
            "char",
            "text",
            "character",
            "character varying",
            "bpchar",
            "string",
            "nvarchar",
            "nchar",
            "clob",
            "citext",
        }
    ),
    TypeFamily.BOOLEAN: frozenset({"boolean", "bool"}),
    TypeFamily.DATETIME: frozenset(
        {
            "timestamp",
            "timestamptz",
            "datetime",
            "date",
            "time",
            "timetz",
            "timestamp without time zone",
            "timestamp with time zone",
            "time without time zone",
            "time with time zone",
        }
    ),
    TypeFamily.UUID: frozenset({"uuid"}),
    TypeFamily.JSON: frozenset({"json", "jsonb"}),
}

AUTO_TIMESTAMP_TYPE_NAMES: frozenset[str] = frozenset(
    {
        "timestamp",
        "timestamptz",
        "datetime",
        "timestamp without time zone",
        "timestamp with time zone",
    }
)

_TYPE_ARGUMENTS = re.compile(r"\([^)]*\)")


def normalize_type_name(raw_type: str | None) -> str:
    """Lower-case a reported type name and drop length/precision arguments."""

    if not raw_type:
        return ""
    without_args = _TYPE_ARGUMENTS.sub("", raw_type.lower())
    return " ".join(without_args.split())


def classify_type_name(raw_type: str | None) -> TypeFamily:
    normalized = normalize_type_name(raw_type)
    for family, names in _FAMILY_TYPE_NAMES.items():
        if normalized in names:
            return family
    return TypeFamily.UNKNOWN


@dataclass(frozen=True, slots=True)
class ColumnMetadata:
    """One column as reported by the catalog."""

    type_name: str
    nullable: bool
    has_default: bool = False
    family: TypeFamily = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "family", classify_type_name(self.type_name))

    @property
    def normalized_type_name(self) -> str:
        return normalize_type_name(self.type_name)

    @property
    def is_timestamp_like(self) -> bool:
        return self.normalized_type_name in AUTO_TIMESTAMP_TYPE_NAMES


@dataclass(frozen=True, slots=True)
class TableSchema:
    """Discovered shape of a table, shared read-only across requests."""

    name: str
    columns: dict[str, ColumnMetadata]
    primary_key: str | None = None
    timestamp_column: str | None = None

    def has_column(self, column: str) -> bool:
        return column in self.columns

    def column(self, column: str) -> ColumnMetadata:
        return self.columns[column]

    def is_managed_column(self, column: str) -> bool:
        """Primary key and auto-timestamp columns are never client-writable."""

        return column == self.primary_key or column == self.timestamp_column
