"""Builds parameterized INSERT/SELECT/UPDATE/DELETE statements from table metadata."""

from __future__ import annotations

import json
import uuid
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.engine import Dialect

from tablecrud.catalog.types import TableSchema, TypeFamily
from tablecrud.errors import DatabaseFailure, ValidationFailure
from tablecrud.validation.type_validator import parse_uuid_literal

CURRENT_TIME_SQL = "CURRENT_TIMESTAMP"

_JSON_CASTS: dict[str, str] = {
    "postgresql": "CAST({placeholder} AS JSONB)",
    "sqlite": "json({placeholder})",
}
_DEFAULT_JSON_CAST = _JSON_CASTS["postgresql"]


@dataclass(frozen=True, slots=True)
class BuiltStatement:
    """SQL text with named placeholders plus its bound values, in order."""

    sql: str
    parameters: dict[str, Any] = field(default_factory=dict)
    generated_id: uuid.UUID | None = None

    @property
    def ordered_parameters(self) -> list[Any]:
        return list(self.parameters.values())


def _double_quote(identifier: str) -> str:
    return '"' + identifier.replace('"', '""') + '"'


class QueryBuilder:
    """Turns validated mutation and filter sets into parameterized SQL.

    Every identifier written into SQL text is a table or column name taken
    from the `TableSchema`; client-supplied names that are not in the schema
    abort the build instead of being dropped.
    """

    def __init__(
        self,
        *,
        quote_identifier: Callable[[str], str] = _double_quote,
        json_cast: str = _DEFAULT_JSON_CAST,
        db_schema: str | None = None,
        native_uuid: bool = True,
    ) -> None:
        self._quote_identifier = quote_identifier
        self._json_cast = json_cast
        self._db_schema = db_schema
        self._native_uuid = native_uuid

    @classmethod
    def for_dialect(cls, dialect: Dialect, *, db_schema: str | None = None) -> "QueryBuilder":
        return cls(
            quote_identifier=dialect.identifier_preparer.quote_identifier,
            json_cast=_JSON_CASTS.get(dialect.name, _DEFAULT_JSON_CAST),
            db_schema=db_schema,
            native_uuid=dialect.supports_native_uuid,
        )

    def build_insert(self, schema: TableSchema, mutation: Mapping[str, Any]) -> BuiltStatement:
        if schema.primary_key is None:
            raise DatabaseFailure.no_primary_key(schema.name)

        generated_id = uuid.uuid4()
        columns = [self._identifier(schema.primary_key)]
        values = [":pk"]
        parameters: dict[str, Any] = {"pk": self._uuid_parameter(generated_id)}

        for column, placeholder, bound in self._mutation_bindings(schema, mutation):
            columns.append(self._identifier(column))
            values.append(placeholder)
            parameters.update(bound)

        if schema.timestamp_column is not None:
            columns.append(self._identifier(schema.timestamp_column))
            values.append(CURRENT_TIME_SQL)

        sql = f"INSERT INTO {self._table(schema)} ({', '.join(columns)}) VALUES ({', '.join(values)})"
        return BuiltStatement(sql=sql, parameters=parameters, generated_id=generated_id)

    def build_select(self, schema: TableSchema, filters: Mapping[str, str]) -> BuiltStatement:
        sql = f"SELECT * FROM {self._table(schema)}"
        conditions, parameters = self._where(schema, filters)
        if conditions:
            sql += " WHERE " + " AND ".join(conditions)
        return BuiltStatement(sql=sql, parameters=parameters)

    def build_update(
        self,
        schema: TableSchema,
        mutation: Mapping[str, Any],
        filters: Mapping[str, str],
    ) -> BuiltStatement:
        assignments: list[str] = []
        parameters: dict[str, Any] = {}
        for column, placeholder, bound in self._mutation_bindings(schema, mutation):
            assignments.append(f"{self._identifier(column)} = {placeholder}")
            parameters.update(bound)
        if not assignments:
            raise ValidationFailure.no_valid_columns()
        if schema.timestamp_column is not None:
            assignments.append(f"{self._identifier(schema.timestamp_column)} = {CURRENT_TIME_SQL}")

        conditions, filter_parameters = self._where(schema, filters)
        if not conditions:
            raise ValidationFailure.no_valid_filters()
        parameters.update(filter_parameters)

        sql = (
            f"UPDATE {self._table(schema)} SET {', '.join(assignments)}"
            f" WHERE {' AND '.join(conditions)}"
        )
        return BuiltStatement(sql=sql, parameters=parameters)

    def build_delete(self, schema: TableSchema, filters: Mapping[str, str]) -> BuiltStatement:
        conditions, parameters = self._where(schema, filters)
        if not conditions:
            raise ValidationFailure.no_valid_filters()
        sql = f"DELETE FROM {self._table(schema)} WHERE {' AND '.join(conditions)}"
        return BuiltStatement(sql=sql, parameters=parameters)

    def _mutation_bindings(self, schema: TableSchema, mutation: Mapping[str, Any]):
        """Yield (column, placeholder, parameters) for each writable mutation column."""

        index = 0
        for column, value in mutation.items():
            if not schema.has_column(column):
                raise ValidationFailure.unknown_column(column, schema.name)
            if schema.is_managed_column(column):
                continue
            name = f"v{index}"
            index += 1
            placeholder = f":{name}"
            if schema.column(column).family is TypeFamily.JSON:
                placeholder = self._json_cast.format(placeholder=placeholder)
            yield column, placeholder, {name: bind_mutation_value(value)}

    def _where(self, schema: TableSchema, filters: Mapping[str, str]) -> tuple[list[str], dict[str, Any]]:
        conditions: list[str] = []
        parameters: dict[str, Any] = {}
        for index, (column, raw_value) in enumerate(filters.items()):
            if not schema.has_column(column):
                raise ValidationFailure.unknown_column(column, schema.name)
            name = f"f{index}"
            conditions.append(f"{self._identifier(column)} = :{name}")
            parameters[name] = self._uuid_parameter(bind_filter_value(raw_value))
        return conditions, parameters

    def _identifier(self, name: str) -> str:
        # Colons are escaped so sqlalchemy.text() does not read them as bind markers.
        return self._quote_identifier(name).replace(":", "\\:")

    def _uuid_parameter(self, value: Any) -> Any:
        # Drivers without a native UUID type get the canonical 36-character text.
        if isinstance(value, uuid.UUID) and not self._native_uuid:
            return str(value)
        return value

    def _table(self, schema: TableSchema) -> str:
        table = self._identifier(schema.name)
        if self._db_schema:
            return f"{self._identifier(self._db_schema)}.{table}"
        return table


def bind_mutation_value(value: Any) -> Any:
    """Convert one request-body value into the driver parameter to bind."""

    if value is None:
        return None
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    if isinstance(value, str):
        return value
    return json.dumps(value)


def bind_filter_value(raw_value: str) -> Any:
    """Bind UUID literals as UUIDs so typed key columns compare correctly."""

    try:
        return parse_uuid_literal(raw_value)
    except ValueError:
        return raw_value
