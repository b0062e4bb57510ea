"""Per-verb request validation against a discovered table schema."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from functools import partial
from typing import Any

from tablecrud.catalog.types import TableSchema
from tablecrud.errors import ValidationFailure
from tablecrud.validation.type_validator import validate_value

Step = Callable[[], None]


class ValidationPipeline:
    """Runs the ordered checks for one verb and stops at the first failure.

    No check touches the database; everything is decided from the
    already-fetched `TableSchema`.
    """

    def validate_create(self, schema: TableSchema, body: Mapping[str, Any] | None) -> None:
        self._run(
            partial(_require_body, body),
            partial(_require_known_columns, schema, body),
            partial(_require_fields, schema, body),
            partial(_reject_nulls_for_required, schema, body),
            partial(_validate_types, schema, body),
        )

    def validate_read(self, schema: TableSchema, filters: Mapping[str, str]) -> None:
        self._run(partial(_require_known_columns, schema, filters))

    def validate_update(
        self,
        schema: TableSchema,
        body: Mapping[str, Any] | None,
        filters: Mapping[str, str],
    ) -> None:
        self._run(
            partial(_require_body, body),
            partial(_require_filters, filters),
            partial(_require_known_columns, schema, body),
            partial(_require_known_columns, schema, filters),
            partial(_reject_nulls_for_required, schema, body),
            partial(_validate_types, schema, body),
        )

    def validate_delete(self, schema: TableSchema, filters: Mapping[str, str]) -> None:
        self._run(
            partial(_require_filters, filters),
            partial(_require_known_columns, schema, filters),
        )

    @staticmethod
    def _run(*steps: Step) -> None:
        for step in steps:
            step()


def _require_body(body: Mapping[str, Any] | None) -> None:
    if body is None:
        raise ValidationFailure.missing_body()


def _require_filters(filters: Mapping[str, str]) -> None:
    if not filters:
        raise ValidationFailure.missing_filter()


def _require_known_columns(schema: TableSchema, names: Iterable[str] | None) -> None:
    for name in names or ():
        if not schema.has_column(name):
            raise ValidationFailure.unknown_column(name, schema.name)


def _required_columns(schema: TableSchema) -> list[str]:
    return [
        name
        for name, column in schema.columns.items()
        if not column.nullable and not column.has_default and not schema.is_managed_column(name)
    ]


def _require_fields(schema: TableSchema, body: Mapping[str, Any]) -> None:
    missing = [name for name in _required_columns(schema) if name not in body]
    if missing:
        raise ValidationFailure.missing_required_field(missing)


def _reject_nulls_for_required(schema: TableSchema, body: Mapping[str, Any]) -> None:
    for name, value in body.items():
        if value is not None or schema.is_managed_column(name):
            continue
        if not schema.column(name).nullable:
            raise ValidationFailure.not_null(name)


def _validate_types(schema: TableSchema, body: Mapping[str, Any]) -> None:
    for name, value in body.items():
        if schema.is_managed_column(name):
            continue
        validate_value(name, schema.column(name), value)
