"""Checks raw JSON values against a column's declared type family."""

from __future__ import annotations

import json
import re
import uuid
from collections.abc import Callable
from datetime import date, datetime, time
from typing import Any

from tablecrud.catalog.types import ColumnMetadata, TypeFamily
from tablecrud.errors import ValidationFailure

_INTEGER_TEXT = re.compile(r"^[+-]?\d+$")
_DECIMAL_TEXT = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?$")
_DATE_TEXT = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_BOOLEAN_TEXT = frozenset({"true", "false", "1", "0"})
_UUID_TEXT = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
)


class _Incompatible(Exception):
    pass


def parse_uuid_literal(value: str) -> uuid.UUID:
    """Parse a canonical 8-4-4-4-12 UUID literal, raising ValueError otherwise."""

    if not isinstance(value, str) or not _UUID_TEXT.match(value):
        raise ValueError(f"not a canonical UUID literal: {value!r}")
    return uuid.UUID(value)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _check_integer(value: Any, column: ColumnMetadata) -> None:
    if _is_number(value):
        if isinstance(value, float) and not value.is_integer():
            raise _Incompatible
        return
    if isinstance(value, str) and _INTEGER_TEXT.match(value):
        return
    raise _Incompatible


def _check_float(value: Any, column: ColumnMetadata) -> None:
    if _is_number(value):
        return
    if isinstance(value, str) and _DECIMAL_TEXT.match(value):
        return
    raise _Incompatible


def _check_text(value: Any, column: ColumnMetadata) -> None:
    if not isinstance(value, (str, int, float, bool)):
        raise _Incompatible


def _check_boolean(value: Any, column: ColumnMetadata) -> None:
    if isinstance(value, bool):
        return
    if isinstance(value, str) and value.lower() in _BOOLEAN_TEXT:
        return
    if _is_number(value) and value in (0, 1):
        return
    raise _Incompatible


def _check_datetime(value: Any, column: ColumnMetadata) -> None:
    if _is_number(value):
        return
    if not isinstance(value, str):
        raise _Incompatible
    type_name = column.normalized_type_name
    if "date" in type_name and "time" not in type_name:
        if not _DATE_TEXT.match(value):
            raise _Incompatible
        date.fromisoformat(value)
    elif type_name.startswith("time") and "stamp" not in type_name:
        time.fromisoformat(value)
    else:
        datetime.fromisoformat(value)


def _check_uuid(value: Any, column: ColumnMetadata) -> None:
    parse_uuid_literal(value)


def _check_json(value: Any, column: ColumnMetadata) -> None:
    # Structured values already came out of a JSON document; text must itself be JSON.
    if isinstance(value, str):
        json.loads(value)
    elif not isinstance(value, (dict, list, int, float, bool)):
        raise _Incompatible


_CHECKS: dict[TypeFamily, Callable[[Any, ColumnMetadata], None]] = {
    TypeFamily.INTEGER: _check_integer,
    TypeFamily.FLOAT: _check_float,
    TypeFamily.TEXT: _check_text,
    TypeFamily.BOOLEAN: _check_boolean,
    TypeFamily.DATETIME: _check_datetime,
    TypeFamily.UUID: _check_uuid,
    TypeFamily.JSON: _check_json,
}


def validate_value(column_name: str, column: ColumnMetadata, value: Any) -> None:
    """Raise `InvalidFormat` when `value` cannot be stored in `column`.

    Null values always pass; nullability is enforced by the validation
    pipeline. Columns of an unknown type family are not checked.
    """

    if value is None:
        return
    check = _CHECKS.get(column.family)
    if check is None:
        return
    try:
        check(value, column)
    except (_Incompatible, ValueError, TypeError) as exc:
        raise ValidationFailure.invalid_format(
            column_name, f"{column.family.value} type incompatible with value"
        ) from exc
