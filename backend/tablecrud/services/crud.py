"""Request orchestration for the generic table CRUD endpoints."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator, Mapping
from enum import Enum
from time import perf_counter
from typing import Any

from psycopg.errors import ConnectionTimeout
from sqlalchemy import text
from sqlalchemy.engine import Connection, CursorResult
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from tablecrud.catalog.schema_catalog import SchemaCatalog
from tablecrud.catalog.types import TableSchema, TypeFamily
from tablecrud.errors import DatabaseFailure, ValidationFailure
from tablecrud.sql.query_builder import BuiltStatement, QueryBuilder
from tablecrud.validation.pipeline import ValidationPipeline

logger = logging.getLogger(__name__)

_QUERY_CANCELED_SQLSTATE = "57014"
# Drivers for these dialects hand JSON columns back as text.
_TEXT_JSON_DIALECTS = frozenset({"sqlite"})


class Verb(str, Enum):
    CREATE = "Create"
    READ = "Read"
    UPDATE = "Update"
    DELETE = "Delete"

    @classmethod
    def from_http_method(cls, method: str) -> "Verb":
        verb = _HTTP_METHODS.get(method.upper())
        if verb is None:
            raise ValidationFailure.method_not_supported(method.upper())
        return verb


_HTTP_METHODS: dict[str, Verb] = {
    "POST": Verb.CREATE,
    "GET": Verb.READ,
    "PATCH": Verb.UPDATE,
    "DELETE": Verb.DELETE,
}


def parse_body(raw_body: str | None) -> dict[str, Any] | None:
    """Decode a raw request body into a mutation set; blank bodies become None."""

    if raw_body is None or not raw_body.strip():
        return None
    try:
        payload = json.loads(raw_body)
    except ValueError as exc:
        raise ValidationFailure.invalid_format("request_body", f"Invalid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise ValidationFailure.invalid_format("request_body", "Request body must be a JSON object")
    return payload


def is_timeout_error(exc: BaseException) -> bool:
    """Walk a driver error chain looking for a socket or statement timeout."""

    seen: set[int] = set()
    pending: list[BaseException | None] = [exc]
    while pending:
        current = pending.pop()
        if current is None or id(current) in seen:
            continue
        seen.add(id(current))
        if isinstance(current, (TimeoutError, PoolTimeoutError, ConnectionTimeout)):
            return True
        sqlstate = getattr(current, "sqlstate", None) or getattr(current, "pgcode", None)
        if sqlstate == _QUERY_CANCELED_SQLSTATE:
            return True
        orig = getattr(current, "orig", None)
        pending.extend(
            candidate
            for candidate in (orig, current.__cause__, current.__context__)
            if isinstance(candidate, BaseException)
        )
    return False


class CrudService:
    """Sequences schema lookup, validation, statement building and execution."""

    def __init__(
        self,
        catalog: SchemaCatalog,
        *,
        pipeline: ValidationPipeline | None = None,
    ) -> None:
        self.catalog = catalog
        self.pipeline = pipeline or ValidationPipeline()

    def handle(
        self,
        connection: Connection,
        verb: Verb,
        table: str,
        filters: Mapping[str, str] | None = None,
        raw_body: str | None = None,
    ) -> Any:
        """Run one CRUD request and return its verb-specific payload."""

        filters = dict(filters or {})
        started = perf_counter()
        logger.info("crud.request verb=%s table=%s filters=%d", verb.value, table, len(filters))

        schema = self.catalog.get_table_schema(connection, table)
        builder = QueryBuilder.for_dialect(connection.dialect, db_schema=self.catalog.db_schema)

        if verb is Verb.CREATE:
            body = parse_body(raw_body)
            self.pipeline.validate_create(schema, body)
            statement = builder.build_insert(schema, body)
            self._execute(connection, "INSERT", statement, commit=True)
            payload: Any = {"id": str(statement.generated_id), "status": "created", "table": table}
        elif verb is Verb.READ:
            self.pipeline.validate_read(schema, filters)
            statement = builder.build_select(schema, filters)
            result = self._execute(connection, "SELECT", statement)
            payload = list(
                _shape_rows(schema, result, decode_json=connection.dialect.name in _TEXT_JSON_DIALECTS)
            )
        elif verb is Verb.UPDATE:
            body = parse_body(raw_body)
            self.pipeline.validate_update(schema, body, filters)
            statement = builder.build_update(schema, body, filters)
            result = self._execute(connection, "UPDATE", statement, commit=True)
            payload = {"rowsAffected": result.rowcount, "table": table}
        else:
            self.pipeline.validate_delete(schema, filters)
            statement = builder.build_delete(schema, filters)
            result = self._execute(connection, "DELETE", statement, commit=True)
            payload = {"rowsAffected": result.rowcount, "table": table}

        logger.info(
            "crud.completed verb=%s table=%s elapsed_ms=%.2f",
            verb.value,
            table,
            (perf_counter() - started) * 1000.0,
        )
        return payload

    @staticmethod
    def _execute(
        connection: Connection,
        operation: str,
        statement: BuiltStatement,
        *,
        commit: bool = False,
    ) -> CursorResult:
        try:
            result = connection.execute(text(statement.sql), statement.parameters)
            if commit:
                connection.commit()
            return result
        except SQLAlchemyError as exc:
            connection.rollback()
            timeout = is_timeout_error(exc)
            message = str(exc.orig) if isinstance(exc, DBAPIError) else str(exc)
            raise DatabaseFailure.query_failed(operation, message, exc, timeout=timeout) from exc


def _shape_rows(
    schema: TableSchema, result: CursorResult, *, decode_json: bool
) -> Iterator[dict[str, Any]]:
    json_columns = (
        {name for name, column in schema.columns.items() if column.family is TypeFamily.JSON}
        if decode_json
        else set()
    )
    for row in result.mappings():
        shaped = dict(row)
        for name in json_columns.intersection(shaped):
            value = shaped[name]
            if isinstance(value, (str, bytes)):
                shaped[name] = json.loads(value)
        yield shaped
