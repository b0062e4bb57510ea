"""Runtime schema discovery with a process-wide cache."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from threading import Lock
from time import perf_counter
from typing import Any

from sqlalchemy import inspect
from sqlalchemy.engine import Connection
from sqlalchemy.exc import CompileError, NoSuchTableError, SQLAlchemyError

from tablecrud.catalog.types import ColumnMetadata, TableSchema
from tablecrud.errors import DatabaseFailure

logger = logging.getLogger(__name__)

_NO_PRIMARY_KEY = object()


class SchemaCatalog:
    """Discovers table metadata through catalog introspection and caches it.

    One instance is created per process and handed to the request
    orchestrator. Lookups and first population of distinct tables may happen
    concurrently; two requests racing on the same uncached table both
    introspect and store identical results.
    """

    def __init__(self, *, db_schema: str | None = None) -> None:
        self.db_schema = db_schema
        self._columns: dict[str, dict[str, ColumnMetadata]] = {}
        self._primary_keys: dict[str, object] = {}
        self._lock = Lock()

    def get_columns(self, connection: Connection, table: str) -> dict[str, ColumnMetadata]:
        """Return column metadata for `table`, introspecting on a cache miss."""

        with self._lock:
            cached = self._columns.get(table)
        if cached is not None:
            return cached

        started = perf_counter()
        try:
            reflected = inspect(connection).get_columns(table, schema=self.db_schema)
        except NoSuchTableError as exc:
            raise DatabaseFailure.table_not_found(table) from exc
        except SQLAlchemyError as exc:
            raise DatabaseFailure.query_failed("Column introspection", str(exc), exc) from exc
        if not reflected:
            raise DatabaseFailure.table_not_found(table)

        columns = {
            entry["name"]: ColumnMetadata(
                type_name=_render_type_name(connection, entry["type"]),
                nullable=bool(entry.get("nullable", True)),
                has_default=_has_default(entry),
            )
            for entry in reflected
        }
        with self._lock:
            columns = self._columns.setdefault(table, columns)
        logger.info(
            "catalog.columns_cached table=%s columns=%d elapsed_ms=%.2f",
            table,
            len(columns),
            (perf_counter() - started) * 1000.0,
        )
        return columns

    def get_primary_key(self, connection: Connection, table: str) -> str | None:
        """Return the (first) primary key column, caching a missing key too."""

        with self._lock:
            cached = self._primary_keys.get(table)
        if cached is not None:
            return None if cached is _NO_PRIMARY_KEY else str(cached)

        try:
            constraint = inspect(connection).get_pk_constraint(table, schema=self.db_schema)
        except NoSuchTableError as exc:
            raise DatabaseFailure.table_not_found(table) from exc
        except SQLAlchemyError as exc:
            raise DatabaseFailure.query_failed("Primary key introspection", str(exc), exc) from exc

        constrained = (constraint or {}).get("constrained_columns") or []
        primary_key = constrained[0] if constrained else None
        with self._lock:
            self._primary_keys.setdefault(table, primary_key if primary_key is not None else _NO_PRIMARY_KEY)
        return primary_key

    def get_table_schema(self, connection: Connection, table: str) -> TableSchema:
        """Columns, primary key and auto-timestamp column in one read-only view."""

        columns = self.get_columns(connection, table)
        primary_key = self.get_primary_key(connection, table)
        return TableSchema(
            name=table,
            columns=columns,
            primary_key=primary_key,
            timestamp_column=self.find_auto_timestamp_column(columns),
        )

    @staticmethod
    def find_auto_timestamp_column(columns: Mapping[str, ColumnMetadata]) -> str | None:
        # Which column wins when several are timestamp-typed is not part of the contract.
        return next((name for name, column in columns.items() if column.is_timestamp_like), None)

    def invalidate(self, table: str) -> None:
        with self._lock:
            self._columns.pop(table, None)
            self._primary_keys.pop(table, None)
        logger.info("catalog.invalidated table=%s", table)

    def invalidate_all(self) -> None:
        with self._lock:
            self._columns.clear()
            self._primary_keys.clear()
        logger.info("catalog.invalidated table=*")

    def cached_tables(self) -> list[str]:
        with self._lock:
            return sorted(self._columns)


def _render_type_name(connection: Connection, column_type: Any) -> str:
    try:
        rendered = column_type.compile(dialect=connection.dialect)
    except CompileError:
        rendered = type(column_type).__name__
    return str(rendered).lower()


def _has_default(entry: Mapping[str, Any]) -> bool:
    if entry.get("default") is not None:
        return True
    if entry.get("identity") or entry.get("computed"):
        return True
    return entry.get("autoincrement") is True
