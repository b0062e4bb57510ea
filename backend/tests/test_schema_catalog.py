"""Integration tests for catalog introspection and the schema cache."""

from __future__ import annotations

import tempfile
import unittest
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from unittest.mock import patch

import sqlalchemy
from sqlalchemy import create_engine, text
from sqlalchemy.pool import StaticPool

from tablecrud.catalog.schema_catalog import SchemaCatalog
from tablecrud.catalog.types import ColumnMetadata, TypeFamily
from tablecrud.errors import DatabaseFailure, ErrorCode


class SchemaCatalogTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls) -> None:
        cls.engine = create_engine(
            "sqlite+pysqlite:///:memory:",
            future=True,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        with cls.engine.begin() as connection:
            connection.execute(
                text(
                    "CREATE TABLE users ("
                    " id CHAR(36) NOT NULL PRIMARY KEY,"
                    " name VARCHAR(50) NOT NULL,"
                    " age INTEGER,"
                    " profile JSON,"
                    " active BOOLEAN NOT NULL DEFAULT 1,"
                    " updated_at TIMESTAMP"
                    ")"
                )
            )
            connection.execute(text("CREATE TABLE audit_log (message TEXT NOT NULL, created DATETIME)"))

    @classmethod
    def tearDownClass(cls) -> None:
        cls.engine.dispose()

    def setUp(self) -> None:
        self.catalog = SchemaCatalog()
        self.connection = self.engine.connect()

    def tearDown(self) -> None:
        self.connection.close()

    def test_columns_are_introspected_with_types_and_nullability(self) -> None:
        columns = self.catalog.get_columns(self.connection, "users")

        self.assertEqual(list(columns), ["id", "name", "age", "profile", "active", "updated_at"])
        self.assertEqual(columns["id"].family, TypeFamily.TEXT)
        self.assertFalse(columns["name"].nullable)
        self.assertTrue(columns["age"].nullable)
        self.assertEqual(columns["age"].family, TypeFamily.INTEGER)
        self.assertEqual(columns["profile"].family, TypeFamily.JSON)
        self.assertEqual(columns["active"].family, TypeFamily.BOOLEAN)
        self.assertTrue(columns["active"].has_default)
        self.assertFalse(columns["name"].has_default)
        self.assertEqual(columns["updated_at"].type_name, "timestamp")

    def test_second_lookup_is_served_from_cache(self) -> None:
        with patch("tablecrud.catalog.schema_catalog.inspect", wraps=sqlalchemy.inspect) as inspect_spy:
            first = self.catalog.get_columns(self.connection, "users")
            second = self.catalog.get_columns(self.connection, "users")

        self.assertEqual(first, second)
        self.assertEqual(inspect_spy.call_count, 1)

    def test_invalidate_forces_fresh_introspection(self) -> None:
        with patch("tablecrud.catalog.schema_catalog.inspect", wraps=sqlalchemy.inspect) as inspect_spy:
            self.catalog.get_columns(self.connection, "users")
            self.catalog.invalidate("users")
            self.catalog.get_columns(self.connection, "users")
            self.catalog.invalidate_all()
            self.catalog.get_columns(self.connection, "users")

        self.assertEqual(inspect_spy.call_count, 3)

    def test_primary_key_lookup_caches_missing_key(self) -> None:
        self.assertEqual(self.catalog.get_primary_key(self.connection, "users"), "id")

        with patch("tablecrud.catalog.schema_catalog.inspect", wraps=sqlalchemy.inspect) as inspect_spy:
            self.assertIsNone(self.catalog.get_primary_key(self.connection, "audit_log"))
            self.assertIsNone(self.catalog.get_primary_key(self.connection, "audit_log"))

        self.assertEqual(inspect_spy.call_count, 1)

    def test_missing_table_is_table_not_found(self) -> None:
        with self.assertRaises(DatabaseFailure) as ctx:
            self.catalog.get_columns(self.connection, "ghosts")

        self.assertEqual(ctx.exception.error_code, ErrorCode.TABLE_NOT_FOUND)
        self.assertEqual(ctx.exception.http_status, 404)
        self.assertEqual(self.catalog.cached_tables(), [])

    def test_introspection_error_is_query_failed(self) -> None:
        broken = patch(
            "tablecrud.catalog.schema_catalog.inspect",
            side_effect=sqlalchemy.exc.OperationalError("PRAGMA", {}, Exception("disk I/O error")),
        )
        with broken, self.assertRaises(DatabaseFailure) as ctx:
            self.catalog.get_columns(self.connection, "users")

        self.assertEqual(ctx.exception.error_code, ErrorCode.QUERY_FAILED)
        self.assertFalse(ctx.exception.timeout)

    def test_table_schema_combines_key_and_timestamp(self) -> None:
        schema = self.catalog.get_table_schema(self.connection, "users")

        self.assertEqual(schema.primary_key, "id")
        self.assertEqual(schema.timestamp_column, "updated_at")
        self.assertTrue(schema.is_managed_column("id"))
        self.assertFalse(schema.is_managed_column("name"))
        self.assertEqual(self.catalog.cached_tables(), ["users"])

        keyless = self.catalog.get_table_schema(self.connection, "audit_log")
        self.assertIsNone(keyless.primary_key)
        self.assertEqual(keyless.timestamp_column, "created")

    def test_find_auto_timestamp_column_ignores_plain_dates(self) -> None:
        columns = {
            "born_on": ColumnMetadata(type_name="date", nullable=True),
            "note": ColumnMetadata(type_name="text", nullable=True),
        }
        self.assertIsNone(SchemaCatalog.find_auto_timestamp_column(columns))

        columns["touched"] = ColumnMetadata(type_name="timestamp with time zone", nullable=True)
        self.assertEqual(SchemaCatalog.find_auto_timestamp_column(columns), "touched")


class ConcurrentCatalogTests(unittest.TestCase):
    TABLES = ("accounts", "orders", "invoices", "shipments")

    @classmethod
    def setUpClass(cls) -> None:
        cls.workdir = tempfile.TemporaryDirectory()
        cls.engine = create_engine(
            f"sqlite+pysqlite:///{Path(cls.workdir.name) / 'catalog.db'}",
            future=True,
            connect_args={"check_same_thread": False},
            pool_size=8,
        )
        with cls.engine.begin() as connection:
            for table in cls.TABLES:
                connection.execute(
                    text(
                        f"CREATE TABLE {table} ("
                        " id CHAR(36) NOT NULL PRIMARY KEY,"
                        " label VARCHAR(40) NOT NULL,"
                        " amount NUMERIC(10, 2),"
                        " changed_at TIMESTAMP"
                        ")"
                    )
                )

    @classmethod
    def tearDownClass(cls) -> None:
        cls.engine.dispose()
        cls.workdir.cleanup()

    def _lookup_all(self, catalog: SchemaCatalog) -> dict[str, object]:
        with self.engine.connect() as connection:
            return {table: catalog.get_table_schema(connection, table) for table in self.TABLES}

    def test_parallel_first_population_of_distinct_tables(self) -> None:
        catalog = SchemaCatalog()

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(lambda _: self._lookup_all(catalog), range(16)))

        self.assertEqual(catalog.cached_tables(), sorted(self.TABLES))
        with self.engine.connect() as connection:
            for table in self.TABLES:
                cached = catalog.get_columns(connection, table)
                for result in results:
                    schema = result[table]
                    self.assertIs(schema.columns, cached)
                    self.assertEqual(schema.primary_key, "id")
                    self.assertEqual(schema.timestamp_column, "changed_at")

    def test_invalidation_is_seen_by_later_lookups(self) -> None:
        catalog = SchemaCatalog()
        self._lookup_all(catalog)

        catalog.invalidate("orders")
        with patch("tablecrud.catalog.schema_catalog.inspect", wraps=sqlalchemy.inspect) as inspect_spy:
            with ThreadPoolExecutor(max_workers=4) as pool:
                list(pool.map(lambda _: self._lookup_all(catalog), range(4)))

        # columns and primary key for "orders" only; racing threads may each introspect once
        self.assertGreaterEqual(inspect_spy.call_count, 2)
        self.assertLessEqual(inspect_spy.call_count, 8)
        self.assertEqual(catalog.cached_tables(), sorted(self.TABLES))


if __name__ == "__main__":
    unittest.main()
