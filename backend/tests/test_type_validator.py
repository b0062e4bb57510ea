"""Unit tests for type-family classification and value validation."""

from __future__ import annotations

import unittest

from tablecrud.catalog.types import ColumnMetadata, TypeFamily, classify_type_name
from tablecrud.errors import ErrorCode, ValidationFailure
from tablecrud.validation.type_validator import parse_uuid_literal, validate_value


def _column(type_name: str) -> ColumnMetadata:
    return ColumnMetadata(type_name=type_name, nullable=True)


class TypeClassificationTests(unittest.TestCase):
    def test_reported_type_names_map_to_families(self) -> None:
        cases = {
            "INTEGER": TypeFamily.INTEGER,
            "int4": TypeFamily.INTEGER,
            "bigserial": TypeFamily.INTEGER,
            "DOUBLE PRECISION": TypeFamily.FLOAT,
            "numeric(10, 2)": TypeFamily.FLOAT,
            "VARCHAR(255)": TypeFamily.TEXT,
            "character varying": TypeFamily.TEXT,
            "bool": TypeFamily.BOOLEAN,
            "TIMESTAMP WITHOUT TIME ZONE": TypeFamily.DATETIME,
            "timestamp(6) with time zone": TypeFamily.DATETIME,
            "date": TypeFamily.DATETIME,
            "UUID": TypeFamily.UUID,
            "jsonb": TypeFamily.JSON,
            "tsvector": TypeFamily.UNKNOWN,
            "": TypeFamily.UNKNOWN,
        }
        for type_name, family in cases.items():
            with self.subTest(type_name=type_name):
                self.assertEqual(classify_type_name(type_name), family)

    def test_column_metadata_classifies_once(self) -> None:
        column = ColumnMetadata(type_name="timestamptz", nullable=False)

        self.assertEqual(column.family, TypeFamily.DATETIME)
        self.assertTrue(column.is_timestamp_like)
        self.assertFalse(ColumnMetadata(type_name="date", nullable=True).is_timestamp_like)


class ValidateValueTests(unittest.TestCase):
    def assertRejected(self, type_name: str, value: object) -> None:
        with self.assertRaises(ValidationFailure) as ctx:
            validate_value("col", _column(type_name), value)
        self.assertEqual(ctx.exception.error_code, ErrorCode.INVALID_FORMAT)
        self.assertEqual(ctx.exception.error_name, "col")

    def assertAccepted(self, type_name: str, value: object) -> None:
        validate_value("col", _column(type_name), value)

    def test_null_always_passes(self) -> None:
        for type_name in ("integer", "uuid", "jsonb", "boolean", "date"):
            self.assertAccepted(type_name, None)

    def test_integer_family(self) -> None:
        self.assertAccepted("integer", 5)
        self.assertAccepted("integer", 5.0)
        self.assertAccepted("integer", "-42")
        self.assertRejected("integer", 5.5)
        self.assertRejected("integer", "5.5")
        self.assertRejected("integer", "five")
        self.assertRejected("integer", True)
        self.assertRejected("integer", [1])

    def test_float_family(self) -> None:
        self.assertAccepted("double precision", 1)
        self.assertAccepted("numeric", 2.75)
        self.assertAccepted("real", "3.14")
        self.assertAccepted("float8", "1e-3")
        self.assertRejected("float8", "NaN")
        self.assertRejected("numeric", "abc")
        self.assertRejected("numeric", {"a": 1})

    def test_text_family_accepts_scalars(self) -> None:
        for value in ("hello", 12, 1.5, False):
            self.assertAccepted("varchar", value)
        self.assertRejected("text", {"nested": True})
        self.assertRejected("text", ["a"])

    def test_boolean_family(self) -> None:
        for value in (True, False, "TRUE", "false", "1", "0", 1, 0):
            self.assertAccepted("boolean", value)
        for value in ("yes", 2, "", 0.5):
            self.assertRejected("boolean", value)

    def test_date_and_timestamp_families(self) -> None:
        self.assertAccepted("date", "2024-02-29")
        self.assertRejected("date", "2023-02-29")
        self.assertRejected("date", "2024-02-29T10:00:00")
        self.assertAccepted("timestamp", "2024-02-29T10:15:00")
        self.assertAccepted("timestamp without time zone", "2024-02-29 10:15:00")
        self.assertAccepted("timestamptz", 1709201700000)
        self.assertRejected("timestamp", "yesterday")
        self.assertRejected("timestamp", True)
        self.assertAccepted("time", "10:15:30")
        self.assertRejected("time", "25:00")

    def test_uuid_family(self) -> None:
        self.assertAccepted("uuid", "3f2b8c1e-6a4d-4f7e-9b1a-2c3d4e5f6a7b")
        self.assertRejected("uuid", "3f2b8c1e6a4d4f7e9b1a2c3d4e5f6a7b")
        self.assertRejected("uuid", "not-a-uuid")
        self.assertRejected("uuid", 123)

    def test_json_family(self) -> None:
        self.assertAccepted("jsonb", {"a": 1, "b": [1, 2, 3]})
        self.assertAccepted("json", [1, "two"])
        self.assertAccepted("json", 7)
        self.assertAccepted("json", '{"a": 1}')
        self.assertRejected("json", "{not json")

    def test_unknown_family_is_not_checked(self) -> None:
        self.assertAccepted("tsvector", {"anything": ["goes"]})

    def test_failure_message_names_the_family(self) -> None:
        with self.assertRaises(ValidationFailure) as ctx:
            validate_value("age", _column("integer"), "old")

        self.assertEqual(ctx.exception.error_detail, "integer type incompatible with value")
        self.assertIsInstance(ctx.exception.__cause__, Exception)


class UuidLiteralTests(unittest.TestCase):
    def test_parse_uuid_literal_requires_canonical_form(self) -> None:
        parsed = parse_uuid_literal("3F2B8C1E-6A4D-4F7E-9B1A-2C3D4E5F6A7B")

        self.assertEqual(str(parsed), "3f2b8c1e-6a4d-4f7e-9b1a-2c3d4e5f6a7b")
        with self.assertRaises(ValueError):
            parse_uuid_literal("{3f2b8c1e-6a4d-4f7e-9b1a-2c3d4e5f6a7b}")


if __name__ == "__main__":
    unittest.main()
