"""Create a demo `users` table and insert a few rows through the CRUD engine.

Usage (with DATABASE_URL set):
    python -m scripts.seed_demo
    python -m scripts.seed_demo --no-reset
"""

from __future__ import annotations

import argparse
import json

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Integer,
    MetaData,
    String,
    Table,
    Uuid,
)

from tablecrud.db.dependencies import get_crud_service
from tablecrud.db.session import get_engine
from tablecrud.services.crud import Verb

DEFAULT_TABLE = "users"

metadata = MetaData()


def build_demo_table(name: str) -> Table:
    """Return the demo table definition used by the CRUD walkthrough."""

    return Table(
        name,
        metadata,
        Column("id", Uuid(), primary_key=True),
        Column("name", String(255), nullable=False),
        Column("age", Integer(), nullable=True),
        Column("profile", JSON(), nullable=True),
        Column("updated_at", DateTime(timezone=True), nullable=True),
    )


def build_demo_rows() -> list[dict[str, object]]:
    return [
        {"name": "Ann", "age": 34, "profile": {"team": "platform", "langs": ["python", "sql"]}},
        {"name": "Bo", "age": 27},
        {"name": "Chen", "profile": {"team": "data"}},
    ]


def parse_args() -> argparse.Namespace:
    """Parse script CLI arguments."""

    parser = argparse.ArgumentParser(description="Create and seed a demo table for the CRUD API.")
    parser.add_argument(
        "--table",
        default=DEFAULT_TABLE,
        help=f"Table name to create (default: {DEFAULT_TABLE})",
    )
    parser.add_argument(
        "--no-reset",
        action="store_true",
        help="Keep an existing table instead of dropping and recreating it.",
    )
    return parser.parse_args()


def main() -> None:
    """Seed demo data and print a short summary."""

    args = parse_args()
    engine = get_engine()
    table = build_demo_table(args.table)
    if not args.no_reset:
        table.drop(engine, checkfirst=True)
    table.create(engine, checkfirst=True)

    service = get_crud_service()
    service.catalog.invalidate(args.table)
    created_ids: list[str] = []
    with engine.connect() as connection:
        for row in build_demo_rows():
            created = service.handle(connection, Verb.CREATE, args.table, raw_body=json.dumps(row))
            created_ids.append(created["id"])

    print("Seed complete")
    print(f"table={args.table}")
    print(f"rows_created={len(created_ids)}")
    print()
    print("Inspect:")
    print(f"  GET /api/tables/{args.table}")
    print(f"  GET /api/tables/{args.table}?id={created_ids[0]}")


if __name__ == "__main__":
    main()
