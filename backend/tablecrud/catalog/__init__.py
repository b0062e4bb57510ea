"""Catalog introspection and table metadata."""

from tablecrud.catalog.schema_catalog import SchemaCatalog
from tablecrud.catalog.types import ColumnMetadata, TableSchema, TypeFamily, classify_type_name

__all__ = ["SchemaCatalog", "ColumnMetadata", "TableSchema", "TypeFamily", "classify_type_name"]
