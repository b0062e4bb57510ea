"""Schema cache administration routes."""

from fastapi import APIRouter, Depends, Path

from tablecrud.catalog.schema_catalog import SchemaCatalog
from tablecrud.db.dependencies import get_schema_catalog
from tablecrud.schemas.common import ApiResponse, CacheInvalidationResult

router = APIRouter(prefix="/schema-cache")


@router.get("", response_model=ApiResponse[list[str]])
def list_cached_tables(catalog: SchemaCatalog = Depends(get_schema_catalog)) -> ApiResponse[list[str]]:
    """List tables whose metadata is currently cached."""

    return ApiResponse(data=catalog.cached_tables())


@router.delete("", response_model=ApiResponse[CacheInvalidationResult])
def invalidate_all(
    catalog: SchemaCatalog = Depends(get_schema_catalog),
) -> ApiResponse[CacheInvalidationResult]:
    """Forget every cached table schema, e.g. after DDL changes."""

    catalog.invalidate_all()
    return ApiResponse(data=CacheInvalidationResult(invalidated="*"))


@router.delete("/{table}", response_model=ApiResponse[CacheInvalidationResult])
def invalidate_table(
    table: str = Path(..., min_length=1),
    catalog: SchemaCatalog = Depends(get_schema_catalog),
) -> ApiResponse[CacheInvalidationResult]:
    """Forget the cached schema of one table."""

    catalog.invalidate(table)
    return ApiResponse(data=CacheInvalidationResult(invalidated=table))
