"""Generic CRUD routes, one resource path per table."""

from typing import Any

from fastapi import APIRouter, Depends, Path, Request
from sqlalchemy.engine import Connection

from tablecrud.db.dependencies import get_connection, get_crud_service
from tablecrud.errors import ValidationFailure
from tablecrud.schemas.common import ApiResponse, CreateResult, RowsAffectedResult
from tablecrud.services.crud import CrudService, Verb

router = APIRouter(prefix="/tables/{table}")


async def read_raw_body(request: Request) -> str | None:
    """Hand the undecoded request body to the orchestrator."""

    raw = await request.body()
    if not raw:
        return None
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise ValidationFailure.invalid_format("request_body", "Request body must be UTF-8 text") from exc


def _filters(request: Request) -> dict[str, str]:
    return dict(request.query_params)


@router.get("", response_model=ApiResponse[list[dict[str, Any]]])
def read_rows(
    request: Request,
    table: str = Path(..., min_length=1),
    connection: Connection = Depends(get_connection),
    service: CrudService = Depends(get_crud_service),
) -> ApiResponse[list[dict[str, Any]]]:
    """List rows, optionally narrowed by column=value query parameters."""

    rows = service.handle(connection, Verb.READ, table, _filters(request))
    return ApiResponse(data=rows)


@router.post("", response_model=ApiResponse[CreateResult], status_code=201)
def create_row(
    request: Request,
    table: str = Path(..., min_length=1),
    raw_body: str | None = Depends(read_raw_body),
    connection: Connection = Depends(get_connection),
    service: CrudService = Depends(get_crud_service),
) -> ApiResponse[CreateResult]:
    """Insert one row with a generated primary key."""

    created = service.handle(connection, Verb.CREATE, table, _filters(request), raw_body)
    return ApiResponse(data=CreateResult(**created))


@router.patch("", response_model=ApiResponse[RowsAffectedResult])
def update_rows(
    request: Request,
    table: str = Path(..., min_length=1),
    raw_body: str | None = Depends(read_raw_body),
    connection: Connection = Depends(get_connection),
    service: CrudService = Depends(get_crud_service),
) -> ApiResponse[RowsAffectedResult]:
    """Update every row matching the query-parameter filters."""

    updated = service.handle(connection, Verb.UPDATE, table, _filters(request), raw_body)
    return ApiResponse(data=RowsAffectedResult(**updated))


@router.delete("", response_model=ApiResponse[RowsAffectedResult])
def delete_rows(
    request: Request,
    table: str = Path(..., min_length=1),
    connection: Connection = Depends(get_connection),
    service: CrudService = Depends(get_crud_service),
) -> ApiResponse[RowsAffectedResult]:
    """Delete every row matching the query-parameter filters."""

    deleted = service.handle(connection, Verb.DELETE, table, _filters(request))
    return ApiResponse(data=RowsAffectedResult(**deleted))


@router.put("")
def replace_rows(request: Request, table: str = Path(..., min_length=1)) -> None:
    """Full replacement is not offered; answer with a stable error code."""

    Verb.from_http_method(request.method)
