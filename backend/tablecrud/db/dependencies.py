"""FastAPI dependencies for database access and shared services."""

from collections.abc import Iterator
from functools import lru_cache

from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError

from tablecrud.catalog.schema_catalog import SchemaCatalog
from tablecrud.config import get_settings
from tablecrud.db.session import get_engine
from tablecrud.errors import DatabaseFailure
from tablecrud.services.crud import CrudService, is_timeout_error


def get_connection() -> Iterator[Connection]:
    """Yield one pooled connection for the lifetime of a request."""

    try:
        connection = get_engine().connect()
    except SQLAlchemyError as exc:
        raise DatabaseFailure.connection_failed(str(exc), exc, timeout=is_timeout_error(exc)) from exc
    try:
        yield connection
    finally:
        connection.close()


@lru_cache
def get_schema_catalog() -> SchemaCatalog:
    return SchemaCatalog(db_schema=get_settings().db_schema)


def get_crud_service() -> CrudService:
    return CrudService(get_schema_catalog())
