"""FastAPI application entrypoint."""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy import text
from starlette.exceptions import HTTPException as StarletteHTTPException

from tablecrud.config import get_settings
from tablecrud.db.session import get_engine
from tablecrud.errors import (
    INTERNAL_ERROR_DETAIL,
    INTERNAL_ERROR_NAME,
    BusinessFailure,
    ErrorCode,
    RoutingFailure,
    ValidationFailure,
)
from tablecrud.log_setup import configure_logging
from tablecrud.routers import schema_cache, tables
from tablecrud.schemas.common import ErrorBody, ErrorResponse

logger = logging.getLogger(__name__)


def _warm_backend_state() -> None:
    """Prime the connection pool at process start when a database is configured."""

    if not get_settings().database_url:
        logger.warning("startup.database_unconfigured setting=DATABASE_URL")
        return
    try:
        with get_engine().connect() as connection:
            connection.execute(text("SELECT 1"))
    except Exception:
        logger.exception("startup.warmup_failed")


@asynccontextmanager
async def lifespan(_: FastAPI):
    configure_logging(get_settings().log_level)
    _warm_backend_state()
    yield


async def handle_business_failure(request: Request, exc: BusinessFailure) -> JSONResponse:
    if exc.http_status < 500:
        logger.warning(
            "request.rejected method=%s path=%s code=%s name=%s detail=%s",
            request.method,
            request.url.path,
            exc.error_code.code,
            exc.error_name,
            exc.error_detail,
        )
    else:
        logger.error(
            "request.failed method=%s path=%s code=%s name=%s detail=%s",
            request.method,
            request.url.path,
            exc.error_code.code,
            exc.error_name,
            exc.error_detail,
        )
    return JSONResponse(status_code=exc.http_status, content=ErrorResponse.from_failure(exc).model_dump())


async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Re-wrap routing errors raised by the framework in the failure envelope."""

    if exc.status_code == 405:
        failure: BusinessFailure = ValidationFailure.method_not_supported(request.method)
    elif exc.status_code == 404:
        failure = RoutingFailure.route_not_found(request.url.path)
    elif exc.status_code >= 500:
        return await handle_unexpected_failure(request, exc)
    else:
        failure = RoutingFailure.rejected(exc.status_code, str(exc.detail))
    return await handle_business_failure(request, failure)


async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = [str(part) for part in first.get("loc", ())[1:]]
    failure = ValidationFailure.invalid_format(
        ".".join(location) or "request", first.get("msg", "Request parameters are invalid")
    )
    return await handle_business_failure(request, failure)


async def handle_unexpected_failure(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("request.crashed method=%s path=%s", request.method, request.url.path, exc_info=exc)
    payload = ErrorResponse(
        error=ErrorBody(
            errorCode=ErrorCode.INTERNAL_ERROR.code,
            errorName=INTERNAL_ERROR_NAME,
            errorDetail=INTERNAL_ERROR_DETAIL,
        )
    )
    return JSONResponse(status_code=500, content=payload.model_dump())


def create_app() -> FastAPI:
    settings = get_settings()
    application = FastAPI(title=settings.app_name, version="0.1.0", lifespan=lifespan)
    application.add_exception_handler(BusinessFailure, handle_business_failure)
    application.add_exception_handler(StarletteHTTPException, handle_http_exception)
    application.add_exception_handler(RequestValidationError, handle_request_validation)
    application.add_exception_handler(Exception, handle_unexpected_failure)

    application.include_router(tables.router, prefix=settings.api_prefix, tags=["tables"])
    application.include_router(schema_cache.router, prefix=settings.api_prefix, tags=["schema-cache"])

    @application.get("/health")
    def health() -> dict[str, str]:
        """Simple health check endpoint."""

        return {"status": "ok"}

    return application


app = create_app()
