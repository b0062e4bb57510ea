"""Stable error taxonomy and the failures raised across the CRUD engine."""

from __future__ import annotations

from enum import Enum


class ErrorCode(Enum):
    """Closed set of error codes surfaced to API clients."""

    # client-caused (4xx)
    NOT_NULL = ("NotNull", "Field must not be null")
    INVALID_FORMAT = ("InvalidFormat", "Value has an invalid format")
    MISSING_REQUIRED_FIELD = ("MissingRequiredField", "Required field is missing")
    MISSING_BODY = ("MissingBody", "Request body must not be empty")
    MISSING_FILTER = ("MissingFilter", "Filter conditions are missing")
    NO_VALID_COLUMNS = ("NoValidColumns", "No valid columns were provided")
    NO_VALID_FILTERS = ("NoValidFilters", "No valid filter conditions were provided")
    UNKNOWN_COLUMN = ("UnknownColumn", "Unknown column")
    METHOD_NOT_SUPPORTED = ("MethodNotSupported", "HTTP method is not supported")
    ROUTE_NOT_FOUND = ("RouteNotFound", "No route matches the request path")
    REQUEST_REJECTED = ("RequestRejected", "Request was rejected before reaching a handler")

    # backend-caused (404/500/504)
    TABLE_NOT_FOUND = ("TableNotFound", "Table does not exist")
    CONNECTION_FAILED = ("ConnectionFailed", "Database connection failed")
    QUERY_FAILED = ("QueryFailed", "SQL statement execution failed")
    NO_PRIMARY_KEY = ("NoPrimaryKey", "Table has no primary key")
    DATABASE_ERROR = ("DatabaseError", "Database operation failed")

    # configuration (500)
    DB_CONFIG_MISSING = ("DbConfigMissing", "Database connection settings are missing")

    # catch-all (500)
    INTERNAL_ERROR = ("InternalError", "Internal system error")

    def __init__(self, code: str, description: str) -> None:
        self.code = code
        self.description = description

    def __str__(self) -> str:
        return self.code


class BusinessFailure(Exception):
    """Failure carrying a stable error code for the API boundary."""

    http_status = 500

    def __init__(
        self,
        error_code: ErrorCode,
        error_name: str | None,
        error_detail: str,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(f"[{error_code.code}] {error_name or '-'}: {error_detail}")
        self.error_code = error_code
        self.error_name = error_name or "-"
        self.error_detail = error_detail
        if cause is not None:
            self.__cause__ = cause

    @property
    def cause(self) -> BaseException | None:
        return self.__cause__

    def to_error_body(self) -> dict[str, str]:
        return {
            "errorCode": self.error_code.code,
            "errorName": self.error_name,
            "errorDetail": self.error_detail,
        }


class ValidationFailure(BusinessFailure):
    """Client-caused failure: the request itself is invalid."""

    http_status = 400

    @classmethod
    def not_null(cls, column: str) -> "ValidationFailure":
        return cls(ErrorCode.NOT_NULL, column, f"Column '{column}' must not be null")

    @classmethod
    def invalid_format(cls, name: str, detail: str) -> "ValidationFailure":
        return cls(ErrorCode.INVALID_FORMAT, name, detail)

    @classmethod
    def missing_required_field(cls, columns: list[str]) -> "ValidationFailure":
        joined = ", ".join(columns)
        return cls(ErrorCode.MISSING_REQUIRED_FIELD, joined, f"Required fields are missing: {joined}")

    @classmethod
    def missing_body(cls) -> "ValidationFailure":
        return cls(ErrorCode.MISSING_BODY, "request_body", "Request body must not be empty")

    @classmethod
    def missing_filter(cls) -> "ValidationFailure":
        return cls(
            ErrorCode.MISSING_FILTER,
            "query_parameters",
            "At least one filter condition must be supplied as a query parameter",
        )

    @classmethod
    def no_valid_columns(cls) -> "ValidationFailure":
        return cls(ErrorCode.NO_VALID_COLUMNS, "request_body", "No updatable columns were provided")

    @classmethod
    def no_valid_filters(cls) -> "ValidationFailure":
        return cls(ErrorCode.NO_VALID_FILTERS, "query_parameters", "No valid filter conditions were provided")

    @classmethod
    def unknown_column(cls, column: str, table: str) -> "ValidationFailure":
        return cls(ErrorCode.UNKNOWN_COLUMN, column, f"Column '{column}' does not exist in table '{table}'")

    @classmethod
    def method_not_supported(cls, method: str) -> "ValidationFailure":
        return cls(ErrorCode.METHOD_NOT_SUPPORTED, "http_method", f"Method '{method}' is not supported")


class RoutingFailure(BusinessFailure):
    """Client-caused failure raised by the HTTP layer before any CRUD handler runs."""

    def __init__(
        self,
        error_code: ErrorCode,
        error_name: str | None,
        error_detail: str,
        *,
        http_status: int,
    ) -> None:
        super().__init__(error_code, error_name, error_detail)
        self.http_status = http_status

    @classmethod
    def route_not_found(cls, path: str) -> "RoutingFailure":
        return cls(ErrorCode.ROUTE_NOT_FOUND, "path", f"No route matches '{path}'", http_status=404)

    @classmethod
    def rejected(cls, status_code: int, detail: str) -> "RoutingFailure":
        return cls(ErrorCode.REQUEST_REJECTED, "request", detail, http_status=status_code)


class DatabaseFailure(BusinessFailure):
    """Backend-caused failure raised while talking to the database."""

    def __init__(
        self,
        error_code: ErrorCode,
        error_name: str | None,
        error_detail: str,
        cause: BaseException | None = None,
        *,
        timeout: bool = False,
    ) -> None:
        super().__init__(error_code, error_name, error_detail, cause)
        self.timeout = timeout

    @property
    def http_status(self) -> int:  # type: ignore[override]
        if self.timeout:
            return 504
        if self.error_code is ErrorCode.TABLE_NOT_FOUND:
            return 404
        return 500

    @classmethod
    def table_not_found(cls, table: str) -> "DatabaseFailure":
        return cls(ErrorCode.TABLE_NOT_FOUND, "table", f"Table '{table}' does not exist")

    @classmethod
    def connection_failed(
        cls, message: str, cause: BaseException | None = None, *, timeout: bool = False
    ) -> "DatabaseFailure":
        return cls(
            ErrorCode.CONNECTION_FAILED,
            "database_connection",
            f"Could not connect to the database: {message}",
            cause,
            timeout=timeout,
        )

    @classmethod
    def query_failed(
        cls,
        operation: str,
        message: str,
        cause: BaseException | None = None,
        *,
        timeout: bool = False,
    ) -> "DatabaseFailure":
        verb = "timed out" if timeout else "failed"
        return cls(
            ErrorCode.QUERY_FAILED,
            "sql_query",
            f"{operation} statement {verb}: {message}",
            cause,
            timeout=timeout,
        )

    @classmethod
    def no_primary_key(cls, table: str) -> "DatabaseFailure":
        return cls(ErrorCode.NO_PRIMARY_KEY, "primary_key", f"Table '{table}' has no primary key")

    @classmethod
    def database_error(cls, message: str, cause: BaseException | None = None) -> "DatabaseFailure":
        return cls(ErrorCode.DATABASE_ERROR, "database", message, cause)


class ConfigurationFailure(BusinessFailure):
    """Raised when the service is not configured to reach a database."""

    http_status = 500

    @classmethod
    def db_config_missing(cls) -> "ConfigurationFailure":
        return cls(
            ErrorCode.DB_CONFIG_MISSING,
            "environment_variables",
            "Database connection settings are missing; set DATABASE_URL",
        )


INTERNAL_ERROR_NAME = "system"
INTERNAL_ERROR_DETAIL = "Internal system error. Please contact the administrator."
