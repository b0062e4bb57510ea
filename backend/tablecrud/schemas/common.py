"""Common API response schemas."""

from time import time
from typing import Generic, TypeVar

from pydantic import BaseModel, Field

from tablecrud.errors import BusinessFailure

T = TypeVar("T")


def epoch_millis() -> int:
    return int(time() * 1000)


class ApiResponse(BaseModel, Generic[T]):
    """Consistent JSON envelope for successful responses."""

    success: bool = True
    data: T
    timestamp: int = Field(default_factory=epoch_millis)


class ErrorBody(BaseModel):
    """Stable error triple returned to clients."""

    errorCode: str
    errorName: str
    errorDetail: str


class ErrorResponse(BaseModel):
    """Consistent JSON envelope for failed responses."""

    success: bool = False
    error: ErrorBody
    timestamp: int = Field(default_factory=epoch_millis)

    @classmethod
    def from_failure(cls, failure: BusinessFailure) -> "ErrorResponse":
        return cls(error=ErrorBody(**failure.to_error_body()))


class CreateResult(BaseModel):
    id: str
    status: str
    table: str


class RowsAffectedResult(BaseModel):
    rowsAffected: int
    table: str


class CacheInvalidationResult(BaseModel):
    invalidated: str
