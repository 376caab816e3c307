"""Error responses for the clickstats API.

Every error leaves the API with the same body:

    {"error": "Banner not found", "message": "Banner with identifier '7' not found"}

Domain exceptions from clickstats.core.errors are mapped to HTTP status
codes here, so routers can let them propagate.
"""

from __future__ import annotations

import logging

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import ORJSONResponse
from pydantic import BaseModel

from clickstats.core.errors import (
    BackingStoreError,
    ConflictError,
    NotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)


class ErrorResponse(BaseModel):
    """Body of every error response."""

    error: str
    message: str


class ApiError(HTTPException):
    """Base exception for API errors raised by routers."""

    def __init__(self, status_code: int, error: str, message: str):
        self.error = error
        self.message = message
        super().__init__(status_code=status_code, detail=message)

    def to_response(self) -> ErrorResponse:
        return ErrorResponse(error=self.error, message=self.message)


class BadRequestError(ApiError):
    """Invalid request (400)."""

    def __init__(self, error: str, message: str):
        super().__init__(status_code=400, error=error, message=message)


class InternalServerError(ApiError):
    """Internal server error (500)."""

    def __init__(self, error: str = "Internal server error", message: str = "Internal server error"):
        super().__init__(status_code=500, error=error, message=message)


def _error_response(status_code: int, error: str, message: str) -> ORJSONResponse:
    return ORJSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=error, message=message).model_dump(),
    )


async def api_error_handler(request: Request, exc: ApiError) -> ORJSONResponse:
    """Exception handler for errors raised explicitly by routers."""
    return _error_response(exc.status_code, exc.error, exc.message)


async def not_found_handler(request: Request, exc: NotFoundError) -> ORJSONResponse:
    return _error_response(404, f"{exc.resource} not found", str(exc))


async def conflict_handler(request: Request, exc: ConflictError) -> ORJSONResponse:
    return _error_response(409, f"{exc.resource} already exists", str(exc))


async def validation_handler(request: Request, exc: ValidationError) -> ORJSONResponse:
    return _error_response(400, "Invalid request", str(exc))


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> ORJSONResponse:
    """Path, query and body validation failures.

    Reported as 400 with the first failing field, instead of FastAPI's
    default 422 detail list.
    """
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg', 'invalid value')}"
    else:
        message = "Request validation failed"
    return _error_response(400, "Invalid request", message)


async def backing_store_handler(request: Request, exc: BackingStoreError) -> ORJSONResponse:
    logger.error(f"Backing store failure on {request.method} {request.url.path}: {exc}")
    return _error_response(500, "Backing store error", "Internal server error")


async def generic_exception_handler(request: Request, exc: Exception) -> ORJSONResponse:
    """Exception handler for unexpected errors."""
    logger.exception(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
    return _error_response(500, "Internal server error", "An unexpected error occurred")
