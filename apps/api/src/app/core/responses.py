"""
Response Envelope

Every endpoint answers with the same JSON envelope:

    success: {"success": true, "message": ..., "data": ..., "timestamp": ...}
    failure: {"success": false, "error": {"message", "code", "metadata"?}, "timestamp": ...}

The exception handlers registered by ``register_exception_handlers`` render
AppError, HTTPException and request validation failures in the failure shape.
"""

import logging
from datetime import UTC, datetime
from typing import Any, Generic, TypeVar

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.errors import AppError, flatten_validation_errors, validation_error_from_details

logger = logging.getLogger(__name__)

DataT = TypeVar("DataT")


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ApiResponse(BaseModel, Generic[DataT]):
    """Success envelope."""

    success: bool = True
    message: str = "Success"
    data: DataT | None = None
    timestamp: datetime = Field(default_factory=_utcnow)


class ErrorBody(BaseModel):
    message: str
    code: str
    metadata: dict[str, Any] | None = None


class ErrorResponse(BaseModel):
    """Failure envelope."""

    success: bool = False
    error: ErrorBody
    timestamp: datetime = Field(default_factory=_utcnow)


def success(data: Any = None, message: str = "Success") -> ApiResponse:
    """Wrap ``data`` in the success envelope."""
    return ApiResponse(message=message, data=data)


def error_response(
    status_code: int,
    message: str,
    code: str,
    metadata: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    body = ErrorResponse(error=ErrorBody(message=message, code=code, metadata=metadata or None))
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", exclude_none=True),
        headers=headers,
    )


async def app_error_handler(_request: Request, exc: AppError) -> JSONResponse:
    return error_response(exc.status_code, exc.message, exc.error_code, exc.metadata)


async def http_exception_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
    # Some dependencies (rate limiter, bearer scheme) still raise HTTPException
    # with a {"error", "message"} detail.
    detail = exc.detail
    if isinstance(detail, dict):
        message = detail.get("message", "Request failed")
        code = detail.get("error", "HTTP_ERROR")
        metadata = {k: v for k, v in detail.items() if k not in ("message", "error")}
    else:
        message = str(detail)
        code = "HTTP_ERROR"
        metadata = None
    return error_response(exc.status_code, message, code, metadata, getattr(exc, "headers", None))


async def request_validation_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    validation_error = validation_error_from_details(flatten_validation_errors(exc))
    return error_response(
        status.HTTP_400_BAD_REQUEST,
        validation_error.message,
        validation_error.error_code,
        validation_error.metadata,
    )


async def unhandled_exception_handler(_request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error: {exc}")
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "An unexpected error occurred.",
        "INTERNAL_ERROR",
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the envelope-rendering exception handlers on ``app``."""
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
