"""
Application Errors

Every failure surfaced by the API is one of a small set of error kinds.
Each kind carries a stable error code and the HTTP status it maps to, so
routers never have to pick status codes themselves.

Database and validation exceptions raised by SQLAlchemy and Pydantic are
translated into these kinds by ``translate_error``:

- Pydantic ValidationError      -> ValidationError (field-level messages)
- unique constraint violation   -> ConflictError
- foreign key violation         -> BusinessLogicError
- NoResultFound                 -> NotFoundError
- any other SQLAlchemyError     -> DatabaseError
"""

import logging
import re
from datetime import UTC, datetime
from typing import Any

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import IntegrityError, NoResultFound, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

# PostgreSQL SQLSTATE codes
UNIQUE_VIOLATION = "23505"
FOREIGN_KEY_VIOLATION = "23503"

_KEY_DETAIL_PATTERN = re.compile(r"Key \((?P<field>[^)]+)\)=")
_CONSTRAINT_PATTERN = re.compile(r'constraint "(?P<name>[^"]+)"')


class AppError(Exception):
    """Base exception for all application errors."""

    error_code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        metadata: dict[str, Any] | None = None,
    ):
        self.message = message
        if error_code:
            self.error_code = error_code
        self.metadata = metadata or {}
        self.timestamp = datetime.now(UTC)
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        error: dict[str, Any] = {"message": self.message, "code": self.error_code}
        if self.metadata:
            error["metadata"] = self.metadata
        return error


class ValidationError(AppError):
    error_code = "VALIDATION_ERROR"
    status_code = 400


class AuthenticationError(AppError):
    error_code = "AUTHENTICATION_ERROR"
    status_code = 401


class AuthorizationError(AppError):
    error_code = "AUTHORIZATION_ERROR"
    status_code = 403


class NotFoundError(AppError):
    error_code = "NOT_FOUND"
    status_code = 404


class ConflictError(AppError):
    error_code = "CONFLICT_ERROR"
    status_code = 409


class BusinessLogicError(AppError):
    error_code = "BUSINESS_LOGIC_ERROR"
    status_code = 422


class DatabaseError(AppError):
    error_code = "DATABASE_ERROR"
    status_code = 500


def flatten_validation_errors(exc: PydanticValidationError) -> list[dict[str, Any]]:
    """
    Flatten a Pydantic ValidationError into field-level entries.

    FastAPI's RequestValidationError exposes the same ``errors()`` shape and
    is accepted too.

    Returns:
        List of ``{"field", "message", "code"}`` dicts. Model-level errors
        use the field name ``root``.
    """
    details = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        message = error.get("msg", "Invalid value")
        # model_validator errors arrive as "Value error, <message>"
        if message.startswith("Value error, "):
            message = message[len("Value error, ") :]
        details.append(
            {
                "field": ".".join(loc) if loc else "root",
                "message": message,
                "code": error.get("type", "invalid"),
            }
        )
    return details


def validation_error_from_details(
    details: list[dict[str, Any]],
    context: str = "",
) -> ValidationError:
    """Build a ValidationError whose message lists every failing field."""
    field_messages = [
        d["message"] if d["field"] == "root" else f"{d['field']}: {d['message']}" for d in details
    ]
    message = "; ".join(field_messages) or "Invalid input provided"
    if context:
        message = f"{context} - {message}"
    return ValidationError(
        message,
        metadata={"validation_errors": details, "field_count": len(details)},
    )


def _sqlstate(exc: IntegrityError) -> str | None:
    orig = exc.orig
    return getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)


def _violated_field(exc: IntegrityError) -> str:
    text = str(exc.orig)
    match = _KEY_DETAIL_PATTERN.search(text)
    if match:
        return match.group("field")
    match = _CONSTRAINT_PATTERN.search(text)
    if match:
        return match.group("name")
    return "field"


def _translate_integrity_error(exc: IntegrityError, operation: str) -> AppError:
    code = _sqlstate(exc)
    text = str(exc.orig).lower()

    if code == UNIQUE_VIOLATION or "unique" in text or "duplicate key" in text:
        field = _violated_field(exc)
        return ConflictError(f"{field} already exists", error_code="UNIQUE_VIOLATION")

    if code == FOREIGN_KEY_VIOLATION or "foreign key" in text:
        return BusinessLogicError(
            "Operation violates a relationship with another resource",
            error_code="FOREIGN_KEY_VIOLATION",
            metadata={"operation": operation},
        )

    return DatabaseError(
        "Database constraint violated",
        error_code="DB_CONSTRAINT_FAILED",
        metadata={"operation": operation},
    )


def translate_error(exc: Exception, operation: str = "") -> AppError:
    """
    Translate any exception into an application error kind.

    Args:
        exc: The exception raised by a repository or service call
        operation: Name of the failing operation (for messages and logs)

    Returns:
        An AppError subclass instance; AppErrors are returned unchanged
    """
    if isinstance(exc, AppError):
        return exc

    if isinstance(exc, PydanticValidationError):
        return validation_error_from_details(flatten_validation_errors(exc), operation)

    if isinstance(exc, IntegrityError):
        return _translate_integrity_error(exc, operation)

    if isinstance(exc, NoResultFound):
        return NotFoundError("Resource not found", error_code="RECORD_NOT_FOUND")

    if isinstance(exc, SQLAlchemyError):
        return DatabaseError(
            "Database operation failed",
            error_code="DB_OPERATION_FAILED",
            metadata={"operation": operation},
        )

    return BusinessLogicError(
        str(exc) or "An unexpected error occurred",
        metadata={"original_error": type(exc).__name__, "operation": operation},
    )


async def rollback_and_translate(db: AsyncSession, exc: Exception, operation: str) -> AppError:
    """
    Repository failure path: roll back database errors, log, translate.

    Usage:
        except (PydanticValidationError, SQLAlchemyError) as e:
            raise await rollback_and_translate(db, e, "create_session") from e
    """
    if isinstance(exc, SQLAlchemyError):
        await db.rollback()
    error = translate_error(exc, operation)
    logger.error(f"{operation} failed: [{error.error_code}] {error.message}")
    return error


__all__ = [
    "AppError",
    "ValidationError",
    "AuthenticationError",
    "AuthorizationError",
    "NotFoundError",
    "ConflictError",
    "BusinessLogicError",
    "DatabaseError",
    "flatten_validation_errors",
    "validation_error_from_details",
    "translate_error",
    "rollback_and_translate",
]
