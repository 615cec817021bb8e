"""
Password Reset Repository

Database operations for password reset tokens. Tokens are stored as
SHA-256 fingerprints; creating a reset supersedes (deletes) every earlier
reset for the same admin.
"""

import logging
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import delete, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import rollback_and_translate
from app.core.security import hash_token
from app.modules.admins.models import PasswordReset
from app.modules.auth.schemas import PasswordResetCreate, SweepRequest, TokenLookup
from app.modules.auth.session_repository import parse_uuid

logger = logging.getLogger(__name__)


async def create_reset(
    db: AsyncSession, data: PasswordResetCreate | dict[str, Any]
) -> PasswordReset:
    """
    Store a new reset token, deleting any earlier ones for the admin.

    Args:
        db: Database session
        data: Admin id, email, raw token and expiry

    Returns:
        The created PasswordReset
    """
    try:
        payload = (
            data
            if isinstance(data, PasswordResetCreate)
            else PasswordResetCreate.model_validate(data)
        )
        await db.execute(delete(PasswordReset).where(PasswordReset.admin_id == payload.admin_id))

        reset = PasswordReset(
            admin_id=payload.admin_id,
            email=payload.email.lower(),
            token=hash_token(payload.token),
            expires_at=payload.expires_at,
        )
        db.add(reset)
        await db.commit()
        await db.refresh(reset)
    except (PydanticValidationError, SQLAlchemyError) as e:
        raise await rollback_and_translate(db, e, "create_password_reset") from e

    logger.info(f"Created password reset {reset.id} for admin {reset.admin_id}")
    return reset


async def find_by_token(db: AsyncSession, token: str) -> PasswordReset | None:
    """Find a reset by its raw token."""
    try:
        lookup = TokenLookup(token=token)
        result = await db.execute(
            select(PasswordReset).where(PasswordReset.token == hash_token(lookup.token))
        )
        return result.scalar_one_or_none()
    except (PydanticValidationError, SQLAlchemyError) as e:
        raise await rollback_and_translate(db, e, "find_password_reset") from e


async def record_attempt(db: AsyncSession, reset: PasswordReset) -> PasswordReset:
    """Increment the attempt counter on a reset."""
    try:
        reset.attempts = (reset.attempts or 0) + 1
        await db.commit()
        await db.refresh(reset)
    except SQLAlchemyError as e:
        raise await rollback_and_translate(db, e, "record_password_reset_attempt") from e
    return reset


async def mark_used(db: AsyncSession, reset: PasswordReset) -> PasswordReset:
    """Mark a reset as consumed."""
    try:
        reset.is_used = True
        reset.used_at = datetime.now(UTC)
        await db.commit()
        await db.refresh(reset)
    except SQLAlchemyError as e:
        raise await rollback_and_translate(db, e, "mark_password_reset_used") from e

    logger.info(f"Password reset {reset.id} used")
    return reset


async def delete_for_admin(db: AsyncSession, admin_id: UUID | str) -> int:
    """Delete every reset belonging to an admin."""
    aid = parse_uuid(admin_id, "admin_id")
    try:
        result = await db.execute(delete(PasswordReset).where(PasswordReset.admin_id == aid))
        await db.commit()
    except SQLAlchemyError as e:
        raise await rollback_and_translate(db, e, "delete_password_resets") from e
    return result.rowcount or 0


async def cleanup_stale_resets(db: AsyncSession, now: datetime | None = None) -> int:
    """
    Delete resets that are used or past their expiry.

    Returns:
        Number of resets deleted
    """
    try:
        sweep = SweepRequest(now=now or datetime.now(UTC))
        result = await db.execute(
            delete(PasswordReset).where(
                or_(PasswordReset.is_used.is_(True), PasswordReset.expires_at < sweep.now)
            )
        )
        await db.commit()
    except (PydanticValidationError, SQLAlchemyError) as e:
        raise await rollback_and_translate(db, e, "cleanup_stale_resets") from e

    count = result.rowcount or 0
    logger.info(f"Password reset sweep removed {count} reset(s)")
    return count
