"""
Admin Session Repository

Database operations for admin login sessions.

Every operation validates its input (Pydantic schema or UUID parsing) before
issuing any query. Database failures are rolled back, logged with the
operation name and re-raised as application errors via ``translate_error``.

Tokens are accepted raw and stored / looked up by their SHA-256 fingerprint.
A session is active while ``expires_at`` is in the future; validity is
always computed, never stored.
"""

import logging
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import AppError, NotFoundError, ValidationError, rollback_and_translate
from app.core.security import hash_token
from app.modules.admins.models import AdminSession
from app.modules.auth.schemas import SessionCreate, SessionUpdate, SweepRequest, TokenLookup

logger = logging.getLogger(__name__)


def parse_uuid(value: UUID | str, field: str = "id") -> UUID:
    """
    Parse a UUID argument.

    Raises:
        ValidationError: If ``value`` is not a valid UUID
    """
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError, AttributeError):
        raise ValidationError(
            f"{field}: Invalid UUID",
            metadata={"validation_errors": [{"field": field, "message": "Invalid UUID"}]},
        ) from None


def _utcnow() -> datetime:
    return datetime.now(UTC)


async def create_session(db: AsyncSession, data: SessionCreate | dict[str, Any]) -> AdminSession:
    """
    Persist a new session.

    Args:
        db: Database session
        data: Admin id, raw access/refresh tokens, expiry and client details

    Returns:
        The created AdminSession

    Raises:
        ValidationError: Malformed input (nothing is written)
        ConflictError: A token fingerprint already exists
        DatabaseError: Any other database failure
    """
    try:
        payload = data if isinstance(data, SessionCreate) else SessionCreate.model_validate(data)

        session = AdminSession(
            admin_id=payload.admin_id,
            token=hash_token(payload.token),
            refresh_token=hash_token(payload.refresh_token),
            expires_at=payload.expires_at,
            ip_address=payload.ip_address,
            user_agent=payload.user_agent,
        )
        db.add(session)
        await db.commit()
        await db.refresh(session)
    except (PydanticValidationError, SQLAlchemyError) as e:
        raise await rollback_and_translate(db, e, "create_session") from e

    logger.info(f"Created session {session.id} for admin {session.admin_id}")
    return session


async def _find_by_column(
    db: AsyncSession, column: Any, raw_token: str, operation: str
) -> AdminSession | None:
    try:
        lookup = TokenLookup(token=raw_token)
        result = await db.execute(select(AdminSession).where(column == hash_token(lookup.token)))
        return result.scalar_one_or_none()
    except (PydanticValidationError, SQLAlchemyError) as e:
        raise await rollback_and_translate(db, e, operation) from e


async def find_by_access_token(db: AsyncSession, token: str) -> AdminSession | None:
    """Find the session issued with this access token."""
    return await _find_by_column(db, AdminSession.token, token, "find_by_access_token")


async def find_by_refresh_token(db: AsyncSession, refresh_token: str) -> AdminSession | None:
    """Find the session issued with this refresh token."""
    return await _find_by_column(
        db, AdminSession.refresh_token, refresh_token, "find_by_refresh_token"
    )


async def find_by_id(db: AsyncSession, session_id: UUID | str) -> AdminSession | None:
    """Get a session by ID."""
    sid = parse_uuid(session_id, "session_id")
    try:
        return await db.get(AdminSession, sid)
    except SQLAlchemyError as e:
        raise await rollback_and_translate(db, e, "find_by_id") from e


async def update_session(
    db: AsyncSession,
    session_id: UUID | str,
    updates: SessionUpdate | dict[str, Any],
) -> AdminSession:
    """
    Update a session's rotatable fields.

    Only ``token``, ``refresh_token``, ``expires_at``, ``ip_address`` and
    ``user_agent`` may change. Tokens are fingerprinted before writing.

    Raises:
        ValidationError: Bad id, unknown field, or nothing to update
        NotFoundError: No session with that id
    """
    sid = parse_uuid(session_id, "session_id")
    try:
        payload = (
            updates if isinstance(updates, SessionUpdate) else SessionUpdate.model_validate(updates)
        )
        changes = payload.model_dump(exclude_none=True)
        if "token" in changes:
            changes["token"] = hash_token(changes["token"])
        if "refresh_token" in changes:
            changes["refresh_token"] = hash_token(changes["refresh_token"])

        session = await db.get(AdminSession, sid)
        if session is None:
            raise NotFoundError("Session not found", error_code="SESSION_NOT_FOUND")

        for key, value in changes.items():
            setattr(session, key, value)

        await db.commit()
        await db.refresh(session)
    except (PydanticValidationError, SQLAlchemyError) as e:
        raise await rollback_and_translate(db, e, "update_session") from e

    logger.info(f"Updated session {sid} ({', '.join(sorted(changes))})")
    return session


async def delete_session(db: AsyncSession, session_id: UUID | str) -> bool:
    """
    Delete one session (logout).

    Returns:
        True if a session was deleted, False if it did not exist
    """
    sid = parse_uuid(session_id, "session_id")
    try:
        result = await db.execute(delete(AdminSession).where(AdminSession.id == sid))
        await db.commit()
    except SQLAlchemyError as e:
        raise await rollback_and_translate(db, e, "delete_session") from e

    deleted = (result.rowcount or 0) > 0
    if deleted:
        logger.info(f"Deleted session {sid}")
    return deleted


async def invalidate_all_sessions(
    db: AsyncSession,
    admin_id: UUID | str,
    except_session_id: UUID | str | None = None,
) -> int:
    """
    Delete every session belonging to one admin.

    Args:
        db: Database session
        admin_id: Admin whose sessions are removed; nobody else's are touched
        except_session_id: Optionally keep this one session alive

    Returns:
        Number of sessions deleted
    """
    aid = parse_uuid(admin_id, "admin_id")
    keep = parse_uuid(except_session_id, "except_session_id") if except_session_id else None

    stmt = delete(AdminSession).where(AdminSession.admin_id == aid)
    if keep is not None:
        stmt = stmt.where(AdminSession.id != keep)

    try:
        result = await db.execute(stmt)
        await db.commit()
    except SQLAlchemyError as e:
        raise await rollback_and_translate(db, e, "invalidate_all_sessions") from e

    count = result.rowcount or 0
    logger.info(f"Invalidated {count} session(s) for admin {aid}")
    return count


async def get_admin_sessions(
    db: AsyncSession,
    admin_id: UUID | str,
    include_expired: bool = False,
    now: datetime | None = None,
) -> dict[str, Any]:
    """
    List an admin's sessions with counts.

    Returns:
        ``{"sessions": [...], "total", "active", "expired"}``. Counts always
        cover every session; ``sessions`` omits expired ones unless
        ``include_expired`` is set.
    """
    aid = parse_uuid(admin_id, "admin_id")
    now = now or _utcnow()
    try:
        result = await db.execute(
            select(AdminSession)
            .where(AdminSession.admin_id == aid)
            .order_by(AdminSession.created_at.desc())
        )
        sessions = list(result.scalars().all())
    except SQLAlchemyError as e:
        raise await rollback_and_translate(db, e, "get_admin_sessions") from e

    active = [s for s in sessions if s.is_active_at(now)]
    return {
        "sessions": sessions if include_expired else active,
        "total": len(sessions),
        "active": len(active),
        "expired": len(sessions) - len(active),
    }


async def get_session_stats(db: AsyncSession, now: datetime | None = None) -> dict[str, int]:
    """Count sessions across all admins."""
    now = now or _utcnow()
    try:
        total = await db.scalar(select(func.count()).select_from(AdminSession)) or 0
        active = (
            await db.scalar(
                select(func.count()).select_from(AdminSession).where(AdminSession.expires_at > now)
            )
            or 0
        )
        admins = (
            await db.scalar(
                select(func.count(func.distinct(AdminSession.admin_id))).where(
                    AdminSession.expires_at > now
                )
            )
            or 0
        )
    except SQLAlchemyError as e:
        raise await rollback_and_translate(db, e, "get_session_stats") from e

    return {
        "total": total,
        "active": active,
        "expired": total - active,
        "admins_with_active_sessions": admins,
    }


async def is_session_valid(
    db: AsyncSession,
    session_id: UUID | str,
    now: datetime | None = None,
) -> bool:
    """
    True if the session exists and has not expired.

    Best-effort: lookup failures count as invalid.
    """
    try:
        session = await find_by_id(db, session_id)
    except AppError as e:
        logger.warning(f"Session validity check failed for {session_id}: {e.message}")
        return False

    return session is not None and session.is_active_at(now)


async def validate_session_ip(db: AsyncSession, session_id: UUID | str, ip_address: str) -> bool:
    """
    Check a request IP against the IP the session was created from.

    Best-effort: a session without a recorded IP allows any address; an
    unknown session or a failed lookup is denied.
    """
    try:
        session = await find_by_id(db, session_id)
    except AppError as e:
        logger.warning(f"Session IP check failed for {session_id}: {e.message}")
        return False

    if session is None:
        return False
    if not session.ip_address:
        return True

    allowed = session.ip_address == ip_address
    if not allowed:
        logger.warning(f"Session {session.id} used from a different IP address")
    return allowed


async def cleanup_expired_sessions(db: AsyncSession, now: datetime | None = None) -> int:
    """
    Delete exactly the sessions whose ``expires_at`` is before ``now``.

    Runs as a single DELETE so the predicate is evaluated once against one
    timestamp.

    Returns:
        Number of sessions deleted
    """
    try:
        sweep = SweepRequest(now=now or _utcnow())
        result = await db.execute(delete(AdminSession).where(AdminSession.expires_at < sweep.now))
        await db.commit()
    except (PydanticValidationError, SQLAlchemyError) as e:
        raise await rollback_and_translate(db, e, "cleanup_expired_sessions") from e

    count = result.rowcount or 0
    logger.info(f"Expired session sweep removed {count} session(s)")
    return count
