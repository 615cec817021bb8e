"""
Authentication Background Jobs

Scheduled sweeps:
1. Delete admin sessions whose expiry has passed
2. Delete password resets that are used or expired

Both run every SESSION_CLEANUP_INTERVAL_MINUTES and can be triggered
manually through the debug job endpoints.
"""

import logging
from datetime import UTC, datetime
from typing import Any

from apscheduler.triggers.interval import IntervalTrigger

from app.core.config import settings
from app.core.database import async_session_maker
from app.core.scheduler import register_job
from app.modules.auth import password_reset_repository, session_repository

logger = logging.getLogger(__name__)

JOB_ID_CLEANUP_SESSIONS = "auth_cleanup_expired_sessions"
JOB_ID_CLEANUP_RESETS = "auth_cleanup_password_resets"


async def cleanup_expired_sessions_job() -> dict[str, Any]:
    """Delete every session that expired before now."""
    now = datetime.now(UTC)
    async with async_session_maker() as db:
        deleted = await session_repository.cleanup_expired_sessions(db, now)

    return {"deleted": deleted, "cutoff": now.isoformat()}


async def cleanup_password_resets_job() -> dict[str, Any]:
    """Delete used and expired password reset tokens."""
    now = datetime.now(UTC)
    async with async_session_maker() as db:
        deleted = await password_reset_repository.cleanup_stale_resets(db, now)

    return {"deleted": deleted, "cutoff": now.isoformat()}


def register_auth_jobs() -> None:
    """Register the auth sweeps with the scheduler."""
    minutes = settings.session_cleanup_interval_minutes

    register_job(
        JOB_ID_CLEANUP_SESSIONS,
        cleanup_expired_sessions_job,
        IntervalTrigger(minutes=minutes),
    )
    register_job(
        JOB_ID_CLEANUP_RESETS,
        cleanup_password_resets_job,
        IntervalTrigger(minutes=minutes),
    )

    logger.info(f"Registered auth cleanup jobs (every {minutes} min)")
