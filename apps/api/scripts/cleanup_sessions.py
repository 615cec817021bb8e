"""
Cleanup Sessions

One-off run of the expired-session and password-reset sweeps, for
environments where the in-process scheduler is disabled (e.g. a cron job).

Usage:
    cd apps/api
    python scripts/cleanup_sessions.py
"""

import asyncio
import sys
from pathlib import Path

# Add the src directory to the path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from app.core.database import close_db
from app.core.logging_config import configure_logging
from app.modules.auth.jobs import cleanup_expired_sessions_job, cleanup_password_resets_job


async def main() -> None:
    configure_logging()
    try:
        sessions = await cleanup_expired_sessions_job()
        resets = await cleanup_password_resets_job()
    finally:
        await close_db()

    print(f"Expired sessions deleted: {sessions['deleted']}")
    print(f"Password resets deleted: {resets['deleted']}")


if __name__ == "__main__":
    asyncio.run(main())
