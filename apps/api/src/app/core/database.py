"""
Database Configuration

Async SQLAlchemy engine, session factory and the declarative base shared by
every model in the application.
"""

import logging
from collections.abc import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from app.core.config import settings

logger = logging.getLogger(__name__)

engine = create_async_engine(
    settings.database_url,
    echo=settings.database_echo,
    pool_pre_ping=True,
)

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""


LIKE_ESCAPE = "\\"


def contains_pattern(search: str) -> str:
    """
    Build an ILIKE substring pattern that matches ``search`` literally.

    ``%``, ``_`` and the escape character are escaped; pass
    ``escape=LIKE_ESCAPE`` to ``ilike``.
    """
    escaped = (
        search.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", f"{LIKE_ESCAPE}%")
        .replace("_", f"{LIKE_ESCAPE}_")
    )
    return f"%{escaped}%"


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency yielding a database session.

    Repositories commit their own writes; anything left pending when a
    request fails is rolled back here.
    """
    async with async_session_maker() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """
    Verify the database is reachable.

    Call this on application startup. The schema itself is managed by Alembic.
    """
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))


async def check_db_health() -> bool:
    """Return True when a trivial query succeeds."""
    try:
        async with async_session_maker() as session:
            await session.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return False


async def close_db() -> None:
    """Dispose of the engine's connection pool."""
    await engine.dispose()
