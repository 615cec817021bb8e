"""
Admin Repository

Database operations for admin accounts.
"""

import logging
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import LIKE_ESCAPE, contains_pattern
from app.core.errors import rollback_and_translate
from app.modules.admins.models import Admin, AdminRole

logger = logging.getLogger(__name__)

# Columns an update may touch; anything else is ignored
UPDATABLE_FIELDS = frozenset({"name", "phone", "email", "role", "is_active", "password_hash"})


class AdminRepository:
    """Repository for admin database operations."""

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        email: str,
        password_hash: str,
        name: str,
        role: AdminRole = AdminRole.VIEWER,
        phone: str | None = None,
        is_active: bool = True,
    ) -> Admin:
        """
        Create a new admin record.

        Args:
            db: Database session
            email: Admin's email address (unique, already normalised)
            password_hash: bcrypt hash of the password
            name: Display name
            role: Admin role
            phone: Phone number (optional)
            is_active: Whether the account can log in

        Returns:
            Created Admin instance
        """
        admin = Admin(
            email=email,
            password_hash=password_hash,
            name=name,
            role=role,
            phone=phone,
            is_active=is_active,
        )

        db.add(admin)
        await db.commit()
        await db.refresh(admin)

        logger.info(f"Created admin: {admin.id} ({admin.role.value})")
        return admin

    @staticmethod
    async def get_by_id(db: AsyncSession, admin_id: UUID) -> Admin | None:
        """Get an admin by ID."""
        return await db.get(Admin, admin_id)

    @staticmethod
    async def get_by_email(db: AsyncSession, email: str) -> Admin | None:
        """
        Get an admin by email address (case-insensitive).

        Args:
            db: Database session
            email: Email address

        Returns:
            Admin instance or None if not found
        """
        result = await db.execute(select(Admin).where(func.lower(Admin.email) == email.lower()))
        return result.scalar_one_or_none()

    @staticmethod
    async def email_exists(db: AsyncSession, email: str) -> bool:
        """Check if an email address is already registered."""
        admin = await AdminRepository.get_by_email(db, email)
        return admin is not None

    @staticmethod
    async def list_admins(
        db: AsyncSession,
        *,
        role: AdminRole | None = None,
        is_active: bool | None = None,
        search: str | None = None,
    ) -> list[Admin]:
        """
        List admins, newest first.

        Args:
            db: Database session
            role: Only admins with this role
            is_active: Only active (True) or deactivated (False) admins
            search: Case-insensitive substring of name or email

        Returns:
            Matching admins
        """
        query = select(Admin)
        if role is not None:
            query = query.where(Admin.role == role)
        if is_active is not None:
            query = query.where(Admin.is_active == is_active)
        if search:
            pattern = contains_pattern(search.strip())
            query = query.where(
                or_(
                    Admin.name.ilike(pattern, escape=LIKE_ESCAPE),
                    Admin.email.ilike(pattern, escape=LIKE_ESCAPE),
                )
            )

        result = await db.execute(query.order_by(Admin.created_at.desc()))
        return list(result.scalars().all())

    @staticmethod
    async def update(db: AsyncSession, admin: Admin, **fields: Any) -> Admin:
        """
        Apply field updates to an admin and commit.

        Only keys in ``UPDATABLE_FIELDS`` are applied.
        """
        for key, value in fields.items():
            if key in UPDATABLE_FIELDS:
                setattr(admin, key, value)

        try:
            await db.commit()
            await db.refresh(admin)
        except SQLAlchemyError as e:
            raise await rollback_and_translate(db, e, "update_admin") from e
        return admin

    @staticmethod
    async def touch_last_login(db: AsyncSession, admin: Admin) -> None:
        """Stamp ``last_login_at`` with the current time."""
        admin.last_login_at = datetime.now(UTC)
        await db.commit()

    @staticmethod
    async def get_stats(db: AsyncSession) -> dict[str, Any]:
        """
        Count admins overall, active, and per role.

        Returns:
            ``{"total", "active", "inactive", "by_role": {role: count}}``
        """
        total = await db.scalar(select(func.count()).select_from(Admin)) or 0
        active = (
            await db.scalar(
                select(func.count()).select_from(Admin).where(Admin.is_active.is_(True))
            )
            or 0
        )
        rows = await db.execute(select(Admin.role, func.count()).group_by(Admin.role))
        by_role = {role.value: 0 for role in AdminRole}
        for role, count in rows.all():
            by_role[role.value] = count

        return {
            "total": total,
            "active": active,
            "inactive": total - active,
            "by_role": by_role,
        }
