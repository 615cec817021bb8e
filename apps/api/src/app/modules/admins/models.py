"""
Admin Models

Database models for admin accounts, login sessions and password resets.

Sessions and reset tokens never store the raw token: ``token`` and
``refresh_token`` hold SHA-256 fingerprints (see ``app.core.security.hash_token``).
"""

import enum
import uuid
from datetime import UTC, datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base
from app.modules.shared import BaseModel


class AdminRole(str, enum.Enum):
    """Admin roles, lowest privilege first."""

    VIEWER = "viewer"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"

    @property
    def rank(self) -> int:
        return ROLE_RANK[self]

    def at_least(self, required: "AdminRole") -> bool:
        """True when this role meets or exceeds ``required``."""
        return self.rank >= required.rank


ROLE_RANK: dict[AdminRole, int] = {
    AdminRole.VIEWER: 1,
    AdminRole.ADMIN: 2,
    AdminRole.SUPER_ADMIN: 3,
}


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    return [member.value for member in enum_cls]


class Admin(BaseModel):
    """
    Admin account.

    Admins are created by a super-admin (or the seed script) and are only
    ever deactivated, never hard-deleted.
    """

    __tablename__ = "admins"

    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(20), nullable=True)
    role: Mapped[AdminRole] = mapped_column(
        Enum(AdminRole, name="admin_role", values_callable=_enum_values),
        nullable=False,
        default=AdminRole.VIEWER,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    sessions: Mapped[list["AdminSession"]] = relationship(
        "AdminSession",
        back_populates="admin",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<Admin(id={self.id}, email={self.email}, role={self.role.value})>"


class AdminSession(BaseModel):
    """
    A login session.

    ``expires_at`` is the refresh-token lifetime. A session is active while
    ``expires_at`` is in the future; there is no stored status.
    """

    __tablename__ = "admin_sessions"

    admin_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("admins.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    token: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    refresh_token: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)

    admin: Mapped["Admin"] = relationship("Admin", back_populates="sessions")

    __table_args__ = (Index("ix_admin_sessions_expires_at", "expires_at"),)

    def is_active_at(self, now: datetime | None = None) -> bool:
        """Validity predicate: strictly before ``expires_at``."""
        now = now or datetime.now(UTC)
        return self.expires_at > now

    def __repr__(self) -> str:
        return f"<AdminSession(id={self.id}, admin_id={self.admin_id})>"


class PasswordReset(Base):
    """Single-use, time-limited password reset token."""

    __tablename__ = "password_resets"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    admin_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("admins.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    token: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    is_used: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    used_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    attempts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return f"<PasswordReset(id={self.id}, admin_id={self.admin_id}, used={self.is_used})>"
