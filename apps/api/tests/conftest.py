"""
Shared test fixtures.

Environment overrides are applied before any ``app`` import so the
settings singleton picks them up.
"""

import os

os.environ.setdefault("PYTHON_ENV", "test")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("RESEND_API_KEY", "")

from datetime import UTC, datetime, timedelta  # noqa: E402
from unittest.mock import AsyncMock, MagicMock  # noqa: E402
from uuid import uuid4  # noqa: E402

import pytest  # noqa: E402

from app.core.auth import AuthenticatedAdmin  # noqa: E402
from app.core.security import hash_password  # noqa: E402
from app.modules.admins.models import Admin, AdminRole, AdminSession  # noqa: E402


@pytest.fixture
def mock_db():
    """Create a mock database session."""
    db = AsyncMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.refresh = AsyncMock()
    db.get = AsyncMock()
    db.execute = AsyncMock()
    db.scalar = AsyncMock()
    db.add = MagicMock()
    db.add_all = MagicMock()
    return db


@pytest.fixture
def admin_password():
    return "Str0ng-Passw0rd"


@pytest.fixture
def sample_admin(admin_password):
    """An active admin-role account."""
    now = datetime.now(UTC)
    return Admin(
        id=uuid4(),
        email="jordan@example.com",
        password_hash=hash_password(admin_password),
        name="Jordan Admin",
        phone=None,
        role=AdminRole.ADMIN,
        is_active=True,
        last_login_at=None,
        created_at=now,
        updated_at=now,
    )


@pytest.fixture
def sample_session(sample_admin):
    """An active session of ``sample_admin`` created from 10.0.0.1."""
    now = datetime.now(UTC)
    return AdminSession(
        id=uuid4(),
        admin_id=sample_admin.id,
        token="a" * 64,
        refresh_token="b" * 64,
        expires_at=now + timedelta(days=7),
        ip_address="10.0.0.1",
        user_agent="pytest",
        created_at=now,
        updated_at=now,
    )


@pytest.fixture
def current_admin(sample_admin, sample_session):
    """The authenticated-request context for ``sample_admin``."""
    return AuthenticatedAdmin(admin=sample_admin, session=sample_session, token="raw-access-token")
