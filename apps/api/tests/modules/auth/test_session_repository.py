"""
Unit tests for the admin session repository.

These tests cover:
- The computed validity predicate
- Input validation before any database call
- Token fingerprinting on write and lookup
- Scoping of logout-all and the expired-session sweep
"""

from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock
from uuid import uuid4

import pytest
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import IntegrityError

from app.core.errors import ConflictError, NotFoundError, ValidationError
from app.core.security import hash_token
from app.modules.admins.models import AdminSession
from app.modules.auth import session_repository


def _compiled(mock_db):
    """The statement passed to the last db.execute call, compiled for PostgreSQL."""
    stmt = mock_db.execute.call_args.args[0]
    return stmt.compile(dialect=postgresql.dialect())


def _result(rowcount=0, scalars=None, one=None):
    result = MagicMock()
    result.rowcount = rowcount
    result.scalars.return_value.all.return_value = scalars or []
    result.scalar_one_or_none.return_value = one
    return result


def _session_data(admin_id, **overrides):
    data = {
        "admin_id": admin_id,
        "token": "raw-access",
        "refresh_token": "raw-refresh",
        "expires_at": datetime.now(UTC) + timedelta(days=7),
        "ip_address": "10.0.0.1",
        "user_agent": "pytest",
    }
    data.update(overrides)
    return data


class TestSessionValidity:
    """Tests for AdminSession.is_active_at."""

    def test_valid_before_expiry(self):
        expires = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)
        session = AdminSession(expires_at=expires)
        assert session.is_active_at(expires - timedelta(seconds=1))

    def test_invalid_after_expiry(self):
        expires = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)
        session = AdminSession(expires_at=expires)
        assert not session.is_active_at(expires + timedelta(seconds=1))

    def test_invalid_exactly_at_expiry(self):
        expires = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)
        session = AdminSession(expires_at=expires)
        assert not session.is_active_at(expires)


class TestCreateSession:
    """Tests for create_session."""

    @pytest.mark.asyncio
    async def test_stores_token_fingerprints(self, mock_db):
        admin_id = uuid4()
        session = await session_repository.create_session(mock_db, _session_data(admin_id))

        added = mock_db.add.call_args.args[0]
        assert added is session
        assert session.admin_id == admin_id
        assert session.token == hash_token("raw-access")
        assert session.refresh_token == hash_token("raw-refresh")
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_naive_expiry_rejected_before_write(self, mock_db):
        data = _session_data(uuid4(), expires_at=datetime(2030, 1, 1))
        with pytest.raises(ValidationError):
            await session_repository.create_session(mock_db, data)
        mock_db.add.assert_not_called()
        mock_db.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_bad_admin_id_rejected_before_write(self, mock_db):
        with pytest.raises(ValidationError):
            await session_repository.create_session(mock_db, _session_data("not-a-uuid"))
        mock_db.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_token_rejected(self, mock_db):
        with pytest.raises(ValidationError):
            await session_repository.create_session(mock_db, _session_data(uuid4(), token=""))
        mock_db.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_field_rejected(self, mock_db):
        with pytest.raises(ValidationError):
            await session_repository.create_session(
                mock_db, _session_data(uuid4(), is_revoked=True)
            )
        mock_db.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_duplicate_token_becomes_conflict(self, mock_db):
        mock_db.commit.side_effect = IntegrityError(
            "INSERT", {}, Exception("duplicate key value violates unique constraint")
        )
        with pytest.raises(ConflictError):
            await session_repository.create_session(mock_db, _session_data(uuid4()))
        mock_db.rollback.assert_awaited_once()


class TestFindByToken:
    """Tests for access / refresh token lookup."""

    @pytest.mark.asyncio
    async def test_looks_up_by_fingerprint(self, mock_db, sample_session):
        mock_db.execute.return_value = _result(one=sample_session)

        found = await session_repository.find_by_access_token(mock_db, "raw-access")

        assert found is sample_session
        assert hash_token("raw-access") in _compiled(mock_db).params.values()

    @pytest.mark.asyncio
    async def test_refresh_lookup_uses_refresh_column(self, mock_db):
        mock_db.execute.return_value = _result(one=None)

        assert await session_repository.find_by_refresh_token(mock_db, "raw-refresh") is None
        assert "admin_sessions.refresh_token =" in str(_compiled(mock_db))

    @pytest.mark.asyncio
    async def test_empty_token_rejected_before_query(self, mock_db):
        with pytest.raises(ValidationError):
            await session_repository.find_by_access_token(mock_db, "")
        mock_db.execute.assert_not_awaited()


class TestUpdateSession:
    """Tests for update_session."""

    @pytest.mark.asyncio
    async def test_empty_update_rejected(self, mock_db):
        with pytest.raises(ValidationError):
            await session_repository.update_session(mock_db, uuid4(), {})
        mock_db.get.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_all_null_update_rejected(self, mock_db):
        with pytest.raises(ValidationError):
            await session_repository.update_session(mock_db, uuid4(), {"token": None})
        mock_db.get.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_field_rejected(self, mock_db):
        with pytest.raises(ValidationError):
            await session_repository.update_session(mock_db, uuid4(), {"admin_id": str(uuid4())})
        mock_db.get.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_bad_session_id_rejected(self, mock_db):
        with pytest.raises(ValidationError):
            await session_repository.update_session(mock_db, "nope", {"ip_address": "1.1.1.1"})
        mock_db.get.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_session_is_not_found(self, mock_db):
        mock_db.get.return_value = None
        with pytest.raises(NotFoundError):
            await session_repository.update_session(mock_db, uuid4(), {"ip_address": "1.1.1.1"})
        mock_db.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_rotation_writes_fingerprints(self, mock_db, sample_session):
        mock_db.get.return_value = sample_session
        new_expiry = datetime.now(UTC) + timedelta(days=7)

        await session_repository.update_session(
            mock_db,
            sample_session.id,
            {"token": "new-access", "refresh_token": "new-refresh", "expires_at": new_expiry},
        )

        assert sample_session.token == hash_token("new-access")
        assert sample_session.refresh_token == hash_token("new-refresh")
        assert sample_session.expires_at == new_expiry
        mock_db.commit.assert_awaited_once()


class TestDeleteSession:
    """Tests for delete_session."""

    @pytest.mark.asyncio
    async def test_returns_true_when_deleted(self, mock_db):
        mock_db.execute.return_value = _result(rowcount=1)
        assert await session_repository.delete_session(mock_db, uuid4()) is True

    @pytest.mark.asyncio
    async def test_returns_false_when_missing(self, mock_db):
        mock_db.execute.return_value = _result(rowcount=0)
        assert await session_repository.delete_session(mock_db, uuid4()) is False


class TestInvalidateAllSessions:
    """Tests for logout-all scoping."""

    @pytest.mark.asyncio
    async def test_deletes_only_that_admins_sessions(self, mock_db):
        admin_id = uuid4()
        mock_db.execute.return_value = _result(rowcount=3)

        count = await session_repository.invalidate_all_sessions(mock_db, admin_id)

        compiled = _compiled(mock_db)
        sql = str(compiled)
        assert sql.startswith("DELETE FROM admin_sessions")
        assert "admin_sessions.admin_id =" in sql
        assert list(compiled.params.values()) == [admin_id]
        assert count == 3

    @pytest.mark.asyncio
    async def test_can_keep_current_session(self, mock_db):
        admin_id, keep = uuid4(), uuid4()
        mock_db.execute.return_value = _result(rowcount=2)

        await session_repository.invalidate_all_sessions(mock_db, admin_id, except_session_id=keep)

        compiled = _compiled(mock_db)
        assert "admin_sessions.id !=" in str(compiled)
        assert set(compiled.params.values()) == {admin_id, keep}

    @pytest.mark.asyncio
    async def test_bad_admin_id_rejected_before_query(self, mock_db):
        with pytest.raises(ValidationError):
            await session_repository.invalidate_all_sessions(mock_db, "not-a-uuid")
        mock_db.execute.assert_not_awaited()


class TestGetAdminSessions:
    """Tests for get_admin_sessions."""

    @pytest.mark.asyncio
    async def test_counts_active_and_expired(self, mock_db):
        now = datetime.now(UTC)
        active = AdminSession(id=uuid4(), expires_at=now + timedelta(hours=1))
        expired = AdminSession(id=uuid4(), expires_at=now - timedelta(hours=1))
        mock_db.execute.return_value = _result(scalars=[active, expired])

        listing = await session_repository.get_admin_sessions(mock_db, uuid4(), now=now)

        assert listing["sessions"] == [active]
        assert (listing["total"], listing["active"], listing["expired"]) == (2, 1, 1)

    @pytest.mark.asyncio
    async def test_include_expired(self, mock_db):
        now = datetime.now(UTC)
        expired = AdminSession(id=uuid4(), expires_at=now - timedelta(hours=1))
        mock_db.execute.return_value = _result(scalars=[expired])

        listing = await session_repository.get_admin_sessions(
            mock_db, uuid4(), include_expired=True, now=now
        )

        assert listing["sessions"] == [expired]


class TestBestEffortChecks:
    """Tests for is_session_valid and validate_session_ip."""

    @pytest.mark.asyncio
    async def test_active_session_is_valid(self, mock_db, sample_session):
        mock_db.get.return_value = sample_session
        assert await session_repository.is_session_valid(mock_db, sample_session.id)

    @pytest.mark.asyncio
    async def test_expired_session_is_invalid(self, mock_db, sample_session):
        sample_session.expires_at = datetime.now(UTC) - timedelta(seconds=1)
        mock_db.get.return_value = sample_session
        assert not await session_repository.is_session_valid(mock_db, sample_session.id)

    @pytest.mark.asyncio
    async def test_bad_id_is_invalid_not_an_error(self, mock_db):
        assert await session_repository.is_session_valid(mock_db, "garbage") is False

    @pytest.mark.asyncio
    async def test_matching_ip_allowed(self, mock_db, sample_session):
        mock_db.get.return_value = sample_session
        assert await session_repository.validate_session_ip(mock_db, sample_session.id, "10.0.0.1")

    @pytest.mark.asyncio
    async def test_different_ip_denied(self, mock_db, sample_session):
        mock_db.get.return_value = sample_session
        assert not await session_repository.validate_session_ip(
            mock_db, sample_session.id, "10.9.9.9"
        )

    @pytest.mark.asyncio
    async def test_no_stored_ip_allows_any(self, mock_db, sample_session):
        sample_session.ip_address = None
        mock_db.get.return_value = sample_session
        assert await session_repository.validate_session_ip(mock_db, sample_session.id, "1.2.3.4")

    @pytest.mark.asyncio
    async def test_unknown_session_denied(self, mock_db):
        mock_db.get.return_value = None
        assert not await session_repository.validate_session_ip(mock_db, uuid4(), "1.2.3.4")


class TestCleanupExpiredSessions:
    """Tests for the expired-session sweep."""

    @pytest.mark.asyncio
    async def test_single_delete_with_strict_cutoff(self, mock_db):
        now = datetime(2026, 3, 1, 8, 30, tzinfo=UTC)
        mock_db.execute.return_value = _result(rowcount=4)

        deleted = await session_repository.cleanup_expired_sessions(mock_db, now)

        mock_db.execute.assert_awaited_once()
        compiled = _compiled(mock_db)
        sql = str(compiled)
        assert sql.startswith("DELETE FROM admin_sessions")
        assert "admin_sessions.expires_at <" in sql
        assert "<=" not in sql
        assert list(compiled.params.values()) == [now]
        assert deleted == 4

    @pytest.mark.asyncio
    async def test_naive_cutoff_rejected(self, mock_db):
        with pytest.raises(ValidationError):
            await session_repository.cleanup_expired_sessions(mock_db, datetime(2026, 3, 1))
        mock_db.execute.assert_not_awaited()
