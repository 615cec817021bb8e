"""
Unit tests for the authentication service layer.

These tests cover:
- Login (credentials, deactivated accounts, session creation)
- Token refresh and rotation
- Logout and logout-all scoping
- Password change and reset
"""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest

from app.core.errors import (
    AuthenticationError,
    AuthorizationError,
    NotFoundError,
    ValidationError,
)
from app.core.security import create_refresh_token, decode_token
from app.modules.admins.models import AdminSession, PasswordReset
from app.modules.auth import service
from app.modules.auth.schemas import ChangePasswordRequest

SERVICE = "app.modules.auth.service"


@pytest.fixture
def mock_repos():
    """Patch the admin, session and password reset repositories."""
    with (
        patch(f"{SERVICE}.AdminRepository") as admin_repo,
        patch(f"{SERVICE}.session_repository") as session_repo,
        patch(f"{SERVICE}.password_reset_repository") as reset_repo,
        patch(f"{SERVICE}.enforce_rate_limit", new=AsyncMock()),
    ):
        admin_repo.get_by_email = AsyncMock(return_value=None)
        admin_repo.get_by_id = AsyncMock(return_value=None)
        admin_repo.update = AsyncMock()
        admin_repo.touch_last_login = AsyncMock()
        session_repo.create_session = AsyncMock()
        session_repo.find_by_refresh_token = AsyncMock(return_value=None)
        session_repo.find_by_id = AsyncMock(return_value=None)
        session_repo.update_session = AsyncMock()
        session_repo.delete_session = AsyncMock(return_value=True)
        session_repo.invalidate_all_sessions = AsyncMock(return_value=0)
        reset_repo.create_reset = AsyncMock()
        reset_repo.find_by_token = AsyncMock(return_value=None)
        reset_repo.record_attempt = AsyncMock(side_effect=lambda db, reset: reset)
        reset_repo.mark_used = AsyncMock()
        reset_repo.delete_for_admin = AsyncMock(return_value=0)
        yield admin_repo, session_repo, reset_repo


class TestLogin:
    """Tests for login."""

    @pytest.mark.asyncio
    async def test_login_success(self, mock_db, mock_repos, sample_admin, admin_password):
        admin_repo, session_repo, _ = mock_repos
        admin_repo.get_by_email.return_value = sample_admin

        result = await service.login(
            mock_db, " Jordan@Example.com ", admin_password, ip_address="10.0.0.1"
        )

        admin_repo.get_by_email.assert_awaited_once_with(mock_db, "jordan@example.com")
        assert decode_token(result.access_token, "access")["sub"] == str(sample_admin.id)
        assert decode_token(result.refresh_token, "refresh")["sub"] == str(sample_admin.id)
        assert result.admin.email == sample_admin.email

        session_data = session_repo.create_session.call_args.args[1]
        assert session_data["admin_id"] == sample_admin.id
        assert session_data["token"] == result.access_token
        assert session_data["ip_address"] == "10.0.0.1"
        admin_repo.touch_last_login.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unknown_email_and_wrong_password_look_the_same(
        self, mock_db, mock_repos, sample_admin
    ):
        admin_repo, session_repo, _ = mock_repos

        with pytest.raises(AuthenticationError) as unknown:
            await service.login(mock_db, "nobody@example.com", "whatever")

        admin_repo.get_by_email.return_value = sample_admin
        with pytest.raises(AuthenticationError) as wrong:
            await service.login(mock_db, sample_admin.email, "wrong-password")

        assert unknown.value.error_code == wrong.value.error_code == "INVALID_CREDENTIALS"
        assert unknown.value.message == wrong.value.message
        session_repo.create_session.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_deactivated_admin_rejected(
        self, mock_db, mock_repos, sample_admin, admin_password
    ):
        admin_repo, session_repo, _ = mock_repos
        sample_admin.is_active = False
        admin_repo.get_by_email.return_value = sample_admin

        with pytest.raises(AuthorizationError) as exc_info:
            await service.login(mock_db, sample_admin.email, admin_password)

        assert exc_info.value.error_code == "ACCOUNT_INACTIVE"
        session_repo.create_session.assert_not_awaited()


class TestRefresh:
    """Tests for refresh."""

    @pytest.mark.asyncio
    async def test_refresh_rotates_tokens(self, mock_db, mock_repos, sample_admin, sample_session):
        admin_repo, session_repo, _ = mock_repos
        old_refresh = create_refresh_token(str(sample_admin.id))
        session_repo.find_by_refresh_token.return_value = sample_session
        admin_repo.get_by_id.return_value = sample_admin

        result = await service.refresh(mock_db, old_refresh)

        assert result.refresh_token != old_refresh
        session_id, updates = session_repo.update_session.call_args.args[1:]
        assert session_id == sample_session.id
        assert updates["token"] == result.access_token
        assert updates["refresh_token"] == result.refresh_token

    @pytest.mark.asyncio
    async def test_invalid_refresh_token(self, mock_db, mock_repos):
        _, session_repo, _ = mock_repos
        with pytest.raises(AuthenticationError) as exc_info:
            await service.refresh(mock_db, "garbage")
        assert exc_info.value.error_code == "INVALID_REFRESH_TOKEN"
        session_repo.find_by_refresh_token.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_revoked_session(self, mock_db, mock_repos, sample_admin):
        with pytest.raises(AuthenticationError) as exc_info:
            await service.refresh(mock_db, create_refresh_token(str(sample_admin.id)))
        assert exc_info.value.error_code == "SESSION_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_expired_session_is_deleted(
        self, mock_db, mock_repos, sample_admin, sample_session
    ):
        _, session_repo, _ = mock_repos
        sample_session.expires_at = datetime.now(UTC) - timedelta(minutes=1)
        session_repo.find_by_refresh_token.return_value = sample_session

        with pytest.raises(AuthenticationError) as exc_info:
            await service.refresh(mock_db, create_refresh_token(str(sample_admin.id)))

        assert exc_info.value.error_code == "SESSION_EXPIRED"
        session_repo.delete_session.assert_awaited_once_with(mock_db, sample_session.id)
        session_repo.update_session.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_rotation_records_new_ip_when_not_enforced(
        self, mock_db, mock_repos, sample_admin, sample_session
    ):
        admin_repo, session_repo, _ = mock_repos
        session_repo.find_by_refresh_token.return_value = sample_session
        admin_repo.get_by_id.return_value = sample_admin

        with patch.object(service.settings, "enforce_session_ip", False):
            await service.refresh(
                mock_db, create_refresh_token(str(sample_admin.id)), ip_address="10.0.0.9"
            )

        updates = session_repo.update_session.call_args.args[2]
        assert updates["ip_address"] == "10.0.0.9"

    @pytest.mark.asyncio
    async def test_enforced_ip_keeps_recorded_address(
        self, mock_db, mock_repos, sample_admin, sample_session
    ):
        admin_repo, session_repo, _ = mock_repos
        session_repo.find_by_refresh_token.return_value = sample_session
        session_repo.validate_session_ip = AsyncMock(return_value=True)
        admin_repo.get_by_id.return_value = sample_admin

        with patch.object(service.settings, "enforce_session_ip", True):
            await service.refresh(
                mock_db, create_refresh_token(str(sample_admin.id)), ip_address="10.0.0.1"
            )

        session_repo.validate_session_ip.assert_awaited_once_with(
            mock_db, sample_session.id, "10.0.0.1"
        )
        assert "ip_address" not in session_repo.update_session.call_args.args[2]

    @pytest.mark.asyncio
    async def test_enforced_ip_rejects_other_address(
        self, mock_db, mock_repos, sample_admin, sample_session
    ):
        admin_repo, session_repo, _ = mock_repos
        session_repo.find_by_refresh_token.return_value = sample_session
        session_repo.validate_session_ip = AsyncMock(return_value=False)
        admin_repo.get_by_id.return_value = sample_admin

        with patch.object(service.settings, "enforce_session_ip", True):
            with pytest.raises(AuthenticationError) as exc_info:
                await service.refresh(
                    mock_db, create_refresh_token(str(sample_admin.id)), ip_address="192.0.2.7"
                )

        assert exc_info.value.error_code == "SESSION_IP_MISMATCH"
        session_repo.update_session.assert_not_awaited()


class TestLogout:
    """Tests for logout and logout-all."""

    @pytest.mark.asyncio
    async def test_logout_deletes_current_session(self, mock_db, mock_repos, current_admin):
        _, session_repo, _ = mock_repos
        await service.logout(mock_db, current_admin)
        session_repo.delete_session.assert_awaited_once_with(mock_db, current_admin.session.id)

    @pytest.mark.asyncio
    async def test_logout_all_is_scoped_to_admin(self, mock_db, mock_repos, current_admin):
        _, session_repo, _ = mock_repos
        session_repo.invalidate_all_sessions.return_value = 3

        revoked = await service.logout_all(mock_db, current_admin)

        assert revoked == 3
        session_repo.invalidate_all_sessions.assert_awaited_once_with(mock_db, current_admin.id)


class TestSessions:
    """Tests for listing and revoking sessions."""

    @pytest.mark.asyncio
    async def test_list_marks_current_session(self, mock_db, mock_repos, current_admin):
        _, session_repo, _ = mock_repos
        now = datetime.now(UTC)
        other = AdminSession(
            id=uuid4(),
            admin_id=current_admin.id,
            expires_at=now + timedelta(days=1),
            created_at=now,
            updated_at=now,
        )
        session_repo.get_admin_sessions = AsyncMock(
            return_value={
                "sessions": [current_admin.session, other],
                "total": 2,
                "active": 2,
                "expired": 0,
            }
        )

        result = await service.list_sessions(mock_db, current_admin)

        assert [s.is_current for s in result.sessions] == [True, False]
        assert all(s.is_active for s in result.sessions)

    @pytest.mark.asyncio
    async def test_cannot_revoke_another_admins_session(
        self, mock_db, mock_repos, current_admin
    ):
        _, session_repo, _ = mock_repos
        session_repo.find_by_id.return_value = AdminSession(id=uuid4(), admin_id=uuid4())

        with pytest.raises(NotFoundError):
            await service.revoke_session(mock_db, current_admin, uuid4())
        session_repo.delete_session.assert_not_awaited()


class TestChangePassword:
    """Tests for change_password."""

    @pytest.mark.asyncio
    async def test_wrong_current_password(self, mock_db, mock_repos, current_admin):
        admin_repo, _, _ = mock_repos
        body = ChangePasswordRequest(current_password="not-it", new_password="An0ther-Passw0rd")

        with pytest.raises(ValidationError) as exc_info:
            await service.change_password(mock_db, current_admin, body)

        assert exc_info.value.error_code == "INVALID_CURRENT_PASSWORD"
        admin_repo.update.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_revokes_other_sessions(
        self, mock_db, mock_repos, current_admin, admin_password
    ):
        admin_repo, session_repo, reset_repo = mock_repos
        session_repo.invalidate_all_sessions.return_value = 2
        body = ChangePasswordRequest(
            current_password=admin_password, new_password="An0ther-Passw0rd"
        )

        revoked = await service.change_password(mock_db, current_admin, body)

        assert revoked == 2
        admin_repo.update.assert_awaited_once()
        reset_repo.delete_for_admin.assert_awaited_once_with(mock_db, current_admin.id)
        session_repo.invalidate_all_sessions.assert_awaited_once_with(
            mock_db, current_admin.id, except_session_id=current_admin.session.id
        )


class TestPasswordReset:
    """Tests for request_password_reset and reset_password."""

    @pytest.fixture
    def reset(self, sample_admin):
        return PasswordReset(
            id=uuid4(),
            admin_id=sample_admin.id,
            email=sample_admin.email,
            token="f" * 64,
            expires_at=datetime.now(UTC) + timedelta(minutes=30),
            is_used=False,
            attempts=0,
        )

    @pytest.mark.asyncio
    async def test_unknown_email_is_silent(self, mock_db, mock_repos):
        _, _, reset_repo = mock_repos
        with patch(f"{SERVICE}.send_password_reset", new=AsyncMock()) as send:
            await service.request_password_reset(mock_db, "nobody@example.com")
        reset_repo.create_reset.assert_not_awaited()
        send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_known_email_sends_link(self, mock_db, mock_repos, sample_admin):
        admin_repo, _, reset_repo = mock_repos
        admin_repo.get_by_email.return_value = sample_admin
        with patch(f"{SERVICE}.send_password_reset", new=AsyncMock(return_value=True)) as send:
            await service.request_password_reset(mock_db, sample_admin.email)

        reset_data = reset_repo.create_reset.call_args.args[1]
        assert reset_data["admin_id"] == sample_admin.id
        assert send.call_args.kwargs["token"] == reset_data["token"]

    @pytest.mark.asyncio
    async def test_unknown_token(self, mock_db, mock_repos):
        with pytest.raises(ValidationError) as exc_info:
            await service.reset_password(mock_db, "nope", "N3w-Passw0rd")
        assert exc_info.value.error_code == "INVALID_RESET_TOKEN"

    @pytest.mark.asyncio
    async def test_locked_token(self, mock_db, mock_repos, reset):
        _, _, reset_repo = mock_repos
        reset.attempts = 5
        reset_repo.find_by_token.return_value = reset

        with pytest.raises(ValidationError) as exc_info:
            await service.reset_password(mock_db, "raw", "N3w-Passw0rd")

        assert exc_info.value.error_code == "RESET_TOKEN_LOCKED"
        reset_repo.record_attempt.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_used_token(self, mock_db, mock_repos, reset):
        _, _, reset_repo = mock_repos
        reset.is_used = True
        reset_repo.find_by_token.return_value = reset

        with pytest.raises(ValidationError) as exc_info:
            await service.reset_password(mock_db, "raw", "N3w-Passw0rd")
        assert exc_info.value.error_code == "RESET_TOKEN_USED"

    @pytest.mark.asyncio
    async def test_expired_token(self, mock_db, mock_repos, reset):
        _, _, reset_repo = mock_repos
        reset.expires_at = datetime.now(UTC) - timedelta(seconds=1)
        reset_repo.find_by_token.return_value = reset

        with pytest.raises(ValidationError) as exc_info:
            await service.reset_password(mock_db, "raw", "N3w-Passw0rd")
        assert exc_info.value.error_code == "RESET_TOKEN_EXPIRED"

    @pytest.mark.asyncio
    async def test_success_revokes_every_session(self, mock_db, mock_repos, reset, sample_admin):
        admin_repo, session_repo, reset_repo = mock_repos
        reset_repo.find_by_token.return_value = reset
        admin_repo.get_by_id.return_value = sample_admin
        session_repo.invalidate_all_sessions.return_value = 4

        revoked = await service.reset_password(mock_db, "raw", "N3w-Passw0rd")

        assert revoked == 4
        reset_repo.mark_used.assert_awaited_once_with(mock_db, reset)
        session_repo.invalidate_all_sessions.assert_awaited_once_with(mock_db, sample_admin.id)
