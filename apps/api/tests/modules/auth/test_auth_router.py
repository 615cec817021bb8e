"""
HTTP tests for the admin authentication endpoints.
"""

from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient
from pydantic import ValidationError

from app.core.auth import get_current_admin
from app.core.database import get_db
from app.core.errors import AuthenticationError
from app.core.rate_limit import reset_memory_store
from app.core.security import create_access_token
from app.main import app
from app.modules.admins.schemas import AdminResponse
from app.modules.auth.schemas import LoginResponse, ProfileUpdate

ROUTER_SERVICE = "app.modules.auth.router.service"


@pytest.fixture
def client(mock_db):
    reset_memory_store()
    app.dependency_overrides[get_db] = lambda: mock_db
    with patch("app.core.rate_limit.redis_module.redis_client", None):
        yield TestClient(app)
    app.dependency_overrides.clear()
    reset_memory_store()


class TestLoginEndpoint:
    """Tests for POST /api/admin/auth/login."""

    def test_success_envelope(self, client, sample_admin):
        result = LoginResponse(
            access_token="access",
            refresh_token="refresh",
            expires_in=900,
            admin=AdminResponse.model_validate(sample_admin),
        )
        with patch(f"{ROUTER_SERVICE}.login", new=AsyncMock(return_value=result)) as login:
            response = client.post(
                "/api/admin/auth/login",
                json={"email": "jordan@example.com", "password": "Str0ng-Passw0rd"},
            )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"]["token_type"] == "bearer"
        assert body["data"]["admin"]["email"] == "jordan@example.com"
        assert "password_hash" not in body["data"]["admin"]
        assert login.await_args.kwargs["email"] == "jordan@example.com"

    def test_bad_credentials_are_401(self, client):
        error = AuthenticationError("Invalid email or password.", error_code="INVALID_CREDENTIALS")
        with patch(f"{ROUTER_SERVICE}.login", new=AsyncMock(side_effect=error)):
            response = client.post(
                "/api/admin/auth/login",
                json={"email": "jordan@example.com", "password": "wrong-password"},
            )

        assert response.status_code == 401
        body = response.json()
        assert body["success"] is False
        assert body["error"]["code"] == "INVALID_CREDENTIALS"


class TestForgotPasswordEndpoint:
    """Tests for POST /api/admin/auth/forgot-password."""

    def test_always_accepted(self, client):
        with patch(
            f"{ROUTER_SERVICE}.request_password_reset", new=AsyncMock()
        ) as request_reset:
            response = client.post(
                "/api/admin/auth/forgot-password", json={"email": "nobody@example.com"}
            )

        assert response.status_code == 202
        assert response.json()["success"] is True
        request_reset.assert_awaited_once()


class TestProtectedEndpoints:
    """Requests without a usable token."""

    def test_missing_token_is_401(self, client):
        response = client.get("/api/admin/auth/me")

        assert response.status_code == 401
        body = response.json()
        assert body["success"] is False
        assert body["error"]["code"] == "MISSING_TOKEN"

    def test_unknown_session_is_401(self, client, sample_admin):
        token = create_access_token(str(sample_admin.id))
        with patch(
            "app.core.auth.session_repository.find_by_access_token",
            new=AsyncMock(return_value=None),
        ):
            response = client.get(
                "/api/admin/auth/me", headers={"Authorization": f"Bearer {token}"}
            )

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "SESSION_NOT_FOUND"


class TestProfileUpdate:
    """Tests for PUT /api/admin/auth/me and its body."""

    def test_null_name_rejected(self):
        with pytest.raises(ValidationError, match="cannot be null"):
            ProfileUpdate.model_validate({"name": None, "phone": "5551234567"})

    def test_phone_can_be_cleared(self):
        assert ProfileUpdate.model_validate({"phone": None}).model_dump(exclude_unset=True) == {
            "phone": None
        }

    def test_empty_body_rejected(self):
        with pytest.raises(ValidationError):
            ProfileUpdate()

    def test_null_name_is_400_without_update(self, client, current_admin):
        app.dependency_overrides[get_current_admin] = lambda: current_admin
        with patch(f"{ROUTER_SERVICE}.update_profile", new=AsyncMock()) as update:
            response = client.put(
                "/api/admin/auth/me", json={"name": None, "phone": "5551234567"}
            )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"
        update.assert_not_awaited()
