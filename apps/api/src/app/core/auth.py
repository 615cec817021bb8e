"""
Authentication and Authorization Module

FastAPI dependencies that authenticate admin requests and enforce roles.

A request is authenticated when, in order:
1. it carries a Bearer access token whose JWT signature, expiry and type verify,
2. a session exists for that token (looked up by fingerprint),
3. the session has not expired,
4. the request IP matches the session IP (only when ENFORCE_SESSION_IP is set),
5. the admin the session belongs to is still active.

Roles are hierarchical: viewer < admin < super_admin.
"""

import logging
from dataclasses import dataclass

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import get_db
from app.core.errors import AuthenticationError, AuthorizationError
from app.core.security import decode_token
from app.modules.admins.models import Admin, AdminRole, AdminSession
from app.modules.admins.repository import AdminRepository
from app.modules.auth import session_repository

logger = logging.getLogger(__name__)

# auto_error is off so a missing header is rendered through the error envelope
security = HTTPBearer(
    auto_error=False,
    description="JWT Bearer access token",
)


@dataclass
class AuthenticatedAdmin:
    """
    The admin behind an authenticated request.

    Attributes:
        admin: The Admin row
        session: The session the access token belongs to
        token: The raw access token (needed to mark the current session)
    """

    admin: Admin
    session: AdminSession
    token: str

    @property
    def id(self):
        return self.admin.id

    @property
    def role(self) -> AdminRole:
        return self.admin.role

    def __str__(self) -> str:
        return f"AuthenticatedAdmin(id={self.admin.id}, role={self.admin.role.value})"


def client_ip(request: Request) -> str | None:
    """Client IP, honouring the first X-Forwarded-For hop."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


def _unauthorized(message: str, code: str) -> AuthenticationError:
    return AuthenticationError(message, error_code=code)


async def get_current_admin(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> AuthenticatedAdmin:
    """
    FastAPI dependency that authenticates the request.

    Usage:
        @router.get("/me")
        async def me(current: AuthenticatedAdmin = Depends(get_current_admin)):
            ...

    Raises:
        AuthenticationError 401: Missing, invalid or expired token or session
        AuthorizationError 403: Admin account deactivated
    """
    if credentials is None or not credentials.credentials:
        raise _unauthorized("Authentication required.", "MISSING_TOKEN")

    token = credentials.credentials
    payload = decode_token(token, "access")
    if payload is None:
        logger.warning("Rejected request with invalid or expired access token")
        raise _unauthorized("Invalid or expired authentication token.", "INVALID_TOKEN")

    session = await session_repository.find_by_access_token(db, token)
    if session is None:
        logger.warning("Access token has no matching session (logged out or rotated)")
        raise _unauthorized("Session not found. Please log in again.", "SESSION_NOT_FOUND")

    if not session.is_active_at():
        raise _unauthorized("Session has expired. Please log in again.", "SESSION_EXPIRED")

    if str(session.admin_id) != payload.get("sub"):
        logger.warning(f"Token subject does not match session {session.id}")
        raise _unauthorized("Invalid authentication token.", "INVALID_TOKEN_CLAIMS")

    if settings.enforce_session_ip:
        ip = client_ip(request) or ""
        if not await session_repository.validate_session_ip(db, session.id, ip):
            raise _unauthorized("Session is not valid from this address.", "SESSION_IP_MISMATCH")

    admin = await AdminRepository.get_by_id(db, session.admin_id)
    if admin is None:
        raise _unauthorized("Account not found.", "ADMIN_NOT_FOUND")
    if not admin.is_active:
        raise AuthorizationError(
            "Your account has been deactivated.", error_code="ACCOUNT_INACTIVE"
        )

    request.state.admin_id = admin.id
    return AuthenticatedAdmin(admin=admin, session=session, token=token)


def require_role(required: AdminRole):
    """
    Build a dependency that requires at least ``required`` role.

    Usage:
        @router.delete("/signups/{id}")
        async def remove(current: AuthenticatedAdmin = Depends(require_role(AdminRole.ADMIN))):
            ...
    """

    async def dependency(
        current: AuthenticatedAdmin = Depends(get_current_admin),
    ) -> AuthenticatedAdmin:
        if not current.role.at_least(required):
            logger.warning(
                f"Access denied: admin {current.id} has role '{current.role.value}', "
                f"'{required.value}' or higher is required"
            )
            raise AuthorizationError(
                f"{required.value} access or higher is required for this endpoint.",
                error_code="INSUFFICIENT_ROLE",
                metadata={"required_role": required.value},
            )
        return current

    return dependency


require_viewer = require_role(AdminRole.VIEWER)
require_admin = require_role(AdminRole.ADMIN)
require_super_admin = require_role(AdminRole.SUPER_ADMIN)


__all__ = [
    "AuthenticatedAdmin",
    "client_ip",
    "get_current_admin",
    "require_role",
    "require_viewer",
    "require_admin",
    "require_super_admin",
]
