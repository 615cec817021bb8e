"""
Admin Authentication Router

Endpoints (mounted at /api/admin/auth):
- POST   /login            - Log in, returns access + refresh tokens
- POST   /refresh          - Rotate tokens using the refresh token
- POST   /logout           - End the current session
- POST   /logout-all       - End every session of the current admin
- GET    /me               - Current admin profile
- PUT    /me               - Update name / phone
- POST   /change-password  - Change password (revokes other sessions)
- GET    /sessions         - List own sessions
- DELETE /sessions/{id}    - Revoke one of own sessions
- POST   /forgot-password  - Email a reset link (same answer for any email)
- POST   /reset-password   - Set a new password with a reset token
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import AuthenticatedAdmin, client_ip, get_current_admin
from app.core.database import get_db
from app.core.rate_limit import rate_limit
from app.core.responses import ApiResponse, success
from app.modules.admins.schemas import AdminResponse
from app.modules.auth import service
from app.modules.auth.schemas import (
    ChangePasswordRequest,
    ForgotPasswordRequest,
    LoginRequest,
    LoginResponse,
    LogoutAllResponse,
    ProfileUpdate,
    RefreshRequest,
    ResetPasswordRequest,
    SessionListResponse,
    TokenResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()

FORGOT_PASSWORD_MESSAGE = "If an account exists for that email, a reset link has been sent."


@router.post(
    "/login",
    response_model=ApiResponse[LoginResponse],
    summary="Admin login",
)
async def login(
    request: Request,
    credentials: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    Authenticate with email and password.

    Unknown email and wrong password both answer 401 INVALID_CREDENTIALS.
    Limited to 5 attempts per IP + email per 15 minutes.
    """
    result = await service.login(
        db,
        email=credentials.email,
        password=credentials.password,
        ip_address=client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )
    return success(result, "Login successful")


@router.post(
    "/refresh",
    response_model=ApiResponse[TokenResponse],
    summary="Rotate tokens",
)
async def refresh(
    request: Request,
    body: RefreshRequest,
    db: AsyncSession = Depends(get_db),
):
    """Exchange a refresh token for a new token pair. The old pair stops working."""
    result = await service.refresh(
        db,
        body.refresh_token,
        ip_address=client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )
    return success(result, "Token refreshed")


@router.post("/logout", response_model=ApiResponse[None], summary="Log out")
async def logout(
    current: AuthenticatedAdmin = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    await service.logout(db, current)
    return success(message="Logged out")


@router.post(
    "/logout-all",
    response_model=ApiResponse[LogoutAllResponse],
    summary="Log out everywhere",
)
async def logout_all(
    current: AuthenticatedAdmin = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    revoked = await service.logout_all(db, current)
    return success(LogoutAllResponse(sessions_revoked=revoked), "Logged out of all sessions")


@router.get("/me", response_model=ApiResponse[AdminResponse], summary="Current admin")
async def get_me(current: AuthenticatedAdmin = Depends(get_current_admin)):
    return success(service.get_profile(current))


@router.put("/me", response_model=ApiResponse[AdminResponse], summary="Update profile")
async def update_me(
    body: ProfileUpdate,
    current: AuthenticatedAdmin = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    profile = await service.update_profile(db, current, body)
    return success(profile, "Profile updated")


@router.post(
    "/change-password",
    response_model=ApiResponse[LogoutAllResponse],
    summary="Change password",
)
async def change_password(
    body: ChangePasswordRequest,
    current: AuthenticatedAdmin = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    """Change the password. Every other session is logged out."""
    revoked = await service.change_password(db, current, body)
    return success(LogoutAllResponse(sessions_revoked=revoked), "Password changed")


@router.get(
    "/sessions",
    response_model=ApiResponse[SessionListResponse],
    summary="List own sessions",
)
async def list_sessions(
    include_expired: bool = Query(False, description="Include sessions that have expired"),
    current: AuthenticatedAdmin = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    result = await service.list_sessions(db, current, include_expired=include_expired)
    return success(result)


@router.delete(
    "/sessions/{session_id}",
    response_model=ApiResponse[None],
    summary="Revoke a session",
)
async def revoke_session(
    session_id: UUID,
    current: AuthenticatedAdmin = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    await service.revoke_session(db, current, session_id)
    return success(message="Session revoked")


@router.post(
    "/forgot-password",
    response_model=ApiResponse[None],
    status_code=status.HTTP_202_ACCEPTED,
    summary="Request a password reset email",
)
@rate_limit(limit=5, window_seconds=15 * 60)
async def forgot_password(
    request: Request,
    body: ForgotPasswordRequest,
    db: AsyncSession = Depends(get_db),
):
    """Always answers the same way, whether or not the email belongs to an admin."""
    await service.request_password_reset(db, body.email)
    return success(message=FORGOT_PASSWORD_MESSAGE)


@router.post(
    "/reset-password",
    response_model=ApiResponse[None],
    summary="Reset password with a token",
)
@rate_limit(limit=10, window_seconds=15 * 60)
async def reset_password(
    request: Request,
    body: ResetPasswordRequest,
    db: AsyncSession = Depends(get_db),
):
    await service.reset_password(db, body.token, body.new_password)
    return success(message="Password has been reset. Please log in again.")
