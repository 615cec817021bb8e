"""
Authentication Service Layer

Business logic for admin authentication.

1. Login:
   - Rate limited per client IP + email
   - Unknown email and wrong password are indistinguishable (same 401)
   - Issues an access token (short-lived) and a refresh token (session lifetime)
   - Persists the session with client IP and user agent

2. Refresh:
   - Refresh JWT must verify and its session must exist and be active
   - Rotates both tokens and slides the session expiry

3. Session management:
   - Logout (current session), logout everywhere, list and revoke sessions

4. Password management:
   - Change password (revokes every other session)
   - Reset by emailed single-use token (revokes every session)
   - Reset requests never reveal whether an account exists

Raw tokens are only ever returned to the client; storage holds fingerprints.
"""

import logging
from datetime import UTC, datetime, timedelta
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import AuthenticatedAdmin
from app.core.config import settings
from app.core.email import mask_email, send_password_reset
from app.core.errors import (
    AuthenticationError,
    AuthorizationError,
    NotFoundError,
    ValidationError,
)
from app.core.rate_limit import enforce_rate_limit
from app.core.security import (
    access_token_expiry,
    create_access_token,
    create_refresh_token,
    decode_token,
    generate_secure_token,
    hash_password,
    refresh_token_expiry,
    verify_password,
)
from app.modules.admins.models import Admin
from app.modules.admins.repository import AdminRepository
from app.modules.admins.schemas import AdminResponse
from app.modules.auth import password_reset_repository, session_repository
from app.modules.auth.schemas import (
    ChangePasswordRequest,
    LoginResponse,
    ProfileUpdate,
    SessionListResponse,
    SessionResponse,
    TokenResponse,
)

logger = logging.getLogger(__name__)

# Login attempts per IP + email
LOGIN_RATE_LIMIT = 5
LOGIN_RATE_WINDOW_SECONDS = 15 * 60


def _invalid_credentials() -> AuthenticationError:
    return AuthenticationError("Invalid email or password.", error_code="INVALID_CREDENTIALS")


def _issue_tokens(admin: Admin) -> tuple[str, str, datetime]:
    """
    Create an access + refresh token pair for ``admin``.

    Returns:
        (access_token, refresh_token, session_expires_at)
    """
    session_expires_at = refresh_token_expiry()
    claims = {"email": admin.email, "role": admin.role.value, "name": admin.name}
    access_token = create_access_token(
        subject=str(admin.id),
        additional_claims=claims,
        expires_at=min(access_token_expiry(), session_expires_at),
    )
    refresh_token = create_refresh_token(subject=str(admin.id), expires_at=session_expires_at)
    return access_token, refresh_token, session_expires_at


def _expires_in_seconds() -> int:
    return settings.access_token_expire_minutes * 60


async def login(
    db: AsyncSession,
    email: str,
    password: str,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> LoginResponse:
    """
    Authenticate an admin and open a session.

    Raises:
        RateLimitExceeded 429: Too many attempts for this IP + email
        AuthenticationError 401: Unknown email or wrong password
        AuthorizationError 403: Account deactivated
    """
    email = email.strip().lower()
    await enforce_rate_limit(
        f"login:{ip_address or 'unknown'}:{email}",
        LOGIN_RATE_LIMIT,
        LOGIN_RATE_WINDOW_SECONDS,
    )

    admin = await AdminRepository.get_by_email(db, email)
    if admin is None:
        logger.warning(f"Login attempt for unknown email: {mask_email(email)}")
        raise _invalid_credentials()

    if not verify_password(password, admin.password_hash):
        logger.warning(f"Invalid password for admin {admin.id}")
        raise _invalid_credentials()

    if not admin.is_active:
        logger.warning(f"Login attempt for deactivated admin {admin.id}")
        raise AuthorizationError(
            "Your account has been deactivated.", error_code="ACCOUNT_INACTIVE"
        )

    access_token, refresh_token, expires_at = _issue_tokens(admin)
    await session_repository.create_session(
        db,
        {
            "admin_id": admin.id,
            "token": access_token,
            "refresh_token": refresh_token,
            "expires_at": expires_at,
            "ip_address": ip_address,
            "user_agent": (user_agent or "")[:500] or None,
        },
    )
    await AdminRepository.touch_last_login(db, admin)

    logger.info(f"Admin {admin.id} logged in")
    return LoginResponse(
        access_token=access_token,
        refresh_token=refresh_token,
        expires_in=_expires_in_seconds(),
        admin=AdminResponse.model_validate(admin),
    )


async def refresh(
    db: AsyncSession,
    refresh_token: str,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> TokenResponse:
    """
    Rotate a session's tokens.

    Both tokens are replaced and the session expiry slides forward; the old
    pair stops working immediately.

    Raises:
        AuthenticationError 401: Invalid refresh token, or session gone / expired
            (or used from another address when ENFORCE_SESSION_IP is on)
        AuthorizationError 403: Account deactivated
    """
    payload = decode_token(refresh_token, "refresh")
    if payload is None:
        raise AuthenticationError(
            "Invalid or expired refresh token.", error_code="INVALID_REFRESH_TOKEN"
        )

    session = await session_repository.find_by_refresh_token(db, refresh_token)
    if session is None:
        logger.warning("Refresh token has no matching session (revoked or already rotated)")
        raise AuthenticationError(
            "Session not found. Please log in again.", error_code="SESSION_NOT_FOUND"
        )

    if not session.is_active_at():
        await session_repository.delete_session(db, session.id)
        raise AuthenticationError(
            "Session has expired. Please log in again.", error_code="SESSION_EXPIRED"
        )

    if str(session.admin_id) != payload.get("sub"):
        raise AuthenticationError("Invalid refresh token.", error_code="INVALID_REFRESH_TOKEN")

    if settings.enforce_session_ip and not await session_repository.validate_session_ip(
        db, session.id, ip_address or ""
    ):
        raise AuthenticationError(
            "Session is not valid from this address.", error_code="SESSION_IP_MISMATCH"
        )

    admin = await AdminRepository.get_by_id(db, session.admin_id)
    if admin is None or not admin.is_active:
        await session_repository.invalidate_all_sessions(db, session.admin_id)
        raise AuthorizationError(
            "Your account has been deactivated.", error_code="ACCOUNT_INACTIVE"
        )

    access_token, new_refresh_token, expires_at = _issue_tokens(admin)
    updates = {
        "token": access_token,
        "refresh_token": new_refresh_token,
        "expires_at": expires_at,
    }
    # The recorded IP is what the per-request check compares against
    if ip_address and not settings.enforce_session_ip:
        updates["ip_address"] = ip_address
    if user_agent:
        updates["user_agent"] = user_agent[:500]

    await session_repository.update_session(db, session.id, updates)

    logger.info(f"Rotated tokens for session {session.id}")
    return TokenResponse(
        access_token=access_token,
        refresh_token=new_refresh_token,
        expires_in=_expires_in_seconds(),
    )


async def logout(db: AsyncSession, current: AuthenticatedAdmin) -> None:
    """End the current session."""
    await session_repository.delete_session(db, current.session.id)
    logger.info(f"Admin {current.id} logged out")


async def logout_all(db: AsyncSession, current: AuthenticatedAdmin) -> int:
    """End every session of the current admin, including this one."""
    return await session_repository.invalidate_all_sessions(db, current.id)


def get_profile(current: AuthenticatedAdmin) -> AdminResponse:
    return AdminResponse.model_validate(current.admin)


async def update_profile(
    db: AsyncSession, current: AuthenticatedAdmin, data: ProfileUpdate
) -> AdminResponse:
    """Update the current admin's name and/or phone."""
    admin = await AdminRepository.update(db, current.admin, **data.model_dump(exclude_unset=True))
    logger.info(f"Admin {admin.id} updated their profile")
    return AdminResponse.model_validate(admin)


async def change_password(
    db: AsyncSession, current: AuthenticatedAdmin, data: ChangePasswordRequest
) -> int:
    """
    Change the current admin's password.

    Every other session is revoked; the current one stays logged in.

    Returns:
        Number of sessions revoked

    Raises:
        ValidationError 400: Current password is wrong
    """
    if not verify_password(data.current_password, current.admin.password_hash):
        logger.warning(f"Password change with wrong current password for admin {current.id}")
        raise ValidationError(
            "Current password is incorrect.", error_code="INVALID_CURRENT_PASSWORD"
        )

    await AdminRepository.update(db, current.admin, password_hash=hash_password(data.new_password))
    await password_reset_repository.delete_for_admin(db, current.id)
    revoked = await session_repository.invalidate_all_sessions(
        db, current.id, except_session_id=current.session.id
    )

    logger.info(f"Admin {current.id} changed password, {revoked} other session(s) revoked")
    return revoked


async def list_sessions(
    db: AsyncSession,
    current: AuthenticatedAdmin,
    include_expired: bool = False,
) -> SessionListResponse:
    """List the current admin's sessions, flagging the one making this request."""
    now = datetime.now(UTC)
    listing = await session_repository.get_admin_sessions(
        db, current.id, include_expired=include_expired, now=now
    )

    sessions = []
    for session in listing["sessions"]:
        item = SessionResponse.model_validate(session)
        item.is_active = session.is_active_at(now)
        item.is_current = session.id == current.session.id
        sessions.append(item)

    return SessionListResponse(
        sessions=sessions,
        total=listing["total"],
        active=listing["active"],
        expired=listing["expired"],
    )


async def revoke_session(
    db: AsyncSession, current: AuthenticatedAdmin, session_id: UUID | str
) -> None:
    """
    Revoke one of the current admin's sessions.

    Raises:
        NotFoundError 404: No such session, or it belongs to another admin
    """
    session = await session_repository.find_by_id(db, session_id)
    if session is None or session.admin_id != current.id:
        raise NotFoundError("Session not found.", error_code="SESSION_NOT_FOUND")

    await session_repository.delete_session(db, session.id)
    logger.info(f"Admin {current.id} revoked session {session.id}")


async def request_password_reset(db: AsyncSession, email: str) -> None:
    """
    Email a reset link if an active admin has this address.

    Returns nothing either way so callers cannot probe for accounts.
    """
    email = email.strip().lower()
    admin = await AdminRepository.get_by_email(db, email)
    if admin is None or not admin.is_active:
        logger.info(f"Password reset requested for unknown or inactive email {mask_email(email)}")
        return

    token = generate_secure_token()
    expires_at = datetime.now(UTC) + timedelta(minutes=settings.password_reset_expire_minutes)
    await password_reset_repository.create_reset(
        db,
        {"admin_id": admin.id, "email": admin.email, "token": token, "expires_at": expires_at},
    )

    sent = await send_password_reset(
        to_email=admin.email,
        admin_name=admin.name,
        token=token,
        expires_minutes=settings.password_reset_expire_minutes,
    )
    if not sent:
        logger.error(f"Failed to send password reset email for admin {admin.id}")


def _invalid_reset_token(message: str, code: str) -> ValidationError:
    return ValidationError(message, error_code=code)


async def reset_password(db: AsyncSession, token: str, new_password: str) -> int:
    """
    Set a new password using an emailed reset token.

    The token must exist, be unused, unexpired and under the attempt limit.
    On success it is marked used and every session of the admin is revoked.

    Returns:
        Number of sessions revoked

    Raises:
        ValidationError 400: Token invalid, used, expired or locked
    """
    reset = await password_reset_repository.find_by_token(db, token)
    if reset is None:
        raise _invalid_reset_token("Invalid password reset token.", "INVALID_RESET_TOKEN")

    if reset.attempts >= settings.password_reset_max_attempts:
        raise _invalid_reset_token(
            "Too many attempts with this reset token. Request a new one.", "RESET_TOKEN_LOCKED"
        )

    reset = await password_reset_repository.record_attempt(db, reset)

    if reset.is_used:
        raise _invalid_reset_token("This reset token has already been used.", "RESET_TOKEN_USED")

    if reset.expires_at <= datetime.now(UTC):
        raise _invalid_reset_token("This reset token has expired.", "RESET_TOKEN_EXPIRED")

    admin = await AdminRepository.get_by_id(db, reset.admin_id)
    if admin is None or not admin.is_active:
        raise _invalid_reset_token("Invalid password reset token.", "INVALID_RESET_TOKEN")

    await AdminRepository.update(db, admin, password_hash=hash_password(new_password))
    await password_reset_repository.mark_used(db, reset)
    revoked = await session_repository.invalidate_all_sessions(db, admin.id)

    logger.info(f"Admin {admin.id} reset their password, {revoked} session(s) revoked")
    return revoked
