"""
Security Utilities

Password hashing (bcrypt), JWT creation/verification (python-jose) and
token fingerprinting.

Access and refresh tokens are signed with different secrets so a refresh
token can never be replayed as an access token. Every token carries a
random ``jti`` so two tokens issued in the same second are still distinct.
"""

import hashlib
import logging
import secrets
from datetime import UTC, datetime, timedelta
from typing import Any, Literal

import bcrypt
from jose import ExpiredSignatureError, JWTError, jwt

from app.core.config import settings

logger = logging.getLogger(__name__)

TokenType = Literal["access", "refresh"]


def hash_password(password: str) -> str:
    """
    Hash a password with bcrypt.

    Raises:
        ValueError: If password is empty
    """
    if not password:
        raise ValueError("Password cannot be empty")

    salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Check a plain password against a bcrypt hash."""
    if not password or not password_hash:
        return False

    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        logger.warning("Malformed password hash encountered during verification")
        return False


def hash_token(token: str) -> str:
    """
    SHA-256 fingerprint of a token.

    Session and reset tokens are stored as fingerprints so a database leak
    does not expose usable credentials.
    """
    return hashlib.sha256(token.encode()).hexdigest()


def generate_secure_token(nbytes: int = 32) -> str:
    """URL-safe random token (used for password reset links)."""
    return secrets.token_urlsafe(nbytes)


def _secret_for(token_type: TokenType) -> str:
    if token_type == "refresh":
        return settings.jwt_refresh_secret
    return settings.jwt_access_secret


def _encode(
    subject: str,
    token_type: TokenType,
    expires_at: datetime,
    additional_claims: dict[str, Any] | None = None,
) -> str:
    now = datetime.now(UTC)
    payload: dict[str, Any] = {
        **(additional_claims or {}),
        "sub": subject,
        "type": token_type,
        "iat": int(now.timestamp()),
        "exp": int(expires_at.timestamp()),
        "jti": secrets.token_hex(16),
    }
    return jwt.encode(payload, _secret_for(token_type), algorithm=settings.jwt_algorithm)


def access_token_expiry() -> datetime:
    return datetime.now(UTC) + timedelta(minutes=settings.access_token_expire_minutes)


def refresh_token_expiry() -> datetime:
    return datetime.now(UTC) + timedelta(days=settings.refresh_token_expire_days)


def create_access_token(
    subject: str,
    additional_claims: dict[str, Any] | None = None,
    expires_at: datetime | None = None,
) -> str:
    """Create a short-lived access token for ``subject`` (the admin id)."""
    return _encode(subject, "access", expires_at or access_token_expiry(), additional_claims)


def create_refresh_token(
    subject: str,
    expires_at: datetime | None = None,
) -> str:
    """Create a long-lived refresh token for ``subject``."""
    return _encode(subject, "refresh", expires_at or refresh_token_expiry())


def decode_token(token: str, token_type: TokenType = "access") -> dict[str, Any] | None:
    """
    Verify a JWT and return its claims.

    Returns:
        The claims, or None if the signature, expiry or token type is invalid
    """
    try:
        payload = jwt.decode(token, _secret_for(token_type), algorithms=[settings.jwt_algorithm])
    except ExpiredSignatureError:
        logger.debug(f"Expired {token_type} token presented")
        return None
    except JWTError as e:
        logger.debug(f"Invalid {token_type} token: {e}")
        return None

    if payload.get("type") != token_type:
        logger.warning(f"Token type mismatch: expected {token_type}, got {payload.get('type')}")
        return None

    return payload
