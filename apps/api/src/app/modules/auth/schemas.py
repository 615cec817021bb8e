"""
Authentication Schemas

Pydantic schemas for the auth endpoints, plus the input schemas the session
repository validates against before touching the database.
"""

from datetime import datetime
from uuid import UUID

from pydantic import (
    AwareDatetime,
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    field_validator,
    model_validator,
)

from app.modules.admins.schemas import AdminResponse

PASSWORD_MIN_LENGTH = 8


# ============================================
# Repository input schemas
# ============================================


class SessionCreate(BaseModel):
    """A new session. Tokens are raw here and fingerprinted on write."""

    model_config = ConfigDict(extra="forbid")

    admin_id: UUID
    token: str = Field(..., min_length=1)
    refresh_token: str = Field(..., min_length=1)
    expires_at: AwareDatetime
    ip_address: str | None = Field(None, max_length=45)
    user_agent: str | None = Field(None, max_length=500)


class SessionUpdate(BaseModel):
    """
    Fields a session update may change.

    Unknown fields are rejected, and at least one field must be non-null.
    """

    model_config = ConfigDict(extra="forbid")

    token: str | None = Field(None, min_length=1)
    refresh_token: str | None = Field(None, min_length=1)
    expires_at: AwareDatetime | None = None
    ip_address: str | None = Field(None, max_length=45)
    user_agent: str | None = Field(None, max_length=500)

    @model_validator(mode="after")
    def require_a_change(self) -> "SessionUpdate":
        if not self.model_dump(exclude_none=True):
            raise ValueError("At least one field must be provided to update a session")
        return self


class TokenLookup(BaseModel):
    token: str = Field(..., min_length=1)


class SweepRequest(BaseModel):
    now: AwareDatetime


class PasswordResetCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    admin_id: UUID
    email: EmailStr
    token: str = Field(..., min_length=1)
    expires_at: AwareDatetime


# ============================================
# Request schemas
# ============================================


class LoginRequest(BaseModel):
    """Login request schema."""

    email: EmailStr
    password: str = Field(..., min_length=1)


class RefreshRequest(BaseModel):
    refresh_token: str = Field(..., min_length=1)


class ProfileUpdate(BaseModel):
    """Fields an admin may change on their own profile."""

    name: str | None = Field(None, min_length=1, max_length=200)
    phone: str | None = Field(None, max_length=20)

    @field_validator("name")
    @classmethod
    def reject_null_name(cls, value: str | None) -> str:
        if value is None:
            raise ValueError("cannot be null")
        return value

    @model_validator(mode="after")
    def require_a_change(self) -> "ProfileUpdate":
        if not self.model_dump(exclude_unset=True):
            raise ValueError("At least one of name or phone is required")
        return self


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=PASSWORD_MIN_LENGTH, max_length=128)

    @model_validator(mode="after")
    def passwords_differ(self) -> "ChangePasswordRequest":
        if self.current_password == self.new_password:
            raise ValueError("New password must be different from the current password")
        return self


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    token: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=PASSWORD_MIN_LENGTH, max_length=128)


# ============================================
# Response schemas
# ============================================


class TokenResponse(BaseModel):
    """Token pair issued on login and refresh."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int = Field(..., description="Access token lifetime in seconds")


class LoginResponse(TokenResponse):
    admin: AdminResponse


class SessionResponse(BaseModel):
    """A session as shown to its owner. Token fingerprints are never exposed."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    ip_address: str | None = None
    user_agent: str | None = None
    created_at: datetime
    updated_at: datetime
    expires_at: datetime
    is_active: bool = True
    is_current: bool = False


class SessionListResponse(BaseModel):
    sessions: list[SessionResponse]
    total: int
    active: int
    expired: int


class LogoutAllResponse(BaseModel):
    sessions_revoked: int
