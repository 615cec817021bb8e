"""
Admin Schemas

Pydantic schemas for admin account management.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator

from app.modules.admins.models import AdminRole


class AdminResponse(BaseModel):
    """Admin account as returned by the API (never includes the password hash)."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    name: str
    phone: str | None = None
    role: AdminRole
    is_active: bool
    last_login_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class AdminCreate(BaseModel):
    """Request body for POST /admin/manage."""

    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    name: str = Field(..., min_length=1, max_length=200)
    phone: str | None = Field(None, max_length=20)
    role: AdminRole = AdminRole.VIEWER


class AdminUpdate(BaseModel):
    """Request body for PUT /admin/manage/{id}."""

    email: EmailStr | None = None
    name: str | None = Field(None, min_length=1, max_length=200)
    phone: str | None = Field(None, max_length=20)
    is_active: bool | None = None

    @field_validator("email", "name", "is_active")
    @classmethod
    def reject_null(cls, value):
        if value is None:
            raise ValueError("cannot be null")
        return value

    @model_validator(mode="after")
    def require_a_change(self) -> "AdminUpdate":
        if not self.model_dump(exclude_unset=True):
            raise ValueError("At least one field must be provided")
        return self


class AdminRoleUpdate(BaseModel):
    role: AdminRole


class AdminListResponse(BaseModel):
    admins: list[AdminResponse]
    total: int


class AdminStatsResponse(BaseModel):
    total: int
    active: int
    inactive: int
    by_role: dict[str, int]


class AdminDeactivateResponse(BaseModel):
    admin: AdminResponse
    sessions_revoked: int
