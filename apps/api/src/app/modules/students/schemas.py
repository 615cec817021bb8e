"""
Students Schemas

Pydantic schemas for the signup flow and the admin dashboard.
"""

from datetime import date, datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator

from app.modules.students.helpers import class_type_label, normalize_phone
from app.modules.students.models import ClassType, Signup, SignupStatus, Student

PHONE_MIN_DIGITS = 7
PHONE_MAX_DIGITS = 15

ReminderStatus = Literal["sent", "pending", "failed"]
SortOrder = Literal["asc", "desc"]
SortField = Literal[
    "created_at",
    "updated_at",
    "class_type",
    "status",
    "reminder_scheduled_date",
    "reminder_sent_at",
    "email",
    "phone",
]


# ============================================
# Requests
# ============================================


class SignupCreate(BaseModel):
    """Request body for POST /students/signup."""

    class_type: ClassType
    email: EmailStr | None = None
    phone: str | None = Field(None, max_length=20)

    @field_validator("email", "phone", mode="before")
    @classmethod
    def blank_to_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, value: str | None) -> str | None:
        return value.lower() if value else value

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = normalize_phone(value)
        digit_count = len(normalized.lstrip("+"))
        if not PHONE_MIN_DIGITS <= digit_count <= PHONE_MAX_DIGITS:
            raise ValueError(
                f"phone must contain between {PHONE_MIN_DIGITS} and {PHONE_MAX_DIGITS} digits"
            )
        return normalized

    @model_validator(mode="after")
    def require_contact(self) -> "SignupCreate":
        if not self.email and not self.phone:
            raise ValueError("At least one of email or phone is required")
        return self


class OptOutUpdate(BaseModel):
    """Request body for PATCH /students/{id}/opt-out."""

    opted_out_email: bool | None = None
    opted_out_sms: bool | None = None

    @model_validator(mode="after")
    def require_a_preference(self) -> "OptOutUpdate":
        if self.opted_out_email is None and self.opted_out_sms is None:
            raise ValueError("At least one of opted_out_email or opted_out_sms is required")
        return self


class SignupUpdate(BaseModel):
    """Request body for PATCH /admin/signups/{id}."""

    status: SignupStatus | None = None
    reminder_scheduled_date: datetime | None = None
    notes: str | None = Field(None, max_length=2000)

    @field_validator("status", "reminder_scheduled_date")
    @classmethod
    def reject_null(cls, value):
        if value is None:
            raise ValueError("cannot be null")
        return value

    @model_validator(mode="after")
    def require_a_change(self) -> "SignupUpdate":
        if not self.model_dump(exclude_unset=True):
            raise ValueError("At least one of status, reminder_scheduled_date or notes is required")
        return self


class DashboardQuery(BaseModel):
    """
    Optional dashboard query parameters.

    All filters are independent predicates combined with AND.
    """

    class_type: ClassType | None = None
    status: SignupStatus | None = None
    date_from: date | None = None
    date_to: date | None = None
    reminder_status: ReminderStatus | None = None
    search: str | None = Field(None, max_length=200)
    sort_by: SortField | None = None
    sort_order: SortOrder | None = None
    page: int | None = Field(None, ge=1)
    page_size: int | None = Field(None, ge=1, le=500)

    @model_validator(mode="after")
    def validate_date_range(self) -> "DashboardQuery":
        if self.date_from and self.date_to and self.date_from > self.date_to:
            raise ValueError("date_from must be on or before date_to")
        return self

    def is_empty(self) -> bool:
        """True when no parameter was given at all."""
        return not self.model_dump(exclude_none=True)


# ============================================
# Responses
# ============================================


class StudentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str | None = None
    phone: str | None = None
    opted_out_email: bool = False
    opted_out_sms: bool = False
    created_at: datetime
    updated_at: datetime


class SignupResponse(BaseModel):
    """A signup with its student."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    student_id: UUID
    class_type: ClassType
    class_type_label: str
    status: SignupStatus
    reminder_scheduled_date: datetime
    reminder_sent_at: datetime | None = None
    notes: str | None = None
    created_at: datetime
    updated_at: datetime
    student: StudentResponse | None = None

    @classmethod
    def from_model(cls, signup: Signup, student: Student | None = None) -> "SignupResponse":
        """Build from ORM rows without triggering lazy loads."""
        student = student if student is not None else signup.__dict__.get("student")
        return cls(
            id=signup.id,
            student_id=signup.student_id,
            class_type=signup.class_type,
            class_type_label=class_type_label(signup.class_type),
            status=signup.status,
            reminder_scheduled_date=signup.reminder_scheduled_date,
            reminder_sent_at=signup.reminder_sent_at,
            notes=signup.notes,
            created_at=signup.created_at,
            updated_at=signup.updated_at,
            student=StudentResponse.model_validate(student) if student is not None else None,
        )


class StudentSignupsResponse(BaseModel):
    student: StudentResponse
    signups: list[SignupResponse]


class SignupLink(BaseModel):
    class_type: ClassType
    label: str
    url: str


class SignupListResponse(BaseModel):
    """Dashboard page of signups."""

    signups: list[SignupResponse]
    total: int = Field(..., description="Signups matching the filters, before paging")
    page: int
    page_size: int
    total_pages: int
    filtered: bool = Field(..., description="False when the full table was returned as-is")


class SignupStats(BaseModel):
    total: int
    by_status: dict[str, int]
    by_class_type: dict[str, int]
    reminders_sent: int
    reminders_due: int


class StudentListResponse(BaseModel):
    students: list[StudentResponse]
    total: int
