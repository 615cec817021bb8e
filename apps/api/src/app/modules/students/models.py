"""
Student Models

Database models for students and their training signups.

A student is identified by email and/or phone (each unique when present)
and holds at most one PENDING signup at a time.
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    String,
    Text,
    text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.modules.shared import BaseModel


class ClassType(str, enum.Enum):
    """Training types a student can sign up for."""

    TYPE_1 = "TYPE_1"
    TYPE_2 = "TYPE_2"
    TYPE_3 = "TYPE_3"
    TYPE_4 = "TYPE_4"
    TYPE_5 = "TYPE_5"
    TYPE_6 = "TYPE_6"


class SignupStatus(str, enum.Enum):
    """Reminder delivery status of a signup."""

    PENDING = "PENDING"
    SENT = "SENT"
    FAILED = "FAILED"


class Student(BaseModel):
    """A person who signed up, reachable by email, phone or both."""

    __tablename__ = "students"

    email: Mapped[str | None] = mapped_column(String(255), unique=True, index=True, nullable=True)
    phone: Mapped[str | None] = mapped_column(String(20), unique=True, index=True, nullable=True)

    # Reminder preferences
    opted_out_email: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    opted_out_sms: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    __table_args__ = (
        CheckConstraint(
            "email IS NOT NULL OR phone IS NOT NULL",
            name="ck_students_email_or_phone",
        ),
    )

    def __repr__(self) -> str:
        return f"<Student(id={self.id})>"


class Signup(BaseModel):
    """One student's enrollment for a single training type."""

    __tablename__ = "signups"

    student_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("students.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    class_type: Mapped[ClassType] = mapped_column(
        Enum(ClassType, name="class_type"), nullable=False
    )
    status: Mapped[SignupStatus] = mapped_column(
        Enum(SignupStatus, name="signup_status"),
        default=SignupStatus.PENDING,
        nullable=False,
    )

    # Reminder scheduling
    reminder_scheduled_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    reminder_sent_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    student: Mapped["Student"] = relationship("Student", lazy="selectin")

    __table_args__ = (
        Index("ix_signups_status", "status"),
        Index("ix_signups_class_type", "class_type"),
        Index("ix_signups_reminder_scheduled_date", "reminder_scheduled_date"),
        # At most one pending signup per student
        Index(
            "uq_signups_student_pending",
            "student_id",
            unique=True,
            postgresql_where=text("status = 'PENDING'"),
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<Signup(id={self.id}, class_type={self.class_type.value}, "
            f"status={self.status.value})>"
        )
