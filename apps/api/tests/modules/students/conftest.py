"""
Fixtures for student signup tests.
"""

from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest

from app.modules.students.models import ClassType, Signup, SignupStatus, Student
from app.modules.students.schemas import SignupResponse, StudentResponse


@pytest.fixture
def make_student():
    """Factory for Student rows."""

    def factory(email: str | None = "sam@example.com", phone: str | None = None, **fields):
        now = datetime.now(UTC)
        return Student(
            id=fields.pop("id", uuid4()),
            email=email,
            phone=phone,
            opted_out_email=fields.pop("opted_out_email", False),
            opted_out_sms=fields.pop("opted_out_sms", False),
            created_at=now,
            updated_at=now,
            **fields,
        )

    return factory


@pytest.fixture
def make_signup():
    """Factory for Signup rows with their student attached."""

    def factory(
        student: Student,
        class_type: ClassType = ClassType.TYPE_1,
        status: SignupStatus = SignupStatus.PENDING,
        **fields,
    ):
        now = datetime.now(UTC)
        signup = Signup(
            id=fields.pop("id", uuid4()),
            student_id=student.id,
            class_type=class_type,
            status=status,
            reminder_scheduled_date=fields.pop("reminder_scheduled_date", now + timedelta(days=7)),
            reminder_sent_at=fields.pop("reminder_sent_at", None),
            notes=fields.pop("notes", None),
            created_at=fields.pop("created_at", now),
            updated_at=now,
        )
        signup.student = student
        return signup

    return factory


@pytest.fixture
def make_row():
    """Factory for dashboard rows (SignupResponse) without touching the ORM."""

    def factory(
        class_type: ClassType = ClassType.TYPE_1,
        status: SignupStatus = SignupStatus.PENDING,
        created_at: datetime | None = None,
        email: str | None = "row@example.com",
        phone: str | None = None,
        reminder_sent_at: datetime | None = None,
    ) -> SignupResponse:
        created_at = created_at or datetime(2026, 5, 10, 12, 0, tzinfo=UTC)
        student_id = uuid4()
        return SignupResponse(
            id=uuid4(),
            student_id=student_id,
            class_type=class_type,
            class_type_label=class_type.value,
            status=status,
            reminder_scheduled_date=created_at + timedelta(days=7),
            reminder_sent_at=reminder_sent_at,
            notes=None,
            created_at=created_at,
            updated_at=created_at,
            student=StudentResponse(
                id=student_id,
                email=email,
                phone=phone,
                created_at=created_at,
                updated_at=created_at,
            ),
        )

    return factory
