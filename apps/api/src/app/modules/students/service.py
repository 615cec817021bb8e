"""
Students Service Layer

Business logic for the public signup flow and the admin signup dashboard.

Signup ingestion:
- The request must carry an email or a phone (validated before any query)
- The student is found by email / phone or created
- An email and a phone that belong to two different students is a conflict
- A student with a PENDING signup cannot sign up again until it is processed
- The reminder is scheduled REMINDER_OFFSET_DAYS after signup

There is no queue hand-off: reminders are only recorded, not delivered.
"""

import logging
from datetime import UTC, datetime, timedelta
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import AuthenticatedAdmin
from app.core.config import settings
from app.core.errors import ConflictError, NotFoundError
from app.modules.students import repository
from app.modules.students.dashboard import run_pipeline
from app.modules.students.helpers import signup_links
from app.modules.students.models import SignupStatus, Student
from app.modules.students.schemas import (
    DashboardQuery,
    OptOutUpdate,
    SignupCreate,
    SignupLink,
    SignupListResponse,
    SignupResponse,
    SignupStats,
    SignupUpdate,
    StudentListResponse,
    StudentResponse,
    StudentSignupsResponse,
)

logger = logging.getLogger(__name__)


def reminder_date_from(now: datetime | None = None) -> datetime:
    """When the reminder for a signup made at ``now`` is due."""
    return (now or datetime.now(UTC)) + timedelta(days=settings.reminder_offset_days)


async def _find_or_create_student(db: AsyncSession, data: SignupCreate) -> Student:
    """
    Resolve the student for a signup.

    Raises:
        ConflictError 409: Email and phone belong to different students
    """
    by_email = await repository.get_student_by_email(db, data.email) if data.email else None
    by_phone = await repository.get_student_by_phone(db, data.phone) if data.phone else None

    if by_email and by_phone and by_email.id != by_phone.id:
        raise ConflictError(
            "This email and phone number are registered to different students.",
            error_code="CONTACT_MISMATCH",
        )

    student = by_email or by_phone
    if student is None:
        return await repository.create_student(db, email=data.email, phone=data.phone)

    # Fill in the contact detail the student did not have yet
    missing = {}
    if data.email and not student.email:
        missing["email"] = data.email
    if data.phone and not student.phone:
        missing["phone"] = data.phone
    if missing:
        student = await repository.update_student(db, student, **missing)

    return student


async def create_signup(db: AsyncSession, data: SignupCreate) -> SignupResponse:
    """
    Sign a student up for a training type.

    Args:
        db: Database session
        data: Validated signup request (email or phone guaranteed)

    Returns:
        The created signup with its student

    Raises:
        ConflictError 409: Student already has a pending signup, or contact mismatch
    """
    student = await _find_or_create_student(db, data)

    pending = await repository.get_pending_signup(db, student.id)
    if pending is not None:
        logger.info(f"Rejected duplicate signup for student {student.id}")
        raise ConflictError(
            "You already have a pending signup. You will be contacted about it soon.",
            error_code="DUPLICATE_SIGNUP",
            metadata={"signup_id": str(pending.id)},
        )

    signup = await repository.create_signup(
        db,
        student=student,
        class_type=data.class_type,
        reminder_scheduled_date=reminder_date_from(),
    )
    return SignupResponse.from_model(signup, student)


async def get_signup(db: AsyncSession, signup_id: UUID) -> SignupResponse:
    """
    Signup confirmation.

    Raises:
        NotFoundError 404: No such signup
    """
    signup = await repository.get_signup(db, signup_id)
    if signup is None:
        raise NotFoundError("Signup not found.", error_code="SIGNUP_NOT_FOUND")
    return SignupResponse.from_model(signup)


async def _get_student_or_404(db: AsyncSession, student_id: UUID) -> Student:
    student = await repository.get_student_by_id(db, student_id)
    if student is None:
        raise NotFoundError("Student not found.", error_code="STUDENT_NOT_FOUND")
    return student


async def get_student_signups(db: AsyncSession, student_id: UUID) -> StudentSignupsResponse:
    student = await _get_student_or_404(db, student_id)
    signups = await repository.get_signups_for_student(db, student.id)
    return StudentSignupsResponse(
        student=StudentResponse.model_validate(student),
        signups=[SignupResponse.from_model(s, student) for s in signups],
    )


async def update_opt_out(
    db: AsyncSession, student_id: UUID, data: OptOutUpdate
) -> StudentResponse:
    """Update a student's email / SMS reminder opt-out flags."""
    student = await _get_student_or_404(db, student_id)
    student = await repository.update_student(db, student, **data.model_dump(exclude_none=True))
    logger.info(
        f"Student {student.id} opt-out updated: "
        f"email={student.opted_out_email}, sms={student.opted_out_sms}"
    )
    return StudentResponse.model_validate(student)


def get_signup_links() -> list[SignupLink]:
    return [SignupLink(**link) for link in signup_links()]


# ============================================
# Admin dashboard
# ============================================


async def list_signups(db: AsyncSession, query: DashboardQuery) -> SignupListResponse:
    """
    Fetch the full signup table and run the dashboard pipeline over it.

    With no query parameters the table is returned unfiltered.
    """
    signups = [SignupResponse.from_model(s) for s in await repository.list_all_signups(db)]
    return run_pipeline(signups, query)


async def get_signup_stats(db: AsyncSession) -> SignupStats:
    return SignupStats(**await repository.get_signup_stats(db))


async def update_signup(
    db: AsyncSession,
    signup_id: UUID,
    data: SignupUpdate,
    actor: AuthenticatedAdmin,
) -> SignupResponse:
    """
    Update a signup's status, reminder date or notes.

    Marking a signup SENT stamps ``reminder_sent_at``; moving it back to
    PENDING clears it.

    Raises:
        NotFoundError 404: No such signup
        ConflictError 409: Student already has another pending signup
    """
    signup = await repository.get_signup(db, signup_id)
    if signup is None:
        raise NotFoundError("Signup not found.", error_code="SIGNUP_NOT_FOUND")

    student = signup.student
    changes = data.model_dump(exclude_unset=True)
    if changes.get("status") == SignupStatus.SENT and signup.reminder_sent_at is None:
        changes["reminder_sent_at"] = datetime.now(UTC)
    elif changes.get("status") == SignupStatus.PENDING:
        changes["reminder_sent_at"] = None

    signup = await repository.update_signup(db, signup, **changes)

    logger.info(f"Admin {actor.id} updated signup {signup.id} ({', '.join(sorted(changes))})")
    return SignupResponse.from_model(signup, student)


async def delete_signup(db: AsyncSession, signup_id: UUID, actor: AuthenticatedAdmin) -> None:
    """
    Raises:
        NotFoundError 404: No such signup
    """
    if not await repository.delete_signup(db, signup_id):
        raise NotFoundError("Signup not found.", error_code="SIGNUP_NOT_FOUND")
    logger.info(f"Admin {actor.id} deleted signup {signup_id}")


async def list_students(db: AsyncSession, search: str | None = None) -> StudentListResponse:
    students = await repository.list_students(db, search=search)
    return StudentListResponse(
        students=[StudentResponse.model_validate(s) for s in students],
        total=len(students),
    )
