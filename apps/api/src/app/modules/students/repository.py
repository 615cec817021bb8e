"""
Students Repository

Database operations for students and signups.
Writes commit immediately; failures are rolled back and translated into
application errors (unique violations become conflicts).
"""

import logging
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.database import LIKE_ESCAPE, contains_pattern
from app.core.errors import rollback_and_translate
from app.modules.students.models import ClassType, Signup, SignupStatus, Student

logger = logging.getLogger(__name__)

SIGNUP_UPDATABLE_FIELDS = frozenset(
    {"status", "reminder_scheduled_date", "reminder_sent_at", "notes"}
)


# ============================================
# Students
# ============================================


async def get_student_by_id(db: AsyncSession, student_id: UUID) -> Student | None:
    """Get student by ID."""
    return await db.get(Student, student_id)


async def get_student_by_email(db: AsyncSession, email: str) -> Student | None:
    result = await db.execute(select(Student).where(func.lower(Student.email) == email.lower()))
    return result.scalar_one_or_none()


async def get_student_by_phone(db: AsyncSession, phone: str) -> Student | None:
    result = await db.execute(select(Student).where(Student.phone == phone))
    return result.scalar_one_or_none()


async def create_student(
    db: AsyncSession, email: str | None = None, phone: str | None = None
) -> Student:
    """Create a student. At least one of email / phone must be given."""
    student = Student(email=email, phone=phone, opted_out_email=False, opted_out_sms=False)
    try:
        db.add(student)
        await db.commit()
        await db.refresh(student)
    except SQLAlchemyError as e:
        raise await rollback_and_translate(db, e, "create_student") from e

    logger.info(f"Created student {student.id}")
    return student


async def update_student(db: AsyncSession, student: Student, **fields: Any) -> Student:
    """Set contact details or opt-out flags on a student."""
    for key in ("email", "phone", "opted_out_email", "opted_out_sms"):
        if key in fields:
            setattr(student, key, fields[key])
    try:
        await db.commit()
        await db.refresh(student)
    except SQLAlchemyError as e:
        raise await rollback_and_translate(db, e, "update_student") from e
    return student


async def list_students(db: AsyncSession, search: str | None = None) -> list[Student]:
    """All students, newest first, optionally filtered by email / phone substring."""
    query = select(Student)
    if search:
        pattern = contains_pattern(search.strip())
        query = query.where(
            or_(
                Student.email.ilike(pattern, escape=LIKE_ESCAPE),
                Student.phone.ilike(pattern, escape=LIKE_ESCAPE),
            )
        )
    result = await db.execute(query.order_by(Student.created_at.desc()))
    return list(result.scalars().all())


# ============================================
# Signups
# ============================================


async def get_pending_signup(db: AsyncSession, student_id: UUID) -> Signup | None:
    """The student's PENDING signup, if any."""
    result = await db.execute(
        select(Signup).where(
            Signup.student_id == student_id,
            Signup.status == SignupStatus.PENDING,
        )
    )
    return result.scalars().first()


async def create_signup(
    db: AsyncSession,
    student: Student,
    class_type: ClassType,
    reminder_scheduled_date: datetime,
) -> Signup:
    """
    Create a PENDING signup for ``student``.

    Raises:
        ConflictError: The student already has a pending signup (unique index)
    """
    signup = Signup(
        student_id=student.id,
        class_type=class_type,
        status=SignupStatus.PENDING,
        reminder_scheduled_date=reminder_scheduled_date,
    )
    try:
        db.add(signup)
        await db.commit()
        await db.refresh(signup)
    except SQLAlchemyError as e:
        raise await rollback_and_translate(db, e, "create_signup") from e

    logger.info(f"Created signup {signup.id} ({class_type.value}) for student {student.id}")
    return signup


async def get_signup(db: AsyncSession, signup_id: UUID) -> Signup | None:
    """Get signup by ID with its student loaded."""
    result = await db.execute(
        select(Signup).options(selectinload(Signup.student)).where(Signup.id == signup_id)
    )
    return result.scalar_one_or_none()


async def get_signups_for_student(db: AsyncSession, student_id: UUID) -> list[Signup]:
    """A student's signups, newest first."""
    result = await db.execute(
        select(Signup).where(Signup.student_id == student_id).order_by(Signup.created_at.desc())
    )
    return list(result.scalars().all())


async def list_all_signups(db: AsyncSession) -> list[Signup]:
    """Every signup with its student, newest first."""
    result = await db.execute(
        select(Signup).options(selectinload(Signup.student)).order_by(Signup.created_at.desc())
    )
    return list(result.scalars().all())


async def update_signup(db: AsyncSession, signup: Signup, **fields: Any) -> Signup:
    """Apply updates to status, reminder dates or notes and commit."""
    for key, value in fields.items():
        if key in SIGNUP_UPDATABLE_FIELDS:
            setattr(signup, key, value)
    try:
        await db.commit()
        await db.refresh(signup)
    except SQLAlchemyError as e:
        raise await rollback_and_translate(db, e, "update_signup") from e
    return signup


async def delete_signup(db: AsyncSession, signup_id: UUID) -> bool:
    """Delete a signup. Returns False if it did not exist."""
    try:
        result = await db.execute(delete(Signup).where(Signup.id == signup_id))
        await db.commit()
    except SQLAlchemyError as e:
        raise await rollback_and_translate(db, e, "delete_signup") from e
    return (result.rowcount or 0) > 0


async def get_signup_stats(db: AsyncSession, now: datetime | None = None) -> dict[str, Any]:
    """
    Signup counts.

    Returns:
        ``{"total", "by_status", "by_class_type", "reminders_sent", "reminders_due"}``
    """
    now = now or datetime.now(UTC)

    status_rows = await db.execute(select(Signup.status, func.count()).group_by(Signup.status))
    by_status = {status.value: 0 for status in SignupStatus}
    for status, count in status_rows.all():
        by_status[status.value] = count

    type_rows = await db.execute(
        select(Signup.class_type, func.count()).group_by(Signup.class_type)
    )
    by_class_type = {class_type.value: 0 for class_type in ClassType}
    for class_type, count in type_rows.all():
        by_class_type[class_type.value] = count

    reminders_sent = (
        await db.scalar(
            select(func.count()).select_from(Signup).where(Signup.reminder_sent_at.is_not(None))
        )
        or 0
    )
    reminders_due = (
        await db.scalar(
            select(func.count())
            .select_from(Signup)
            .where(
                Signup.status == SignupStatus.PENDING,
                Signup.reminder_scheduled_date <= now,
            )
        )
        or 0
    )

    return {
        "total": sum(by_status.values()),
        "by_status": by_status,
        "by_class_type": by_class_type,
        "reminders_sent": reminders_sent,
        "reminders_due": reminders_due,
    }
