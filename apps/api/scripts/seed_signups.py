"""
Seed Signups

Fills a development database with random students and signups so the admin
dashboard has something to filter.

Distribution:
- contact: 40% email only, 30% phone only, 30% both
- status:  50% pending, 40% sent, 10% failed

Usage:
    cd apps/api
    python scripts/seed_signups.py --count 200
"""

import argparse
import asyncio
import random
import sys
import uuid
from datetime import UTC, datetime, timedelta
from pathlib import Path

# Add the src directory to the path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from app.core.config import settings
from app.modules.students.models import ClassType, Signup, SignupStatus, Student

CONTACT_WEIGHTS = {"email": 40, "phone": 30, "both": 30}
STATUS_WEIGHTS = {SignupStatus.PENDING: 50, SignupStatus.SENT: 40, SignupStatus.FAILED: 10}

FIRST_NAMES = ["alex", "jordan", "sam", "taylor", "casey", "morgan", "riley", "jamie"]
DOMAINS = ["example.com", "example.org", "mail.test"]


def _pick(weights: dict) -> object:
    return random.choices(list(weights), weights=list(weights.values()))[0]


def build_student(index: int) -> Student:
    """A student with a unique email and/or phone."""
    contact = _pick(CONTACT_WEIGHTS)
    email = phone = None
    if contact in ("email", "both"):
        email = f"{random.choice(FIRST_NAMES)}.{index}@{random.choice(DOMAINS)}"
    if contact in ("phone", "both"):
        phone = f"+1555{index:07d}"
    return Student(id=uuid.uuid4(), email=email, phone=phone)


def build_signup(student: Student, now: datetime) -> Signup:
    """A signup created within the last 60 days, with a matching reminder state."""
    created_at = now - timedelta(days=random.randint(0, 60), minutes=random.randint(0, 1440))
    status = _pick(STATUS_WEIGHTS)
    reminder_date = created_at + timedelta(days=settings.reminder_offset_days)
    return Signup(
        student_id=student.id,
        class_type=random.choice(list(ClassType)),
        status=status,
        reminder_scheduled_date=reminder_date,
        reminder_sent_at=reminder_date if status == SignupStatus.SENT else None,
        created_at=created_at,
        updated_at=created_at,
    )


async def seed_signups(count: int) -> None:
    """Insert ``count`` students with one signup each."""
    now = datetime.now(UTC)
    students = [build_student(i) for i in range(count)]
    signups = [build_signup(student, now) for student in students]

    engine = create_async_engine(settings.database_url, echo=False)
    async_session = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with async_session() as db:
        db.add_all(students)
        await db.flush()
        db.add_all(signups)
        await db.commit()

    await engine.dispose()

    by_status = {status.value: 0 for status in SignupStatus}
    for signup in signups:
        by_status[signup.status.value] += 1
    print(f"Seeded {count} students and {len(signups)} signups")
    print(f"  By status: {by_status}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed random students and signups.")
    parser.add_argument("--count", type=int, default=100)
    parser.add_argument("--seed", type=int, default=None, help="Random seed for repeatable data")
    args = parser.parse_args()

    random.seed(args.seed)
    asyncio.run(seed_signups(args.count))
