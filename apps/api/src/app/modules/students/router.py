"""
Students Router

Public endpoints for the training signup flow (mounted at /api/students).
No authentication: students never have accounts.

Endpoints:
- POST  /signup          - Sign up for a training type
- GET   /signup/{id}     - Signup confirmation
- GET   /signup-links    - Deep link per training type (QR code targets)
- GET   /{id}/signups    - All signups of a student
- PATCH /{id}/opt-out    - Update reminder opt-out preferences

Security:
- Signup submissions are rate limited per client IP
- Input validation via Pydantic schemas
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.rate_limit import rate_limit
from app.core.responses import ApiResponse, success
from app.modules.students import service
from app.modules.students.schemas import (
    OptOutUpdate,
    SignupCreate,
    SignupLink,
    SignupResponse,
    StudentResponse,
    StudentSignupsResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/signup",
    response_model=ApiResponse[SignupResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Sign up for a training",
)
@rate_limit(limit=20, window_seconds=60 * 60)
async def create_signup(
    request: Request,
    body: SignupCreate,
    db: AsyncSession = Depends(get_db),
):
    """
    Sign up for a training type with an email, a phone number, or both.

    **Duplicate Prevention:**
    - A student (matched by email or phone) can only hold one pending signup
    - An email and a phone registered to two different students are rejected
    """
    signup = await service.create_signup(db, body)
    return success(signup, "Signup created successfully")


@router.get(
    "/signup-links",
    response_model=ApiResponse[list[SignupLink]],
    summary="Signup deep links per training type",
)
async def get_signup_links():
    """URLs to encode in QR codes; each opens the form pre-selected for one training type."""
    return success(service.get_signup_links())


@router.get(
    "/signup/{signup_id}",
    response_model=ApiResponse[SignupResponse],
    summary="Signup confirmation",
)
async def get_signup(signup_id: UUID, db: AsyncSession = Depends(get_db)):
    return success(await service.get_signup(db, signup_id))


@router.get(
    "/{student_id}/signups",
    response_model=ApiResponse[StudentSignupsResponse],
    summary="A student's signups",
)
async def get_student_signups(student_id: UUID, db: AsyncSession = Depends(get_db)):
    return success(await service.get_student_signups(db, student_id))


@router.patch(
    "/{student_id}/opt-out",
    response_model=ApiResponse[StudentResponse],
    summary="Update reminder opt-out",
)
async def update_opt_out(
    student_id: UUID,
    body: OptOutUpdate,
    db: AsyncSession = Depends(get_db),
):
    student = await service.update_opt_out(db, student_id, body)
    return success(student, "Preferences updated")
