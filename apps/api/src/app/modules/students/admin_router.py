"""
Signups Admin Router

Dashboard endpoints for admins (mounted at /api/admin).

Endpoints:
- GET    /signups         - Full signup table; optional filter / search / sort / page
- GET    /signups/stats   - Counts by status and training type
- PATCH  /signups/{id}    - Update status, reminder date or notes (admin)
- DELETE /signups/{id}    - Delete a signup (admin)
- GET    /students        - List students

Viewers can read; changes need the admin role.
"""

import logging
from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import AuthenticatedAdmin, require_admin, require_viewer
from app.core.database import get_db
from app.core.errors import translate_error
from app.core.responses import ApiResponse, success
from app.modules.students import service
from app.modules.students.models import ClassType, SignupStatus
from app.modules.students.schemas import (
    DashboardQuery,
    ReminderStatus,
    SignupListResponse,
    SignupResponse,
    SignupStats,
    SignupUpdate,
    SortField,
    SortOrder,
    StudentListResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def dashboard_query(
    class_type: ClassType | None = Query(None),
    status: SignupStatus | None = Query(None),
    date_from: date | None = Query(None, description="Created on or after (UTC day)"),
    date_to: date | None = Query(None, description="Created on or before (UTC day)"),
    reminder_status: ReminderStatus | None = Query(None),
    search: str | None = Query(None, max_length=200),
    sort_by: SortField | None = Query(None),
    sort_order: SortOrder | None = Query(None),
    page: int | None = Query(None, ge=1),
    page_size: int | None = Query(None, ge=1, le=500),
) -> DashboardQuery:
    """Collect the optional dashboard query parameters."""
    try:
        return DashboardQuery(
            class_type=class_type,
            status=status,
            date_from=date_from,
            date_to=date_to,
            reminder_status=reminder_status,
            search=search,
            sort_by=sort_by,
            sort_order=sort_order,
            page=page,
            page_size=page_size,
        )
    except PydanticValidationError as e:
        raise translate_error(e, "dashboard_query") from e


@router.get(
    "/signups",
    response_model=ApiResponse[SignupListResponse],
    summary="List signups",
)
async def list_signups(
    query: DashboardQuery = Depends(dashboard_query),
    _current: AuthenticatedAdmin = Depends(require_viewer),
    db: AsyncSession = Depends(get_db),
):
    """
    Return every signup.

    Without query parameters the full table is returned unfiltered. Any
    parameter switches on in-memory filtering, search, sorting (missing
    values last) and paging (default page size 10, newest first).
    """
    return success(await service.list_signups(db, query))


@router.get(
    "/signups/stats",
    response_model=ApiResponse[SignupStats],
    summary="Signup statistics",
)
async def signup_stats(
    _current: AuthenticatedAdmin = Depends(require_viewer),
    db: AsyncSession = Depends(get_db),
):
    return success(await service.get_signup_stats(db))


@router.patch(
    "/signups/{signup_id}",
    response_model=ApiResponse[SignupResponse],
    summary="Update a signup",
)
async def update_signup(
    signup_id: UUID,
    body: SignupUpdate,
    current: AuthenticatedAdmin = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    signup = await service.update_signup(db, signup_id, body, current)
    return success(signup, "Signup updated")


@router.delete(
    "/signups/{signup_id}",
    response_model=ApiResponse[None],
    summary="Delete a signup",
)
async def delete_signup(
    signup_id: UUID,
    current: AuthenticatedAdmin = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    await service.delete_signup(db, signup_id, current)
    return success(message="Signup deleted")


@router.get(
    "/students",
    response_model=ApiResponse[StudentListResponse],
    summary="List students",
)
async def list_students(
    search: str | None = Query(None, max_length=200, description="Email or phone substring"),
    _current: AuthenticatedAdmin = Depends(require_viewer),
    db: AsyncSession = Depends(get_db),
):
    return success(await service.list_students(db, search=search))
