"""
Admin Management Router

Super-admin endpoints for managing admin accounts (mounted at /api/admin/manage).

Endpoints:
- GET    /            - List admins (filter by role, active flag, search)
- GET    /stats       - Admin counts
- POST   /            - Create an admin
- GET    /{id}        - Admin details
- PUT    /{id}        - Update profile fields
- PUT    /{id}/role   - Change role (not your own)
- DELETE /{id}        - Deactivate (not yourself); ends their sessions
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import AuthenticatedAdmin, require_super_admin
from app.core.database import get_db
from app.core.responses import ApiResponse, success
from app.modules.admins import service
from app.modules.admins.models import AdminRole
from app.modules.admins.schemas import (
    AdminCreate,
    AdminDeactivateResponse,
    AdminListResponse,
    AdminResponse,
    AdminRoleUpdate,
    AdminStatsResponse,
    AdminUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=ApiResponse[AdminListResponse], summary="List admins")
async def list_admins(
    role: AdminRole | None = Query(None),
    is_active: bool | None = Query(None),
    search: str | None = Query(None, max_length=100, description="Name or email substring"),
    _current: AuthenticatedAdmin = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
):
    result = await service.list_admins(db, role=role, is_active=is_active, search=search)
    return success(result)


@router.get("/stats", response_model=ApiResponse[AdminStatsResponse], summary="Admin stats")
async def admin_stats(
    _current: AuthenticatedAdmin = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
):
    return success(await service.get_stats(db))


@router.post(
    "",
    response_model=ApiResponse[AdminResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create an admin",
)
async def create_admin(
    body: AdminCreate,
    current: AuthenticatedAdmin = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
):
    admin = await service.create_admin(db, body, current)
    return success(admin, "Admin created")


@router.get("/{admin_id}", response_model=ApiResponse[AdminResponse], summary="Get an admin")
async def get_admin(
    admin_id: UUID,
    _current: AuthenticatedAdmin = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
):
    return success(await service.get_admin(db, admin_id))


@router.put("/{admin_id}", response_model=ApiResponse[AdminResponse], summary="Update an admin")
async def update_admin(
    admin_id: UUID,
    body: AdminUpdate,
    current: AuthenticatedAdmin = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
):
    admin = await service.update_admin(db, admin_id, body, current)
    return success(admin, "Admin updated")


@router.put(
    "/{admin_id}/role",
    response_model=ApiResponse[AdminResponse],
    summary="Change an admin's role",
)
async def change_role(
    admin_id: UUID,
    body: AdminRoleUpdate,
    current: AuthenticatedAdmin = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
):
    admin = await service.change_role(db, admin_id, body.role, current)
    return success(admin, "Role updated")


@router.delete(
    "/{admin_id}",
    response_model=ApiResponse[AdminDeactivateResponse],
    summary="Deactivate an admin",
)
async def deactivate_admin(
    admin_id: UUID,
    current: AuthenticatedAdmin = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
):
    result = await service.deactivate_admin(db, admin_id, current)
    return success(result, "Admin deactivated")
