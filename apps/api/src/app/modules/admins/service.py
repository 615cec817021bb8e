"""
Admin Management Service

Super-admin operations over admin accounts. Accounts are deactivated,
never deleted; deactivating an account ends all of its sessions.
"""

import logging
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import AuthenticatedAdmin
from app.core.email import mask_email
from app.core.errors import BusinessLogicError, ConflictError, NotFoundError, rollback_and_translate
from app.core.security import hash_password
from app.modules.admins.models import Admin, AdminRole
from app.modules.admins.repository import AdminRepository
from app.modules.admins.schemas import (
    AdminCreate,
    AdminDeactivateResponse,
    AdminListResponse,
    AdminResponse,
    AdminStatsResponse,
    AdminUpdate,
)
from app.modules.auth import session_repository

logger = logging.getLogger(__name__)


async def _get_or_404(db: AsyncSession, admin_id: UUID) -> Admin:
    admin = await AdminRepository.get_by_id(db, admin_id)
    if admin is None:
        raise NotFoundError("Admin not found.", error_code="ADMIN_NOT_FOUND")
    return admin


async def _ensure_email_available(db: AsyncSession, email: str) -> None:
    if await AdminRepository.email_exists(db, email):
        raise ConflictError(
            "An admin with this email already exists.", error_code="EMAIL_ALREADY_EXISTS"
        )


async def list_admins(
    db: AsyncSession,
    role: AdminRole | None = None,
    is_active: bool | None = None,
    search: str | None = None,
) -> AdminListResponse:
    admins = await AdminRepository.list_admins(db, role=role, is_active=is_active, search=search)
    return AdminListResponse(
        admins=[AdminResponse.model_validate(a) for a in admins],
        total=len(admins),
    )


async def get_stats(db: AsyncSession) -> AdminStatsResponse:
    return AdminStatsResponse(**await AdminRepository.get_stats(db))


async def get_admin(db: AsyncSession, admin_id: UUID) -> AdminResponse:
    return AdminResponse.model_validate(await _get_or_404(db, admin_id))


async def create_admin(
    db: AsyncSession, data: AdminCreate, actor: AuthenticatedAdmin
) -> AdminResponse:
    """
    Create an admin account.

    Raises:
        ConflictError 409: Email already registered
    """
    email = data.email.lower()
    await _ensure_email_available(db, email)

    try:
        admin = await AdminRepository.create(
            db,
            email=email,
            password_hash=hash_password(data.password),
            name=data.name.strip(),
            phone=data.phone,
            role=data.role,
        )
    except SQLAlchemyError as e:
        raise await rollback_and_translate(db, e, "create_admin") from e

    logger.info(f"Admin {actor.id} created admin {admin.id} ({mask_email(email)})")
    return AdminResponse.model_validate(admin)


async def update_admin(
    db: AsyncSession,
    admin_id: UUID,
    data: AdminUpdate,
    actor: AuthenticatedAdmin,
) -> AdminResponse:
    """
    Update profile fields (and active flag) of an admin.

    Raises:
        NotFoundError 404: No such admin
        ConflictError 409: New email already registered
        BusinessLogicError 422: Deactivating your own account
    """
    admin = await _get_or_404(db, admin_id)
    changes = data.model_dump(exclude_unset=True)

    if "email" in changes and changes["email"] is not None:
        changes["email"] = changes["email"].lower()
        if changes["email"] != admin.email.lower():
            await _ensure_email_available(db, changes["email"])

    if changes.get("is_active") is False and admin.id == actor.id:
        raise BusinessLogicError(
            "You cannot deactivate your own account.", error_code="CANNOT_DEACTIVATE_SELF"
        )

    admin = await AdminRepository.update(db, admin, **changes)

    if changes.get("is_active") is False:
        await session_repository.invalidate_all_sessions(db, admin.id)

    logger.info(f"Admin {actor.id} updated admin {admin.id} ({', '.join(sorted(changes))})")
    return AdminResponse.model_validate(admin)


async def change_role(
    db: AsyncSession,
    admin_id: UUID,
    role: AdminRole,
    actor: AuthenticatedAdmin,
) -> AdminResponse:
    """
    Change an admin's role.

    Raises:
        BusinessLogicError 422: Changing your own role
    """
    if admin_id == actor.id:
        raise BusinessLogicError(
            "You cannot change your own role.", error_code="CANNOT_CHANGE_OWN_ROLE"
        )

    admin = await _get_or_404(db, admin_id)
    previous = admin.role
    admin = await AdminRepository.update(db, admin, role=role)

    logger.info(f"Admin {actor.id} changed role of {admin.id}: {previous.value} -> {role.value}")
    return AdminResponse.model_validate(admin)


async def deactivate_admin(
    db: AsyncSession, admin_id: UUID, actor: AuthenticatedAdmin
) -> AdminDeactivateResponse:
    """
    Deactivate an admin and end all of their sessions.

    Raises:
        BusinessLogicError 422: Deactivating your own account
    """
    if admin_id == actor.id:
        raise BusinessLogicError(
            "You cannot deactivate your own account.", error_code="CANNOT_DEACTIVATE_SELF"
        )

    admin = await _get_or_404(db, admin_id)
    if admin.is_active:
        admin = await AdminRepository.update(db, admin, is_active=False)

    revoked = await session_repository.invalidate_all_sessions(db, admin.id)

    logger.info(f"Admin {actor.id} deactivated admin {admin.id}, {revoked} session(s) revoked")
    return AdminDeactivateResponse(
        admin=AdminResponse.model_validate(admin), sessions_revoked=revoked
    )
