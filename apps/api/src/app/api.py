from fastapi import APIRouter

from app.modules.admins.router import router as admins_router
from app.modules.auth.router import router as auth_router
from app.modules.students.admin_router import router as admin_signups_router
from app.modules.students.router import router as students_router

api_router = APIRouter()

api_router.include_router(students_router, prefix="/students", tags=["Students"])

api_router.include_router(auth_router, prefix="/admin/auth", tags=["Admin - Authentication"])

api_router.include_router(admins_router, prefix="/admin/manage", tags=["Admin - Management"])

api_router.include_router(
    admin_signups_router,
    prefix="/admin",
    tags=["Admin - Signups"],
)
