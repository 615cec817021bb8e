"""
Seed Super Admin

Creates the initial super-admin account for the training signup dashboard.
Run this script once to set up the first admin; further admins are created
from the dashboard.

Credentials come from the command line or from the SEED_ADMIN_EMAIL,
SEED_ADMIN_PASSWORD and SEED_ADMIN_NAME environment variables.

Usage:
    cd apps/api
    SEED_ADMIN_PASSWORD='...' python scripts/seed_super_admin.py --email admin@example.com
"""

import argparse
import asyncio
import os
import sys
from pathlib import Path

# Add the src directory to the path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from app.core.config import settings
from app.core.security import hash_password
from app.modules.admins.models import AdminRole
from app.modules.admins.repository import AdminRepository

MIN_PASSWORD_LENGTH = 8


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create the initial super-admin account.")
    parser.add_argument("--email", default=os.getenv("SEED_ADMIN_EMAIL"))
    parser.add_argument("--password", default=os.getenv("SEED_ADMIN_PASSWORD"))
    parser.add_argument("--name", default=os.getenv("SEED_ADMIN_NAME", "Super Admin"))
    args = parser.parse_args()

    if not args.email or not args.password:
        parser.error("an email and a password are required (flags or SEED_ADMIN_* env vars)")
    if len(args.password) < MIN_PASSWORD_LENGTH:
        parser.error(f"password must be at least {MIN_PASSWORD_LENGTH} characters")
    return args


async def seed_super_admin(email: str, password: str, name: str) -> None:
    """Create the super-admin if no admin with that email exists."""
    email = email.strip().lower()

    engine = create_async_engine(settings.database_url, echo=False)
    async_session = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with async_session() as db:
        existing = await AdminRepository.get_by_email(db, email)
        if existing:
            print(f"Admin already exists: {email}")
            print(f"  ID: {existing.id}")
            print(f"  Role: {existing.role.value}")
        else:
            admin = await AdminRepository.create(
                db,
                email=email,
                password_hash=hash_password(password),
                name=name,
                role=AdminRole.SUPER_ADMIN,
            )
            print("Super admin created successfully!")
            print(f"  Email: {admin.email}")
            print(f"  Name: {admin.name}")
            print(f"  ID: {admin.id}")

    await engine.dispose()


if __name__ == "__main__":
    cli = parse_args()
    asyncio.run(seed_super_admin(cli.email, cli.password, cli.name))
