"""
Seed Admin User

Creates the initial admin account and prints a locally signed access token
for it. Run once per environment after ``alembic upgrade head``.

Usage:
    ADMIN_EMAIL=admin@example.com ADMIN_NAME="Platform Admin" python scripts/seed_admin.py
"""

import asyncio
import os

from career_findr.core.database import async_session_maker, close_db
from career_findr.core.security import create_access_token
from career_findr.modules.users.models import UserRole
from career_findr.modules.users.repository import UserRepository


async def seed_admin() -> None:
    """Create the admin user if it doesn't exist."""
    email = os.environ.get("ADMIN_EMAIL", "admin@careerfindr.dev")
    full_name = os.environ.get("ADMIN_NAME", "Platform Admin")

    async with async_session_maker() as db:
        admin = await UserRepository.get_by_email(db, email)

        if admin:
            print(f"Admin already exists: {email}")
        else:
            admin = await UserRepository.create(
                db,
                email=email,
                full_name=full_name,
                role=UserRole.ADMIN,
                is_verified=True,
                is_approved=True,
            )
            await db.commit()
            print("Admin created successfully!")

        print(f"  Email: {admin.email}")
        print(f"  ID: {admin.id}")
        print(f"  Role: {admin.role.value}")

        token = create_access_token(
            str(admin.id),
            additional_claims={"role": admin.role.value, "email": admin.email},
        )
        print(f"  Access token: {token}")

    await close_db()


if __name__ == "__main__":
    asyncio.run(seed_admin())
