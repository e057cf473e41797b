#!/usr/bin/env python3
"""Initialize the specialist account for the inspections backend.

Creates the account (or resets its password and reactivates it) and prints
a bearer token for it. Run after migrations:
    python scripts/init_admin.py
"""

import asyncio
import os

from sqlalchemy import select
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from app.core.config import settings
from app.core.security import create_access_token, get_password_hash
from app.models.user import User, UserRole


# Default admin credentials - override with environment variables
ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@inspections.local")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "Admin123!@#Strong")
ADMIN_FIRST_NAME = os.getenv("ADMIN_FIRST_NAME", "System")
ADMIN_LAST_NAME = os.getenv("ADMIN_LAST_NAME", "Administrator")

# Database URL from environment
DATABASE_URL = os.getenv("DATABASE_URL", settings.database_url)


async def init_admin():
    """Create or update the specialist user."""
    print("Connecting to database...")

    engine = create_async_engine(DATABASE_URL, echo=False)
    async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with async_session() as db:
        result = await db.execute(select(User).where(User.email == ADMIN_EMAIL))
        user = result.scalar_one_or_none()

        if user:
            print(f"User '{ADMIN_EMAIL}' already exists")
            user.hashed_password = get_password_hash(ADMIN_PASSWORD)
            user.is_active = True
            user.role = UserRole.SPECIALIST
            await db.commit()
            print(f"User '{ADMIN_EMAIL}' reactivated and password reset")
        else:
            user = User(
                email=ADMIN_EMAIL,
                hashed_password=get_password_hash(ADMIN_PASSWORD),
                first_name=ADMIN_FIRST_NAME,
                last_name=ADMIN_LAST_NAME,
                role=UserRole.SPECIALIST,
                is_active=True,
            )
            db.add(user)
            await db.commit()
            print(f"Specialist '{ADMIN_EMAIL}' created")

        token = create_access_token(subject=str(user.id), role=user.role.value)

        print(f"\nEmail: {ADMIN_EMAIL}")
        print(f"Role: {UserRole.SPECIALIST.value}")
        print(f"Token: {token}")

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(init_admin())
