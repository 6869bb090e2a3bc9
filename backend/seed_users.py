"""
Database seeding script for the first administrator.

Roles can only be changed by an admin, so the first ADMIN has to be granted
out of band. Run this script after the database is set up:

    python -m backend.seed_users admin@example.com
"""

import argparse
import asyncio

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.db.session import AsyncSessionLocal, Base, engine
from backend.app.models.enums import UserRole
from backend.app.models.user import User
from backend.app.services.audit import log_event, AuditAction

# Register the remaining tables with Base
from backend.app.models.audit_log import AuditLog  # noqa: F401
from backend.app.models.parcel import Parcel  # noqa: F401
from backend.app.models.payment import PaymentRecord  # noqa: F401
from backend.app.models.rider import RiderApplication  # noqa: F401


async def seed_admin(db: AsyncSession, email: str) -> User:
    """
    Grant ADMIN to `email`, creating the user if they never signed in.

    Running it again for an existing admin changes nothing.
    """
    email = email.strip().lower()
    result = await db.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()

    if user and user.role == UserRole.ADMIN:
        print(f"ℹ️  {email} is already an ADMIN, skipping seeding")
        return user

    previous = user.role.value if user else None
    if user is None:
        user = User(email=email, role=UserRole.ADMIN)
        db.add(user)
    else:
        user.role = UserRole.ADMIN

    await db.commit()
    await db.refresh(user)

    await log_event(
        db=db,
        action=AuditAction.ROLE_CHANGED,
        actor_email=None,
        target_email=email,
        metadata={"from": previous, "to": UserRole.ADMIN.value, "source": "seed"}
    )
    print(f"✅ Granted ADMIN to {email}")
    return user


async def main(email: str):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as db:
        await seed_admin(db, email)

    await engine.dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Grant the ADMIN role to a user")
    parser.add_argument("email")
    args = parser.parse_args()
    asyncio.run(main(args.email))
