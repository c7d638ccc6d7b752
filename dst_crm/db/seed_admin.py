"""
Seed the administrator account.

Run once after create_tables with env set:
  ADMIN_EMAIL=admin@example.org
  ADMIN_PASSWORD=YourSecurePassword

Creates or updates:
- users: one user with role admin
- allowed_emails: the admin email (the override lets it in anyway; listing it keeps the whitelist view complete)
"""
import asyncio

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from dst_crm.auth.models import User
from dst_crm.auth.security import hash_password
from dst_crm.core.config import settings
from dst_crm.core.enums import UserRole
from dst_crm.core.models import AllowedEmail
from dst_crm.db.session import AsyncSessionLocal

DEFAULT_ADMIN_DISPLAY_NAME = "Administrator"


async def seed_admin(db: AsyncSession) -> None:
    if not settings.admin_email or not settings.admin_password:
        print("ADMIN_EMAIL / ADMIN_PASSWORD not set; nothing to seed.")
        return
    email = settings.admin_email.strip().lower()

    # 1. Create or update the admin user
    result = await db.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()
    if not user:
        db.add(
            User(
                email=email,
                display_name=DEFAULT_ADMIN_DISPLAY_NAME,
                password_hash=hash_password(settings.admin_password),
                role=UserRole.ADMIN.value,
            )
        )
        print("Created admin user:", email)
    else:
        user.role = UserRole.ADMIN.value
        user.password_hash = hash_password(settings.admin_password)
        print("Updated existing user to admin:", email)

    # 2. Ensure the whitelist entry exists
    allowed = await db.execute(
        select(AllowedEmail.id).where(func.lower(AllowedEmail.email) == email).limit(1)
    )
    if allowed.scalar_one_or_none() is None:
        db.add(AllowedEmail(email=email, approved_from="seed"))
        print("Added admin email to the whitelist.")

    await db.commit()
    print("Admin seed done.")


async def main() -> None:
    async with AsyncSessionLocal() as db:
        try:
            await seed_admin(db)
        except Exception as e:
            await db.rollback()
            print("Error:", e)
            raise


if __name__ == "__main__":
    asyncio.run(main())
