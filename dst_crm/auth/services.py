import logging
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from fastapi import status
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from dst_crm.auth.models import User
from dst_crm.auth.schemas import LoginRequest, LoginResponse, RegisterRequest, UserInfo
from dst_crm.auth.security import create_access_token, hash_password, verify_password
from dst_crm.core.config import settings
from dst_crm.core.enums import UserRole
from dst_crm.core.exceptions import ServiceError
from dst_crm.core.models import AllowedEmail

logger = logging.getLogger(__name__)

NOT_ALLOWED_MESSAGE = "This email has no access to the application"


def is_admin_override(email: str) -> bool:
    return bool(settings.admin_email) and email.strip().lower() == settings.admin_email.strip().lower()


async def is_email_allowed(db: AsyncSession, email: str) -> bool:
    """Administrator override bypasses the whitelist; everyone else must be listed (case-insensitive)."""
    if is_admin_override(email):
        return True
    result = await db.execute(
        select(AllowedEmail.id)
        .where(func.lower(AllowedEmail.email) == email.strip().lower())
        .limit(1)
    )
    return result.scalar_one_or_none() is not None


async def resolve_role(db: AsyncSession, user_id: UUID) -> UserRole:
    """Read the single role record for an identity. Missing record or failed lookup means student."""
    try:
        result = await db.execute(select(User.role).where(User.id == user_id))
        role = result.scalar_one_or_none()
    except SQLAlchemyError:
        logger.warning("Role lookup failed for user %s; defaulting to student", user_id, exc_info=True)
        await db.rollback()
        return UserRole.STUDENT
    if role is None:
        return UserRole.STUDENT
    return UserRole.resolve(role)


def _user_info(user: User) -> UserInfo:
    return UserInfo(
        id=user.id,
        email=user.email,
        display_name=user.display_name,
        role=UserRole.resolve(user.role),
    )


def _issue_token(user: User) -> LoginResponse:
    issued_at = datetime.now(timezone.utc)
    access_token = create_access_token(
        user_id=user.id, email=user.email, role=user.role, issued_at=issued_at
    )
    return LoginResponse(
        access_token=access_token,
        user=_user_info(user),
        issued_at=issued_at,
    )


async def register_user(db: AsyncSession, payload: RegisterRequest) -> LoginResponse:
    # 1. Whitelist check before creating the identity
    if not await is_email_allowed(db, payload.email):
        raise ServiceError(NOT_ALLOWED_MESSAGE, status.HTTP_403_FORBIDDEN)

    # 2. Email must be unique
    existing = await db.execute(select(User.id).where(func.lower(User.email) == payload.email))
    if existing.scalar_one_or_none() is not None:
        raise ServiceError("Email is already in use", status.HTTP_409_CONFLICT)

    role = UserRole.ADMIN if is_admin_override(payload.email) else UserRole.STUDENT
    user = User(
        email=payload.email,
        display_name=(payload.display_name or "").strip(),
        password_hash=hash_password(payload.password),
        role=role.value,
    )
    try:
        db.add(user)
        await db.commit()
        await db.refresh(user)
    except IntegrityError as e:
        await db.rollback()
        raise ServiceError("Email is already in use", status.HTTP_409_CONFLICT) from e

    logger.info("Registered user %s with role %s", user.email, user.role)
    return _issue_token(user)


async def login_user(db: AsyncSession, payload: LoginRequest) -> LoginResponse:
    email = payload.email.strip().lower()

    # 1. Whitelist check before credentials
    if not await is_email_allowed(db, email):
        raise ServiceError(NOT_ALLOWED_MESSAGE, status.HTTP_403_FORBIDDEN)

    # 2. Find user by email (case-insensitive)
    result = await db.execute(select(User).where(func.lower(User.email) == email))
    user: Optional[User] = result.scalar_one_or_none()
    if not user:
        raise ServiceError("Invalid credentials", status.HTTP_401_UNAUTHORIZED)

    # 3. Verify password hash
    if not verify_password(payload.password, user.password_hash):
        raise ServiceError("Invalid credentials", status.HTTP_401_UNAUTHORIZED)

    return _issue_token(user)


async def get_user_info(db: AsyncSession, user_id: UUID) -> Optional[UserInfo]:
    user = await db.get(User, user_id)
    if not user:
        return None
    return _user_info(user)
