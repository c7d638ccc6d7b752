import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dst_crm.auth.models import User
from dst_crm.core.enums import UserRole

from .schemas import UserResponse

logger = logging.getLogger(__name__)


def _to_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        email=user.email,
        display_name=user.display_name or "",
        role=UserRole.resolve(user.role),
        created_at=user.created_at,
    )


async def list_users(db: AsyncSession) -> List[UserResponse]:
    result = await db.execute(select(User).order_by(User.created_at.desc()))
    return [_to_response(u) for u in result.scalars().all()]


async def change_role(db: AsyncSession, user_id: UUID, role: UserRole) -> Optional[UserResponse]:
    user = await db.get(User, user_id)
    if not user:
        return None
    user.role = role.value
    await db.commit()
    await db.refresh(user)
    logger.info("Role of %s changed to %s", user.email, user.role)
    return _to_response(user)
