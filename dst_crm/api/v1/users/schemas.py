from datetime import datetime
from uuid import UUID

from pydantic import BaseModel

from dst_crm.core.enums import UserRole


class UserResponse(BaseModel):
    id: UUID
    email: str
    display_name: str
    role: UserRole
    created_at: datetime


class RoleUpdate(BaseModel):
    role: UserRole
