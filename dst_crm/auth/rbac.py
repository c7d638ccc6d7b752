from fastapi import Depends, HTTPException, status

from dst_crm.auth.dependencies import get_current_user
from dst_crm.auth.schemas import CurrentUser
from dst_crm.core.enums import UserRole


def require_roles(*roles: UserRole):
    """
    Dependency factory gating a route to the given roles. Admin always passes.

    Example:
        Depends(require_roles(UserRole.TEAM))
    """

    async def _checker(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if current_user.role == UserRole.ADMIN:
            return current_user
        if current_user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return current_user

    return _checker


require_admin = require_roles(UserRole.ADMIN)
# Read-only views shared by admins and the team
require_staff = require_roles(UserRole.ADMIN, UserRole.TEAM)
