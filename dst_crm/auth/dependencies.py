import logging
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from dst_crm.auth.schemas import CurrentUser
from dst_crm.auth.security import decode_access_token
from dst_crm.auth.services import resolve_role
from dst_crm.db.session import get_db

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login-oauth")


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> CurrentUser:
    """Resolve the session from the access token and read its role record."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = decode_access_token(token)
    except JWTError as e:
        logger.debug("Rejected access token: %s", e)
        raise credentials_exception

    user_id_str = payload.get("sub")
    email = payload.get("email")
    if not user_id_str or not email:
        raise credentials_exception

    try:
        user_id = UUID(user_id_str)
    except ValueError:
        raise credentials_exception

    role = await resolve_role(db, user_id)
    return CurrentUser(id=user_id, email=email, role=role)
