import logging
from typing import List, Optional
from uuid import UUID

from fastapi import status
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from dst_crm.core.enums import AccessRequestStatus
from dst_crm.core.exceptions import ServiceError
from dst_crm.core.models import AccessRequest, AllowedEmail

from .schemas import (
    AccessRequestCreate,
    AccessRequestResponse,
    AllowedEmailCreate,
    AllowedEmailResponse,
)

logger = logging.getLogger(__name__)


async def _find_allowed(db: AsyncSession, email: str) -> Optional[AllowedEmail]:
    result = await db.execute(
        select(AllowedEmail).where(func.lower(AllowedEmail.email) == email.lower()).limit(1)
    )
    return result.scalar_one_or_none()


async def list_allowed_emails(db: AsyncSession) -> List[AllowedEmailResponse]:
    result = await db.execute(select(AllowedEmail).order_by(AllowedEmail.added_at.desc()))
    return [AllowedEmailResponse.model_validate(a) for a in result.scalars().all()]


async def add_allowed_email(db: AsyncSession, payload: AllowedEmailCreate) -> AllowedEmailResponse:
    # Uniqueness is an application check only; there is no DB constraint behind it.
    if await _find_allowed(db, payload.email):
        raise ServiceError("This email is already on the whitelist", status.HTTP_409_CONFLICT)
    entry = AllowedEmail(email=payload.email)
    db.add(entry)
    await db.commit()
    await db.refresh(entry)
    logger.info("Whitelisted %s", entry.email)
    return AllowedEmailResponse.model_validate(entry)


async def delete_allowed_email(db: AsyncSession, allowed_email_id: UUID) -> bool:
    entry = await db.get(AllowedEmail, allowed_email_id)
    if not entry:
        return False
    await db.delete(entry)
    await db.commit()
    logger.info("Removed %s from whitelist", entry.email)
    return True


async def create_access_request(db: AsyncSession, payload: AccessRequestCreate) -> AccessRequestResponse:
    request = AccessRequest(
        email=payload.email,
        message=(payload.message or "").strip(),
        status=AccessRequestStatus.pending.value,
    )
    db.add(request)
    await db.commit()
    await db.refresh(request)
    return AccessRequestResponse.model_validate(request)


async def list_pending_requests(db: AsyncSession) -> List[AccessRequestResponse]:
    result = await db.execute(
        select(AccessRequest)
        .where(AccessRequest.status == AccessRequestStatus.pending.value)
        .order_by(AccessRequest.requested_at.desc())
    )
    return [AccessRequestResponse.model_validate(r) for r in result.scalars().all()]


async def approve_request(db: AsyncSession, request_id: UUID) -> Optional[AllowedEmailResponse]:
    """Whitelist the requester and drop the request. None when the request does not exist."""
    request = await db.get(AccessRequest, request_id)
    if not request:
        return None
    if await _find_allowed(db, request.email):
        raise ServiceError("This email is already on the whitelist", status.HTTP_409_CONFLICT)
    entry = AllowedEmail(email=request.email, approved_from="registration")
    db.add(entry)
    await db.execute(delete(AccessRequest).where(AccessRequest.id == request_id))
    await db.commit()
    await db.refresh(entry)
    logger.info("Approved access request from %s", entry.email)
    return AllowedEmailResponse.model_validate(entry)


async def reject_request(db: AsyncSession, request_id: UUID) -> bool:
    request = await db.get(AccessRequest, request_id)
    if not request:
        return False
    await db.delete(request)
    await db.commit()
    logger.info("Rejected access request from %s", request.email)
    return True
