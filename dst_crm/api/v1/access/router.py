"""Whitelist management and access requests."""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from dst_crm.auth.rbac import require_admin
from dst_crm.core.exceptions import ServiceError
from dst_crm.db.session import get_db

from .schemas import (
    AccessRequestCreate,
    AccessRequestResponse,
    AllowedEmailCreate,
    AllowedEmailResponse,
)
from . import service

router = APIRouter(prefix="/api/v1/access", tags=["access"])


# --- Whitelist ---
@router.get(
    "/allowed-emails",
    response_model=List[AllowedEmailResponse],
    dependencies=[Depends(require_admin)],
)
async def list_allowed_emails(db: AsyncSession = Depends(get_db)) -> List[AllowedEmailResponse]:
    return await service.list_allowed_emails(db)


@router.post(
    "/allowed-emails",
    response_model=AllowedEmailResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def add_allowed_email(
    payload: AllowedEmailCreate,
    db: AsyncSession = Depends(get_db),
) -> AllowedEmailResponse:
    try:
        return await service.add_allowed_email(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete(
    "/allowed-emails/{allowed_email_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_admin)],
)
async def delete_allowed_email(
    allowed_email_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> None:
    if not await service.delete_allowed_email(db, allowed_email_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Allowed email not found")


# --- Access requests ---
@router.post(
    "/requests",
    response_model=AccessRequestResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_access_request(
    payload: AccessRequestCreate,
    db: AsyncSession = Depends(get_db),
) -> AccessRequestResponse:
    """Public: anyone may ask for access; an admin approves or rejects."""
    return await service.create_access_request(db, payload)


@router.get(
    "/requests",
    response_model=List[AccessRequestResponse],
    dependencies=[Depends(require_admin)],
)
async def list_access_requests(db: AsyncSession = Depends(get_db)) -> List[AccessRequestResponse]:
    return await service.list_pending_requests(db)


@router.post(
    "/requests/{request_id}/approve",
    response_model=AllowedEmailResponse,
    dependencies=[Depends(require_admin)],
)
async def approve_access_request(
    request_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> AllowedEmailResponse:
    try:
        allowed = await service.approve_request(db, request_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    if not allowed:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Access request not found")
    return allowed


@router.post(
    "/requests/{request_id}/reject",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_admin)],
)
async def reject_access_request(
    request_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> None:
    if not await service.reject_request(db, request_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Access request not found")
