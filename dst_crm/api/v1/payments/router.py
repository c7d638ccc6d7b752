"""Payments: listing, manual pairing and VS auto-pairing."""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from dst_crm.auth.rbac import require_admin, require_staff
from dst_crm.core.enums import MatchStatus
from dst_crm.core.exceptions import ServiceError
from dst_crm.db.session import get_db

from .schemas import AssignPaymentRequest, AutoPairResponse, PaymentResponse, StudentCandidate
from . import service

router = APIRouter(prefix="/api/v1/payments", tags=["payments"])


@router.get(
    "",
    response_model=List[PaymentResponse],
    dependencies=[Depends(require_staff)],
)
async def list_payments(
    status_filter: Optional[str] = Query("all", alias="status", description="all | matched | unmatched | ambiguous"),
    db: AsyncSession = Depends(get_db),
) -> List[PaymentResponse]:
    match_status = None
    if status_filter and status_filter != "all":
        try:
            match_status = MatchStatus(status_filter)
        except ValueError:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid status filter")
    return await service.list_payments(db, match_status)


@router.get(
    "/candidates",
    response_model=List[StudentCandidate],
    dependencies=[Depends(require_admin)],
)
async def list_candidates(
    vs: str = Query(..., description="Variable symbol to look up"),
    db: AsyncSession = Depends(get_db),
) -> List[StudentCandidate]:
    return await service.find_candidates(db, vs)


@router.post(
    "/auto-pair",
    response_model=AutoPairResponse,
    dependencies=[Depends(require_admin)],
)
async def auto_pair(db: AsyncSession = Depends(get_db)) -> AutoPairResponse:
    """Match payments to students by VS. Running it twice without data changes writes nothing."""
    try:
        return await service.auto_pair(db)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post(
    "/{payment_id}/assign",
    response_model=PaymentResponse,
    dependencies=[Depends(require_admin)],
)
async def assign_payment(
    payment_id: UUID,
    payload: AssignPaymentRequest,
    db: AsyncSession = Depends(get_db),
) -> PaymentResponse:
    try:
        return await service.assign_payment(db, payment_id, payload.student_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete(
    "/{payment_id}/assignment",
    response_model=PaymentResponse,
    dependencies=[Depends(require_admin)],
)
async def unassign_payment(
    payment_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> PaymentResponse:
    payment = await service.unassign_payment(db, payment_id)
    if not payment:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Payment not found")
    return payment


@router.delete(
    "/{payment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_admin)],
)
async def delete_payment(
    payment_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> None:
    if not await service.delete_payment(db, payment_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Payment not found")
