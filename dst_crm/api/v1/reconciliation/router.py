from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from dst_crm.api.v1.students.schemas import StudentResponse
from dst_crm.auth.rbac import require_admin, require_staff
from dst_crm.core.enums import InstallmentStatus, PaidBasis
from dst_crm.db.session import get_db

from .schemas import AmountOverride, InstallmentReport, RecipientList
from . import service

router = APIRouter(prefix="/api/v1/reconciliation", tags=["reconciliation"])


def _status_filter(raw: Optional[str]) -> Optional[InstallmentStatus]:
    if not raw or raw == "all":
        return None
    try:
        return InstallmentStatus(raw)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid status filter")


@router.get(
    "/installments",
    response_model=InstallmentReport,
    dependencies=[Depends(require_staff)],
)
async def get_installments(
    index: Optional[int] = Query(1, description="Installment index, clamped to 1..10"),
    status_filter: Optional[str] = Query("all", alias="status", description="all | paid | partial | unpaid | overpaid"),
    basis: PaidBasis = Query(PaidBasis.MATCHED, description="matched: by assigned student, vs: by variable symbol"),
    db: AsyncSession = Depends(get_db),
) -> InstallmentReport:
    return await service.installment_report(db, index, _status_filter(status_filter), basis)


@router.get(
    "/installments/recipients",
    response_model=RecipientList,
    dependencies=[Depends(require_admin)],
)
async def get_installment_recipients(
    index: Optional[int] = Query(1),
    status_filter: Optional[str] = Query("all", alias="status"),
    basis: PaidBasis = Query(PaidBasis.MATCHED),
    db: AsyncSession = Depends(get_db),
) -> RecipientList:
    return await service.installment_recipients(db, index, _status_filter(status_filter), basis)


@router.put(
    "/students/{student_id}/amount",
    response_model=StudentResponse,
    dependencies=[Depends(require_admin)],
)
async def override_amount(
    student_id: UUID,
    payload: AmountOverride,
    db: AsyncSession = Depends(get_db),
) -> StudentResponse:
    student = await service.override_amount(db, student_id, payload.amount)
    if not student:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Student not found")
    return student
