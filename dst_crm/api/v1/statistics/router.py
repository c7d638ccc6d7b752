"""Read-only statistics for admins and the team. Calendar rules use ?as_of=, default today."""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from dst_crm.auth.rbac import require_staff
from dst_crm.db.session import get_db

from .schemas import FinanceBreakdown, FinanceStats, OverviewStats, StudentStats
from . import service

router = APIRouter(
    prefix="/api/v1/statistics",
    tags=["statistics"],
    dependencies=[Depends(require_staff)],
)


@router.get("/overview", response_model=OverviewStats)
async def get_overview(
    as_of: Optional[date] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> OverviewStats:
    return await service.overview(db, as_of or date.today())


@router.get("/finance", response_model=FinanceStats)
async def get_finance(
    region: Optional[str] = Query(None, description="Region code or name, e.g. BA or Košický kraj"),
    as_of: Optional[date] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> FinanceStats:
    return await service.finance(db, as_of or date.today(), region)


@router.get("/finance/breakdown", response_model=FinanceBreakdown)
async def get_finance_breakdown(
    group_by: str = Query("region", pattern="^(region|school)$"),
    as_of: Optional[date] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> FinanceBreakdown:
    return await service.finance_breakdown(db, as_of or date.today(), group_by)


@router.get("/students", response_model=StudentStats)
async def get_student_stats(
    as_of: Optional[date] = Query(
        None,
        description="Accepted like on the other statistics endpoints; period counts and tiers do not depend on the date",
    ),
    db: AsyncSession = Depends(get_db),
) -> StudentStats:
    """Period counts and fee tiers."""
    return await service.student_stats(db)
