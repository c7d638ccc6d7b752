from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from dst_crm.core.config import settings
from dst_crm.core.enums import MatchStatus
from dst_crm.core.models import Payment, Student
from dst_crm.core.money import from_minor_units, to_minor_units

from .calculator import (
    FinanceTotals,
    academic_month_index,
    finance_totals,
    group_students,
    normalize_region,
    tabulate_periods,
    tabulate_tiers,
)
from .schemas import (
    FinanceBreakdown,
    FinanceBucket,
    FinanceStats,
    OverviewStats,
    StudentStats,
    TierCount,
)


async def _load_students(db: AsyncSession):
    return (await db.execute(select(Student.id, Student.amount, Student.period, Student.region, Student.school))).all()


async def _load_payments(db: AsyncSession):
    return (await db.execute(select(Payment.matched_student_id, Payment.amount))).all()


def _finance_fields(totals: FinanceTotals, month_index: int) -> dict:
    return {
        "academic_month_index": month_index,
        "paid": from_minor_units(totals.paid),
        "expected": from_minor_units(totals.expected),
        "final": from_minor_units(totals.final),
        "difference": from_minor_units(totals.difference),
    }


async def overview(db: AsyncSession, as_of: date) -> OverviewStats:
    total_students = await db.scalar(select(func.count()).select_from(Student))
    status_rows = (
        await db.execute(select(Payment.match_status, func.count()).group_by(Payment.match_status))
    ).all()
    by_status = {row[0]: row[1] for row in status_rows}
    amounts = (await db.execute(select(Payment.amount))).scalars().all()

    total_payments = len(amounts)
    total_paid = sum(to_minor_units(a) for a in amounts)
    average = from_minor_units(round(total_paid / total_payments)) if total_payments else Decimal("0.00")
    return OverviewStats(
        as_of=as_of,
        total_students=total_students or 0,
        total_payments=total_payments,
        total_paid=from_minor_units(total_paid),
        average_payment=average,
        matched_payments=by_status.get(MatchStatus.matched.value, 0),
        unmatched_payments=by_status.get(MatchStatus.unmatched.value, 0),
        ambiguous_payments=by_status.get(MatchStatus.ambiguous.value, 0),
    )


async def finance(db: AsyncSession, as_of: date, region: Optional[str] = None) -> FinanceStats:
    """Whole organization, or one region where only payments matched into it count."""
    month_index = academic_month_index(as_of)
    students = await _load_students(db)
    payments = await _load_payments(db)
    if region:
        code = normalize_region(region)
        subset = [s for s in students if normalize_region(s.region) == code]
        totals = finance_totals(subset, payments, month_index, subset=True)
        return FinanceStats(**_finance_fields(totals, month_index), region=code)
    totals = finance_totals(students, payments, month_index)
    return FinanceStats(**_finance_fields(totals, month_index))


async def finance_breakdown(db: AsyncSession, as_of: date, group_by: str = "region") -> FinanceBreakdown:
    month_index = academic_month_index(as_of)
    students = await _load_students(db)
    payments = await _load_payments(db)
    buckets = []
    for key, members in group_students(students, group_by).items():
        totals = finance_totals(members, payments, month_index, subset=True)
        buckets.append(FinanceBucket(key=key, students=len(members), **_finance_fields(totals, month_index)))
    return FinanceBreakdown(group_by=group_by, academic_month_index=month_index, buckets=buckets)


async def student_stats(db: AsyncSession) -> StudentStats:
    students = await _load_students(db)
    standard = [to_minor_units(t) for t in settings.standard_tiers]
    tabulation = tabulate_tiers(students, standard)
    return StudentStats(
        total_students=len(students),
        periods=tabulate_periods(students),
        tiers=[TierCount(liability=from_minor_units(k), count=v) for k, v in tabulation.tiers.items()],
        other=[TierCount(liability=from_minor_units(k), count=v) for k, v in tabulation.other.items()],
        excluded_from_tiers=tabulation.excluded,
    )
