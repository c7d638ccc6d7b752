from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel


class OverviewStats(BaseModel):
    as_of: date
    total_students: int
    total_payments: int
    total_paid: Decimal
    average_payment: Decimal
    matched_payments: int
    unmatched_payments: int
    ambiguous_payments: int


class FinanceStats(BaseModel):
    academic_month_index: int
    paid: Decimal
    expected: Decimal
    final: Decimal
    difference: Decimal
    region: Optional[str] = None


class FinanceBucket(FinanceStats):
    key: str
    students: int


class FinanceBreakdown(BaseModel):
    group_by: str
    academic_month_index: int
    buckets: List[FinanceBucket]


class TierCount(BaseModel):
    liability: Decimal
    count: int


class StudentStats(BaseModel):
    total_students: int
    periods: Dict[str, int]
    tiers: List[TierCount]
    other: List[TierCount]
    excluded_from_tiers: int
