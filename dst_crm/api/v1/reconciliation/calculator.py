"""
Installment policy and VS pairing rules. Pure functions over integer minor units.

Installment policy (expected amount after i billing cycles, i clamped to 1..10):
    year       -> B
    half-year  -> B for i <= 5, 2B after
    month      -> B * i (also used for an unrecognized period)

This is not the academic-calendar rule used by statistics; the two are kept apart.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple
from uuid import UUID

from dst_crm.core.enums import BillingPeriod, InstallmentStatus, MatchStatus, PaidBasis
from dst_crm.core.money import normalize_vs, to_minor_units

MIN_INSTALLMENT_INDEX = 1
MAX_INSTALLMENT_INDEX = 10
HALF_YEAR_SPLIT = 5


def clamp_installment_index(index: Optional[int]) -> int:
    if not index:
        return MIN_INSTALLMENT_INDEX
    return max(MIN_INSTALLMENT_INDEX, min(MAX_INSTALLMENT_INDEX, int(index)))


def expected_for_student(base: int, period: Any, index: Optional[int]) -> int:
    idx = clamp_installment_index(index)
    parsed = period if isinstance(period, BillingPeriod) else BillingPeriod.parse(period)
    if parsed == BillingPeriod.YEAR:
        return base
    if parsed == BillingPeriod.HALF_YEAR:
        return base if idx <= HALF_YEAR_SPLIT else base * 2
    return base * idx


def derive_status(expected: int, paid: int) -> InstallmentStatus:
    if expected > 0 and paid == expected:
        return InstallmentStatus.paid
    if paid > expected:
        return InstallmentStatus.overpaid
    if 0 <= paid < expected:
        return InstallmentStatus.partial
    return InstallmentStatus.unpaid


def paid_totals(payments: Iterable[Any], basis: PaidBasis = PaidBasis.MATCHED) -> Dict[Any, int]:
    """
    Sum payment amounts per key: matched_student_id for the matched basis,
    normalized VS for the vs basis. Payments without a key are skipped.
    """
    totals: Dict[Any, int] = defaultdict(int)
    for p in payments:
        key = p.matched_student_id if basis == PaidBasis.MATCHED else normalize_vs(p.vs)
        if not key:
            continue
        totals[key] += to_minor_units(p.amount)
    return totals


def paid_for_student(student: Any, totals: Dict[Any, int], basis: PaidBasis = PaidBasis.MATCHED) -> int:
    key = student.id if basis == PaidBasis.MATCHED else normalize_vs(student.vs)
    if not key:
        return 0
    return totals.get(key, 0)


@dataclass(frozen=True)
class PairingUpdate:
    payment_id: UUID
    matched_student_id: Optional[UUID]
    match_status: MatchStatus


@dataclass
class PairingPlan:
    updates: List[PairingUpdate] = field(default_factory=list)
    matched: int = 0
    ambiguous: int = 0
    unmatched: int = 0
    unchanged: int = 0


def build_vs_index(students: Iterable[Any]) -> Dict[str, List[UUID]]:
    index: Dict[str, List[UUID]] = defaultdict(list)
    for s in students:
        vs = normalize_vs(s.vs)
        if vs:
            index[vs].append(s.id)
    return index


def _resolve(candidates: Sequence[UUID]) -> Tuple[Optional[UUID], MatchStatus]:
    if len(candidates) == 1:
        return candidates[0], MatchStatus.matched
    if len(candidates) > 1:
        return None, MatchStatus.ambiguous
    return None, MatchStatus.unmatched


def plan_auto_pairing(students: Iterable[Any], payments: Iterable[Any]) -> PairingPlan:
    """
    Resolve every payment that is not already matched against students sharing its VS.
    Only payments whose resolved state differs from the stored one produce an update,
    so planning twice over unchanged data yields no updates the second time.
    """
    vs_index = build_vs_index(students)
    plan = PairingPlan()
    for p in payments:
        current_status = p.match_status or MatchStatus.unmatched.value
        if current_status == MatchStatus.matched.value and p.matched_student_id:
            continue
        vs = normalize_vs(p.vs)
        if not vs:
            plan.unchanged += 1
            continue

        student_id, status = _resolve(vs_index.get(vs, []))
        if p.matched_student_id == student_id and current_status == status.value:
            plan.unchanged += 1
            continue

        plan.updates.append(PairingUpdate(p.id, student_id, status))
        if status == MatchStatus.matched:
            plan.matched += 1
        elif status == MatchStatus.ambiguous:
            plan.ambiguous += 1
        else:
            plan.unmatched += 1
    return plan
