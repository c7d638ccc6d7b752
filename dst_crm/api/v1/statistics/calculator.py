"""
Statistics rules. Pure functions over integer minor units.

The academic year starts on September 1. Expected amounts follow the academic
calendar: monthly payers are due every month, half-yearly payers in academic
month 5, yearly payers in academic month 1.
"""

import unicodedata
from collections import Counter
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from dst_crm.core.enums import BillingPeriod
from dst_crm.core.money import to_minor_units

ACADEMIC_YEAR_START_MONTH = 9
HALF_YEAR_DUE_INDEX = 5
YEAR_DUE_INDEX = 1

# Payments per academic year for each billing period
PERIOD_MULTIPLIERS = {
    BillingPeriod.MONTH: 10,
    BillingPeriod.HALF_YEAR: 2,
    BillingPeriod.YEAR: 1,
}

UNKNOWN_REGION = "Neznámy kraj"

# Slovak self-governing regions: code and name stems (diacritics stripped, upper-case)
REGIONS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("BA", ("BRATISLAV",)),
    ("TT", ("TRNAV",)),
    ("TN", ("TRENC",)),
    ("NR", ("NITR",)),
    ("ZA", ("ZILIN",)),
    ("BB", ("BANSKOBYSTR", "BANSKABYSTR")),
    ("PO", ("PRESOV",)),
    ("KE", ("KOSIC",)),
)
REGION_CODES = tuple(code for code, _ in REGIONS)


def academic_month_index(today: date) -> int:
    return ((today.month - ACADEMIC_YEAR_START_MONTH) % 12) + 1


def expected_for_period(amount: int, period: Any, month_index: int) -> int:
    parsed = period if isinstance(period, BillingPeriod) else BillingPeriod.parse(period)
    if parsed == BillingPeriod.MONTH:
        return amount
    if parsed == BillingPeriod.HALF_YEAR:
        return amount if month_index == HALF_YEAR_DUE_INDEX else 0
    if parsed == BillingPeriod.YEAR:
        return amount if month_index == YEAR_DUE_INDEX else 0
    return 0


def period_multiplier(period: Any) -> int:
    parsed = period if isinstance(period, BillingPeriod) else BillingPeriod.parse(period)
    return PERIOD_MULTIPLIERS.get(parsed, 0)


def final_for_period(amount: int, period: Any) -> int:
    """Full academic-year liability."""
    return amount * period_multiplier(period)


def _letters(raw: str) -> str:
    decomposed = unicodedata.normalize("NFKD", raw)
    return "".join(ch for ch in decomposed if ch.isascii() and ch.isalpha()).upper()


def normalize_region(raw: Optional[str]) -> str:
    """Map free-text region to a two-letter code by letter prefix, or the unknown bucket."""
    if not raw or not raw.strip():
        return UNKNOWN_REGION
    # First word decides between a bare code ("ba", "KE kraj") and a name ("Košický kraj")
    first_word = _letters(raw.strip().split()[0])
    if first_word in REGION_CODES:
        return first_word
    letters = _letters(raw)
    for code, stems in REGIONS:
        if any(letters.startswith(stem) for stem in stems):
            return code
    return UNKNOWN_REGION


@dataclass(frozen=True)
class FinanceTotals:
    paid: int
    expected: int
    final: int

    @property
    def difference(self) -> int:
        return self.paid - self.expected


def finance_totals(
    students: Sequence[Any],
    payments: Iterable[Any],
    month_index: int,
    subset: bool = False,
) -> FinanceTotals:
    """
    Without a subset every payment counts, matched or not. With a subset only payments
    matched to one of the given students count.
    """
    student_ids = {s.id for s in students}
    paid = 0
    for p in payments:
        if subset and p.matched_student_id not in student_ids:
            continue
        paid += to_minor_units(p.amount)

    expected = 0
    final = 0
    for s in students:
        amount = to_minor_units(s.amount)
        expected += expected_for_period(amount, s.period, month_index)
        final += final_for_period(amount, s.period)
    return FinanceTotals(paid=paid, expected=expected, final=final)


def tabulate_periods(students: Iterable[Any]) -> Dict[str, int]:
    counts = {p.value: 0 for p in BillingPeriod}
    counts["unknown"] = 0
    for s in students:
        parsed = BillingPeriod.parse(s.period)
        counts[parsed.value if parsed else "unknown"] += 1
    return counts


@dataclass(frozen=True)
class TierTabulation:
    tiers: Dict[int, int]
    other: Dict[int, int]
    excluded: int


def tabulate_tiers(students: Iterable[Any], standard_tiers: Sequence[int]) -> TierTabulation:
    """Bucket full-year liabilities into the standard tiers; everything else is grouped by amount."""
    tiers = {tier: 0 for tier in standard_tiers}
    other: Counter = Counter()
    excluded = 0
    for s in students:
        multiplier = period_multiplier(s.period)
        if not multiplier:
            excluded += 1
            continue
        liability = to_minor_units(s.amount) * multiplier
        if liability in tiers:
            tiers[liability] += 1
        else:
            other[liability] += 1
    return TierTabulation(tiers=tiers, other=dict(sorted(other.items())), excluded=excluded)


def group_students(students: Iterable[Any], group_by: str) -> Dict[str, List[Any]]:
    groups: Dict[str, List[Any]] = {}
    for s in students:
        if group_by == "school":
            key = (s.school or "").strip() or UNKNOWN_REGION
        else:
            key = normalize_region(s.region)
        groups.setdefault(key, []).append(s)
    return dict(sorted(groups.items()))
