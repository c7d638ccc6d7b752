from enum import Enum
from typing import Any, Optional


class UserRole(str, Enum):
    ADMIN = "admin"
    TEAM = "team"
    STUDENT = "student"

    @classmethod
    def resolve(cls, value: Any) -> "UserRole":
        """Map a stored role value to a role; anything unknown is a student."""
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.STUDENT


_PERIOD_SPELLINGS = {
    "year": ("year", "yearly", "annual", "annually"),
    "half-year": ("half-year", "halfyear", "half year", "half-yearly", "half_year", "semester"),
    "month": ("month", "monthly"),
}


class BillingPeriod(str, Enum):
    YEAR = "year"
    HALF_YEAR = "half-year"
    MONTH = "month"

    @classmethod
    def parse(cls, raw: Any) -> Optional["BillingPeriod"]:
        """Case-insensitive parse with spelling variants. None when unrecognized."""
        if raw is None:
            return None
        text = str(raw).strip().lower()
        for value, spellings in _PERIOD_SPELLINGS.items():
            if text in spellings:
                return cls(value)
        return None


class MatchStatus(str, Enum):
    matched = "matched"
    unmatched = "unmatched"
    ambiguous = "ambiguous"


class InstallmentStatus(str, Enum):
    paid = "paid"
    partial = "partial"
    unpaid = "unpaid"
    overpaid = "overpaid"


class PaidBasis(str, Enum):
    """How payments are attributed to a student when summing what was paid."""

    MATCHED = "matched"  # by matched_student_id
    VS = "vs"  # by variable symbol string


class AccessRequestStatus(str, Enum):
    pending = "pending"
