from decimal import Decimal
from typing import Any, List
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from dst_crm.core.enums import InstallmentStatus, PaidBasis
from dst_crm.core.money import parse_amount


class InstallmentRow(BaseModel):
    student_id: UUID
    name: str
    surname: str
    mail: str
    vs: str
    period: str
    base_amount: Decimal
    expected: Decimal
    paid: Decimal
    difference: Decimal
    status: InstallmentStatus


class InstallmentReport(BaseModel):
    index: int
    basis: PaidBasis
    rows: List[InstallmentRow]


class RecipientList(BaseModel):
    """Mails of the selected rows, shaped for POST /api/send-mail."""

    recipients: List[str]
    count: int


class AmountOverride(BaseModel):
    amount: Decimal = Field(..., max_digits=12, decimal_places=2)

    @field_validator("amount", mode="before")
    @classmethod
    def to_amount(cls, v: Any) -> Decimal:
        return parse_amount(v)
