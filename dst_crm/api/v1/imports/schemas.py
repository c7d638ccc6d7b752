"""Import file rows and the import summary. Each row is canonicalized here, once."""

import datetime
from decimal import Decimal
from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator

from dst_crm.core.money import normalize_vs, parse_amount

DATE_FORMATS = ("%Y-%m-%d", "%d.%m.%Y", "%d. %m. %Y", "%d/%m/%Y")


def _text(v: Any) -> str:
    if v is None:
        return ""
    return str(v).strip()


class StudentImportItem(BaseModel):
    """One element of the students JSON array. mail, name and surname are required."""

    name: str = Field(..., min_length=1, max_length=255)
    surname: str = Field(..., min_length=1, max_length=255)
    mail: str = Field(..., min_length=1, max_length=255)
    region: str = Field("", max_length=100)
    school: str = Field("", max_length=255)
    telephone_number: str = Field("", alias="telephoneNumber", max_length=50)
    type_of_payment: str = Field("", alias="typeOfPayment", max_length=100)
    period: str = Field("", max_length=30)
    amount: Decimal = Field(Decimal("0.00"), max_digits=12, decimal_places=2)
    iban: str = Field("", max_length=50)
    note: str = ""
    vs: str = Field("", max_length=20)

    class Config:
        populate_by_name = True
        extra = "ignore"

    @field_validator(
        "name", "surname", "mail", "region", "school", "telephone_number",
        "type_of_payment", "period", "iban", "note",
        mode="before",
    )
    @classmethod
    def to_text(cls, v: Any) -> str:
        return _text(v)

    @field_validator("mail", mode="after")
    @classmethod
    def lower_mail(cls, v: str) -> str:
        return v.lower()

    @field_validator("amount", mode="before")
    @classmethod
    def to_amount(cls, v: Any) -> Decimal:
        return parse_amount(v)

    @field_validator("vs", mode="before")
    @classmethod
    def to_vs(cls, v: Any) -> str:
        return normalize_vs(v)


class PaymentImportItem(BaseModel):
    """One element of the payments JSON array. No field is required."""

    date: Optional[datetime.date] = None
    amount: Decimal = Field(Decimal("0.00"), max_digits=12, decimal_places=2)
    sender_iban: str = Field("", alias="senderIban", max_length=50)
    sender_name: str = Field("", alias="senderName", max_length=255)
    vs: str = Field("", max_length=20)
    message: str = ""

    class Config:
        populate_by_name = True
        extra = "ignore"

    @field_validator("sender_iban", "sender_name", "message", mode="before")
    @classmethod
    def to_text(cls, v: Any) -> str:
        return _text(v)

    @field_validator("amount", mode="before")
    @classmethod
    def to_amount(cls, v: Any) -> Decimal:
        return parse_amount(v)

    @field_validator("vs", mode="before")
    @classmethod
    def to_vs(cls, v: Any) -> str:
        return normalize_vs(v)

    @field_validator("date", mode="before")
    @classmethod
    def to_date(cls, v: Any) -> Optional[datetime.date]:
        """Unparseable dates are dropped rather than failing the row."""
        if isinstance(v, datetime.datetime):
            return v.date()
        if v is None or isinstance(v, datetime.date):
            return v
        text = str(v).strip()
        if not text:
            return None
        try:
            return datetime.datetime.fromisoformat(text.replace("Z", "+00:00")).date()
        except ValueError:
            pass
        for fmt in DATE_FORMATS:
            try:
                return datetime.datetime.strptime(text, fmt).date()
            except ValueError:
                continue
        return None


class ImportFailure(BaseModel):
    row: int = Field(..., description="1-based position in the uploaded array")
    reason: str


class ImportSummary(BaseModel):
    success_count: int = 0
    error_count: int = 0
    failures: List[ImportFailure] = Field(default_factory=list)

    def fail(self, row: int, reason: str) -> None:
        self.error_count += 1
        self.failures.append(ImportFailure(row=row, reason=reason))
