"""Student schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Any, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from dst_crm.api.v1.imports.schemas import StudentImportItem
from dst_crm.api.v1.payments.schemas import PaymentResponse
from dst_crm.core.money import normalize_vs, parse_amount


class StudentCreate(StudentImportItem):
    """Manual entry: same fields and canonicalization as one imported row."""


class StudentSelfUpdate(BaseModel):
    """Fields a student may change on their own profile."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    surname: Optional[str] = Field(None, min_length=1, max_length=255)
    telephone_number: Optional[str] = Field(None, max_length=50)
    school: Optional[str] = Field(None, max_length=255)
    region: Optional[str] = Field(None, max_length=100)
    iban: Optional[str] = Field(None, max_length=50)
    note: Optional[str] = None

    @field_validator("*", mode="before")
    @classmethod
    def strip_text(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v


class StudentUpdate(StudentSelfUpdate):
    mail: Optional[str] = Field(None, min_length=1, max_length=255)
    vs: Optional[str] = Field(None, max_length=20)
    period: Optional[str] = Field(None, max_length=30)
    amount: Optional[Decimal] = Field(None, max_digits=12, decimal_places=2)
    type_of_payment: Optional[str] = Field(None, max_length=100)

    @field_validator("mail", mode="after")
    @classmethod
    def lower_mail(cls, v: Optional[str]) -> Optional[str]:
        return v.lower() if v is not None else v

    @field_validator("vs", mode="before")
    @classmethod
    def to_vs(cls, v: Any) -> Optional[str]:
        return None if v is None else normalize_vs(v)

    @field_validator("amount", mode="before")
    @classmethod
    def to_amount(cls, v: Any) -> Optional[Decimal]:
        return None if v is None else parse_amount(v)


class StudentResponse(BaseModel):
    id: UUID
    name: str
    surname: str
    mail: str
    telephone_number: str
    school: str
    region: str
    note: str
    iban: str
    vs: str
    period: str
    amount: Decimal
    type_of_payment: str
    imported_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class StudentDetail(StudentResponse):
    payments: List[PaymentResponse] = Field(default_factory=list)


class StudentProfileResponse(BaseModel):
    """Own profile of the signed-in student. student is null when no record carries their email."""

    student: Optional[StudentResponse] = None
    payments: List[PaymentResponse] = Field(default_factory=list)
    paid_amount: Decimal = Decimal("0.00")
    total_amount: Decimal = Decimal("0.00")
    progress_percent: float = 0.0
