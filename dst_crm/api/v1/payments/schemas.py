"""Payment schemas."""

import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel

from dst_crm.core.enums import MatchStatus


class PaymentResponse(BaseModel):
    id: UUID
    vs: str
    amount: Decimal
    date: Optional[datetime.date] = None
    message: str
    sender_name: str
    sender_iban: str
    matched_student_id: Optional[UUID] = None
    match_status: MatchStatus
    created_at: datetime.datetime

    class Config:
        from_attributes = True


class AssignPaymentRequest(BaseModel):
    student_id: UUID


class AutoPairResponse(BaseModel):
    matched: int
    ambiguous: int
    unmatched: int
    unchanged: int
    written: int


class StudentCandidate(BaseModel):
    """Student found by VS when assigning a payment by hand."""

    id: UUID
    name: str
    surname: str
    vs: str
    school: str

    class Config:
        from_attributes = True
