"""Installment reconciliation: what each student should have paid by a given installment and what they did."""

import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from dst_crm.api.v1.students.schemas import StudentResponse
from dst_crm.core.enums import InstallmentStatus, PaidBasis
from dst_crm.core.models import Payment, Student
from dst_crm.core.money import from_minor_units, to_minor_units

from .calculator import (
    clamp_installment_index,
    derive_status,
    expected_for_student,
    paid_for_student,
    paid_totals,
)
from .schemas import InstallmentReport, InstallmentRow, RecipientList

logger = logging.getLogger(__name__)


async def installment_report(
    db: AsyncSession,
    index: Optional[int] = None,
    status_filter: Optional[InstallmentStatus] = None,
    basis: PaidBasis = PaidBasis.MATCHED,
) -> InstallmentReport:
    idx = clamp_installment_index(index)
    students = (
        await db.execute(select(Student).order_by(func.lower(Student.surname), func.lower(Student.name)))
    ).scalars().all()
    payments = (
        await db.execute(select(Payment.matched_student_id, Payment.vs, Payment.amount))
    ).all()
    totals = paid_totals(payments, basis)

    rows: List[InstallmentRow] = []
    for s in students:
        base = to_minor_units(s.amount)
        expected = expected_for_student(base, s.period, idx)
        paid = paid_for_student(s, totals, basis)
        row_status = derive_status(expected, paid)
        if status_filter and row_status != status_filter:
            continue
        rows.append(
            InstallmentRow(
                student_id=s.id,
                name=s.name,
                surname=s.surname,
                mail=s.mail,
                vs=s.vs,
                period=s.period,
                base_amount=from_minor_units(base),
                expected=from_minor_units(expected),
                paid=from_minor_units(paid),
                difference=from_minor_units(paid - expected),
                status=row_status,
            )
        )
    return InstallmentReport(index=idx, basis=basis, rows=rows)


async def installment_recipients(
    db: AsyncSession,
    index: Optional[int] = None,
    status_filter: Optional[InstallmentStatus] = None,
    basis: PaidBasis = PaidBasis.MATCHED,
) -> RecipientList:
    report = await installment_report(db, index, status_filter, basis)
    seen = set()
    recipients: List[str] = []
    for row in report.rows:
        mail = row.mail.strip().lower()
        if mail and mail not in seen:
            seen.add(mail)
            recipients.append(mail)
    return RecipientList(recipients=recipients, count=len(recipients))


async def override_amount(db: AsyncSession, student_id: UUID, amount) -> Optional[StudentResponse]:
    student = await db.get(Student, student_id)
    if not student:
        return None
    previous = student.amount
    student.amount = amount
    await db.commit()
    await db.refresh(student)
    logger.info("Student %s amount changed from %s to %s", student_id, previous, amount)
    return StudentResponse.model_validate(student)
