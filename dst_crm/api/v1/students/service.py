import logging
from typing import List, Optional
from uuid import UUID

from fastapi import status
from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from dst_crm.api.v1.payments.schemas import PaymentResponse
from dst_crm.api.v1.statistics.calculator import final_for_period
from dst_crm.core.enums import MatchStatus
from dst_crm.core.exceptions import ServiceError
from dst_crm.core.models import Payment, Student
from dst_crm.core.money import from_minor_units, to_minor_units

from .schemas import (
    StudentCreate,
    StudentDetail,
    StudentProfileResponse,
    StudentResponse,
    StudentSelfUpdate,
    StudentUpdate,
)

logger = logging.getLogger(__name__)


async def _matched_payments(db: AsyncSession, student_id: UUID) -> List[Payment]:
    result = await db.execute(
        select(Payment)
        .where(Payment.matched_student_id == student_id)
        .order_by(Payment.date.desc().nullslast(), Payment.created_at.desc())
    )
    return list(result.scalars().all())


async def list_students(db: AsyncSession, search: Optional[str] = None) -> List[StudentResponse]:
    stmt = select(Student)
    if search and search.strip():
        pattern = f"%{search.strip().lower()}%"
        stmt = stmt.where(
            or_(
                func.lower(Student.name).like(pattern),
                func.lower(Student.surname).like(pattern),
                func.lower(Student.mail).like(pattern),
                func.lower(Student.school).like(pattern),
                Student.vs.like(pattern),
            )
        )
    stmt = stmt.order_by(func.lower(Student.surname), func.lower(Student.name))
    result = await db.execute(stmt)
    return [StudentResponse.model_validate(s) for s in result.scalars().all()]


async def get_student(db: AsyncSession, student_id: UUID) -> Optional[StudentDetail]:
    student = await db.get(Student, student_id)
    if not student:
        return None
    payments = await _matched_payments(db, student_id)
    return StudentDetail(
        **StudentResponse.model_validate(student).model_dump(),
        payments=[PaymentResponse.model_validate(p) for p in payments],
    )


async def create_student(db: AsyncSession, payload: StudentCreate) -> StudentResponse:
    student = Student(**payload.model_dump())
    db.add(student)
    await db.commit()
    await db.refresh(student)
    return StudentResponse.model_validate(student)


async def _apply_update(db: AsyncSession, student: Student, values: dict) -> StudentResponse:
    for key, value in values.items():
        setattr(student, key, value)
    await db.commit()
    await db.refresh(student)
    return StudentResponse.model_validate(student)


async def update_student(
    db: AsyncSession,
    student_id: UUID,
    payload: StudentUpdate,
) -> Optional[StudentResponse]:
    """Changing vs does not touch existing matches; run auto-pairing or reassign by hand."""
    student = await db.get(Student, student_id)
    if not student:
        return None
    return await _apply_update(db, student, payload.model_dump(exclude_unset=True, exclude_none=True))


async def delete_student(db: AsyncSession, student_id: UUID) -> bool:
    """Delete the student and unmatch its payments in the same transaction."""
    student = await db.get(Student, student_id)
    if not student:
        return False
    try:
        result = await db.execute(
            update(Payment)
            .where(Payment.matched_student_id == student_id)
            .values(matched_student_id=None, match_status=MatchStatus.unmatched.value)
        )
        await db.delete(student)
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception("Failed to delete student %s", student_id)
        raise ServiceError("Failed to delete student", status.HTTP_500_INTERNAL_SERVER_ERROR) from e
    logger.info("Deleted student %s; %s payments unmatched", student_id, result.rowcount)
    return True


async def _find_by_mail(db: AsyncSession, email: str) -> Optional[Student]:
    result = await db.execute(
        select(Student)
        .where(func.lower(Student.mail) == email.strip().lower())
        .order_by(Student.created_at)
        .limit(1)
    )
    return result.scalar_one_or_none()


async def get_own_profile(db: AsyncSession, email: str) -> StudentProfileResponse:
    student = await _find_by_mail(db, email)
    if not student:
        return StudentProfileResponse()
    payments = await _matched_payments(db, student.id)
    paid = sum(to_minor_units(p.amount) for p in payments)
    total = final_for_period(to_minor_units(student.amount), student.period)
    progress = min(100.0, max(0.0, paid * 100.0 / total)) if total > 0 else 0.0
    return StudentProfileResponse(
        student=StudentResponse.model_validate(student),
        payments=[PaymentResponse.model_validate(p) for p in payments],
        paid_amount=from_minor_units(paid),
        total_amount=from_minor_units(total),
        progress_percent=round(progress, 2),
    )


async def update_own_profile(
    db: AsyncSession,
    email: str,
    payload: StudentSelfUpdate,
) -> Optional[StudentResponse]:
    student = await _find_by_mail(db, email)
    if not student:
        return None
    return await _apply_update(db, student, payload.model_dump(exclude_unset=True, exclude_none=True))
