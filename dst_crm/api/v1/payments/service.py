import logging
from typing import List, Optional
from uuid import UUID

from fastapi import status
from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from dst_crm.api.v1.reconciliation.calculator import plan_auto_pairing
from dst_crm.core.config import settings
from dst_crm.core.enums import MatchStatus
from dst_crm.core.exceptions import ServiceError
from dst_crm.core.models import Payment, Student
from dst_crm.core.money import normalize_vs
from dst_crm.db.batch import chunked

from .schemas import AutoPairResponse, PaymentResponse, StudentCandidate

logger = logging.getLogger(__name__)


async def list_payments(db: AsyncSession, match_status: Optional[MatchStatus] = None) -> List[PaymentResponse]:
    stmt = select(Payment)
    if match_status:
        stmt = stmt.where(Payment.match_status == match_status.value)
    stmt = stmt.order_by(Payment.date.desc().nullslast(), Payment.created_at.desc())
    result = await db.execute(stmt)
    return [PaymentResponse.model_validate(p) for p in result.scalars().all()]


async def find_candidates(db: AsyncSession, vs: str) -> List[StudentCandidate]:
    """Students whose VS equals the trimmed query. Empty query finds nothing."""
    needle = normalize_vs(vs)
    if not needle:
        return []
    result = await db.execute(
        select(Student).where(Student.vs == needle).order_by(Student.surname, Student.name)
    )
    return [StudentCandidate.model_validate(s) for s in result.scalars().all()]


async def assign_payment(db: AsyncSession, payment_id: UUID, student_id: UUID) -> PaymentResponse:
    """Manual pairing. Overrides whatever the VS says."""
    payment = await db.get(Payment, payment_id)
    if not payment:
        raise ServiceError("Payment not found", status.HTTP_404_NOT_FOUND)
    student = await db.get(Student, student_id)
    if not student:
        raise ServiceError("Student not found", status.HTTP_404_NOT_FOUND)
    payment.matched_student_id = student.id
    payment.match_status = MatchStatus.matched.value
    await db.commit()
    await db.refresh(payment)
    logger.info("Payment %s assigned to student %s", payment_id, student_id)
    return PaymentResponse.model_validate(payment)


async def unassign_payment(db: AsyncSession, payment_id: UUID) -> Optional[PaymentResponse]:
    payment = await db.get(Payment, payment_id)
    if not payment:
        return None
    payment.matched_student_id = None
    payment.match_status = MatchStatus.unmatched.value
    await db.commit()
    await db.refresh(payment)
    logger.info("Payment %s unassigned", payment_id)
    return PaymentResponse.model_validate(payment)


async def delete_payment(db: AsyncSession, payment_id: UUID) -> bool:
    result = await db.execute(delete(Payment).where(Payment.id == payment_id))
    await db.commit()
    return result.rowcount > 0


async def auto_pair(db: AsyncSession) -> AutoPairResponse:
    """
    Pair every not-yet-matched payment by VS. Updates are written in chunks,
    one transaction per chunk; a failing chunk stops the run and earlier
    chunks stay committed.
    """
    students = (await db.execute(select(Student.id, Student.vs))).all()
    payments = (
        await db.execute(
            select(Payment.id, Payment.vs, Payment.matched_student_id, Payment.match_status)
        )
    ).all()
    plan = plan_auto_pairing(students, payments)

    written = 0
    for chunk in chunked(plan.updates, settings.auto_pair_batch_size):
        try:
            for u in chunk:
                await db.execute(
                    update(Payment)
                    .where(Payment.id == u.payment_id)
                    .values(matched_student_id=u.matched_student_id, match_status=u.match_status.value)
                )
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.exception("Auto-pair chunk failed after %s written updates", written)
            raise ServiceError("Failed to write pairing results", status.HTTP_500_INTERNAL_SERVER_ERROR) from e
        written += len(chunk)

    logger.info(
        "Auto-pair finished: %s matched, %s ambiguous, %s unmatched, %s unchanged, %s written",
        plan.matched,
        plan.ambiguous,
        plan.unmatched,
        plan.unchanged,
        written,
    )
    return AutoPairResponse(
        matched=plan.matched,
        ambiguous=plan.ambiguous,
        unmatched=plan.unmatched,
        unchanged=plan.unchanged,
        written=written,
    )
