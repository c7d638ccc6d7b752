"""Bank payment imported from a statement, annotated with its match to a student."""

import uuid
from datetime import datetime

from sqlalchemy import Column, Date, DateTime, ForeignKey, Numeric, String, Text, Uuid
from sqlalchemy.orm import relationship

from dst_crm.db.session import Base


class Payment(Base):
    """
    match_status: matched | unmatched | ambiguous.
    matched implies matched_student_id is set; unmatched and ambiguous imply it is null.
    """

    __tablename__ = "payments"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    vs = Column(String(20), nullable=False, default="", index=True)
    amount = Column(Numeric(12, 2), nullable=False, default=0)
    date = Column(Date, nullable=True)
    message = Column(Text, nullable=False, default="")
    sender_name = Column(String(255), nullable=False, default="")
    sender_iban = Column(String(50), nullable=False, default="")
    matched_student_id = Column(
        Uuid,
        ForeignKey("students.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    match_status = Column(String(20), nullable=False, default="unmatched")
    imported_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    matched_student = relationship("Student", foreign_keys=[matched_student_id])
