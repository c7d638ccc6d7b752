import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, Numeric, String, Text, Uuid

from dst_crm.db.session import Base


class Student(Base):
    """
    Member of the organization. Linked to payments only by variable symbol (vs)
    or by an explicit Payment.matched_student_id.
    """

    __tablename__ = "students"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False, default="")
    surname = Column(String(255), nullable=False, default="")
    mail = Column(String(255), nullable=False, default="", index=True)
    telephone_number = Column(String(50), nullable=False, default="")
    school = Column(String(255), nullable=False, default="")
    region = Column(String(100), nullable=False, default="")
    note = Column(Text, nullable=False, default="")
    iban = Column(String(50), nullable=False, default="")
    # Opaque string; leading zeros are significant
    vs = Column(String(20), nullable=False, default="", index=True)
    # Raw billing period as entered (year / half-year / month and spelling variants)
    period = Column(String(30), nullable=False, default="")
    amount = Column(Numeric(12, 2), nullable=False, default=0)
    type_of_payment = Column(String(100), nullable=False, default="")
    imported_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
