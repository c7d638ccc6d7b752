import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, String, Text, Uuid

from dst_crm.db.session import Base


class User(Base):
    """Signed-in identity and its role record. Exactly one role per identity."""

    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    # Stored lower-case
    email = Column(String(255), nullable=False, unique=True)
    display_name = Column(String(255), nullable=False, default="")
    password_hash = Column(Text, nullable=False)
    # admin | team | student
    role = Column(String(20), nullable=False, default="student")
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
