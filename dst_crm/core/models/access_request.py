import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, String, Text, Uuid

from dst_crm.db.session import Base


class AccessRequest(Base):
    """Request for access submitted by someone not yet on the whitelist."""

    __tablename__ = "access_requests"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email = Column(String(255), nullable=False)
    message = Column(Text, nullable=False, default="")
    status = Column(String(20), nullable=False, default="pending")
    requested_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
