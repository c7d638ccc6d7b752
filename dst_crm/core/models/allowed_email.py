import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, String, Uuid

from dst_crm.db.session import Base


class AllowedEmail(Base):
    """
    Whitelist entry: emails permitted to register and sign in.
    No unique constraint; case-insensitive uniqueness is checked before insert only.
    """

    __tablename__ = "allowed_emails"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email = Column(String(255), nullable=False, index=True)
    # registration when added by approving an access request
    approved_from = Column(String(50), nullable=True)
    added_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
