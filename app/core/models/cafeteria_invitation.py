import uuid
from datetime import datetime

from sqlalchemy import Column, Date, DateTime, ForeignKey, Text, Uuid

from app.db.session import Base


class CafeteriaInvitation(Base):
    """Complimentary meal for one child or one staff guardian on one date. Never billed."""

    __tablename__ = "cafeteria_invitations"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    child_id = Column(Uuid(as_uuid=True), ForeignKey("children.id", ondelete="CASCADE"), nullable=True, index=True)
    guardian_id = Column(Uuid(as_uuid=True), ForeignKey("guardians.id", ondelete="CASCADE"), nullable=True, index=True)
    date = Column(Date, nullable=False, index=True)
    reason = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
