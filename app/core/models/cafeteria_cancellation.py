import uuid
from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Uuid

from app.db.session import Base


class CafeteriaCancellation(Base):
    """Withdrawal of service for a set of days. dates holds DD/MM/YYYY (or ISO) strings."""

    __tablename__ = "cafeteria_cancellations"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    child_id = Column(Uuid(as_uuid=True), ForeignKey("children.id", ondelete="CASCADE"), nullable=True, index=True)
    guardian_id = Column(Uuid(as_uuid=True), ForeignKey("guardians.id", ondelete="CASCADE"), nullable=True, index=True)
    dates = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
