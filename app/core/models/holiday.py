import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, Date, DateTime, String, Uuid

from app.db.session import Base


class Holiday(Base):
    """Institution-wide non-business day. Inactive rows are ignored by billing."""

    __tablename__ = "holidays"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    date = Column(Date, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
