import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import relationship

from app.db.session import Base


class Child(Base):
    """Pupil using the cafeteria. Billing reads the exemption window; the roster owns the row."""

    __tablename__ = "children"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    guardian_id = Column(Uuid(as_uuid=True), ForeignKey("guardians.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    grade = Column(String(100), nullable=True)
    active = Column(Boolean, nullable=False, default=True)
    exempt = Column(Boolean, nullable=False, default=False)
    exempt_reason = Column(Text, nullable=True)
    exempt_from = Column(Date, nullable=True)
    exempt_to = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    guardian = relationship("Guardian", backref="children")
