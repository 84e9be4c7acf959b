"""Standing weekly cafeteria enrollment for a child or a staff guardian."""

import uuid
from datetime import datetime

from sqlalchemy import JSON, Boolean, Column, Date, DateTime, ForeignKey, Numeric, Uuid
from sqlalchemy.orm import relationship

from app.db.session import Base


class CafeteriaEnrollment(Base):
    """
    Weekdays use 0=Sunday .. 6=Saturday. daily_price is stored net of any family
    discount; discount_percent records the discount that was baked in.
    Exactly one of child_id / guardian_id is set (guardian_id = staff entitlement).
    """

    __tablename__ = "cafeteria_enrollments"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    child_id = Column(Uuid(as_uuid=True), ForeignKey("children.id", ondelete="CASCADE"), nullable=True, index=True)
    guardian_id = Column(Uuid(as_uuid=True), ForeignKey("guardians.id", ondelete="CASCADE"), nullable=True, index=True)
    weekdays = Column(JSON, nullable=False, default=list)  # e.g. [1, 2, 3, 4, 5]
    daily_price = Column(Numeric(10, 2), nullable=False)
    discount_percent = Column(Numeric(5, 2), nullable=False, default=0)
    active = Column(Boolean, nullable=False, default=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    child = relationship("Child", foreign_keys=[child_id])
    guardian = relationship("Guardian", foreign_keys=[guardian_id])
