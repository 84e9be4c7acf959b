"""Cafeteria pricing tiers. Billing uses the active tier covering 1..5 days per week."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Integer, Numeric, String, Uuid

from app.db.session import Base


class PricingConfiguration(Base):
    __tablename__ = "pricing_configurations"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False)
    days_min = Column(Integer, nullable=False, default=1)
    days_max = Column(Integer, nullable=False, default=5)
    base_price = Column(Numeric(10, 2), nullable=False)
    staff_price = Column(Numeric(10, 2), nullable=True)
    staff_child_price = Column(Numeric(10, 2), nullable=True)
    sibling_discount_pct = Column(Numeric(5, 2), nullable=True)
    attendance_discount_pct = Column(Numeric(5, 2), nullable=True)
    attendance_threshold_pct = Column(Numeric(5, 2), nullable=True)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
