"""Guardian: the billing household. Staff guardians may hold their own cafeteria entitlement."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, Date, DateTime, String, Text, Uuid

from app.db.session import Base


class Guardian(Base):
    """
    Parent or legal guardian. Children are billed to their guardian's household.
    Exemption columns apply to the guardian's own staff entitlement only.
    """

    __tablename__ = "guardians"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True, unique=True)
    is_staff = Column(Boolean, nullable=False, default=False)
    active = Column(Boolean, nullable=False, default=True)
    exempt = Column(Boolean, nullable=False, default=False)
    exempt_reason = Column(Text, nullable=True)
    exempt_from = Column(Date, nullable=True)
    exempt_to = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
