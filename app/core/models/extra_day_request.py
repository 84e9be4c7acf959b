"""One-off request for a meal on a day outside the standing enrollment."""

import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, String, Uuid

from app.db.session import Base


EXTRA_REQUEST_STATUS_PENDING = "pending"
EXTRA_REQUEST_STATUS_APPROVED = "approved"
EXTRA_REQUEST_STATUS_REJECTED = "rejected"


class ExtraDayRequest(Base):
    __tablename__ = "cafeteria_extra_requests"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    child_id = Column(Uuid(as_uuid=True), ForeignKey("children.id", ondelete="CASCADE"), nullable=True, index=True)
    guardian_id = Column(Uuid(as_uuid=True), ForeignKey("guardians.id", ondelete="CASCADE"), nullable=True, index=True)
    requested_date = Column(String(20), nullable=False)  # DD/MM/YYYY
    status = Column(String(20), nullable=False, default=EXTRA_REQUEST_STATUS_PENDING)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
