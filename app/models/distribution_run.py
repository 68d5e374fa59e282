"""Record of a committed batch distribution (idempotency ledger)."""

from sqlalchemy import Column, String, Integer, DateTime, ForeignKey
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.types import JSON
import uuid
from datetime import datetime
from app.core.database import Base


class DistributionRun(Base):
    __tablename__ = "distribution_runs"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    batch_id = Column(UUID(as_uuid=True), ForeignKey("upload_batches.id", ondelete="CASCADE"), nullable=False, index=True)
    idempotency_key = Column(String, unique=True, nullable=True)
    requested_by = Column(UUID(as_uuid=True), ForeignKey("profiles.id"), nullable=False)
    mode = Column(String, nullable=False)  # auto, manual
    total_assigned = Column(Integer, nullable=False)
    result = Column(JSON, nullable=False)  # [{"agent_id": ..., "assigned_count": ...}]
    created_at = Column(DateTime, default=datetime.utcnow)
