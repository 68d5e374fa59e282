"""Append-only lead activity log (calls, assignments, completions)."""

from sqlalchemy import Column, String, DateTime, ForeignKey
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.types import JSON
import uuid
from datetime import datetime
from app.core.database import Base


class ActivityAction:
    ASSIGNED = "assigned"
    VIEWED = "viewed"
    COMPLETED = "completed"
    CALL_RECORDING = "call_recording"


# Actions that count as a call attempt for urgency classification
CALL_ACTIONS = (ActivityAction.CALL_RECORDING, ActivityAction.COMPLETED)


class ActivityLogEntry(Base):
    __tablename__ = "lead_activity_log"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    lead_id = Column(UUID(as_uuid=True), ForeignKey("leads.id", ondelete="CASCADE"), nullable=False, index=True)
    agent_id = Column(UUID(as_uuid=True), ForeignKey("profiles.id"), nullable=True, index=True)
    action = Column(String, nullable=False, index=True)
    # "metadata" is reserved on declarative classes, so the attribute is "details"
    details = Column("metadata", JSON, nullable=True)  # {"duration": 75, ...}
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
