"""XP ledger row, one per agent, created on the first award."""

from sqlalchemy import Column, Integer, Date, DateTime, ForeignKey
from sqlalchemy.dialects.postgresql import UUID
from datetime import datetime
from app.core.database import Base


class AgentProgress(Base):
    __tablename__ = "agent_progress"

    agent_id = Column(UUID(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"), primary_key=True)
    total_xp = Column(Integer, nullable=False, default=0)
    current_level = Column(Integer, nullable=False, default=1)
    current_streak = Column(Integer, nullable=False, default=0)
    last_activity_date = Column(Date, nullable=True)  # local calendar date
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
