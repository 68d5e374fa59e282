"""Lead model for the cold-call pipeline."""
import enum
import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Enum, ForeignKey, Float
from sqlalchemy.dialects.postgresql import UUID
from app.core.database import Base


class LeadStatus(str, enum.Enum):
    """Lead status enum."""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    CONTACTED = "contacted"
    APPOINTMENT = "appointment"
    NOT_INTERESTED = "not_interested"
    CALLBACK = "callback"
    WON = "won"


class PotentialLevel(str, enum.Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    NOT_ASSESSED = "not_assessed"


def _values(enum_cls):
    return [member.value for member in enum_cls]


class Lead(Base):
    """Lead model."""
    __tablename__ = "leads"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    business_name = Column(String(255), nullable=False)
    phone_number = Column(String(50), nullable=False, index=True)  # canonical "90XXXXXXXXXX"
    address = Column(String(500), nullable=True)
    category = Column(String(255), nullable=True)
    website = Column(String(500), nullable=True)
    rating = Column(Float, nullable=True)
    status = Column(
        Enum(LeadStatus, name="lead_status", values_callable=_values),
        nullable=False, default=LeadStatus.PENDING, index=True,
    )
    potential_level = Column(
        Enum(PotentialLevel, name="potential_level", values_callable=_values),
        nullable=False, default=PotentialLevel.NOT_ASSESSED,
    )
    assigned_to = Column(UUID(as_uuid=True), ForeignKey("profiles.id"), nullable=True, index=True)
    appointment_date = Column(DateTime, nullable=True)
    processed_at = Column(DateTime, nullable=True)
    batch_id = Column(UUID(as_uuid=True), ForeignKey("upload_batches.id"), nullable=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
