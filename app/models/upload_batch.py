"""Upload batch model: one row per lead import."""

from sqlalchemy import Column, String, Integer, DateTime, ForeignKey
from sqlalchemy.dialects.postgresql import UUID
import uuid
from datetime import datetime
from app.core.database import Base


class UploadBatch(Base):
    __tablename__ = "upload_batches"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    filename = Column(String, nullable=False)
    uploaded_by = Column(UUID(as_uuid=True), ForeignKey("profiles.id"), nullable=False, index=True)
    total_leads = Column(Integer, nullable=False)  # accepted rows, fixed at creation
    duplicate_count = Column(Integer, nullable=False, default=0)
    invalid_count = Column(Integer, nullable=False, default=0)
    import_key = Column(String, unique=True, nullable=True)  # client idempotency key
    created_at = Column(DateTime, default=datetime.utcnow)
