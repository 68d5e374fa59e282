"""Pydantic schemas for lead import and lead outcomes."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.models.lead import LeadStatus


class LeadRow(BaseModel):
    """One parsed row of an uploaded lead sheet."""
    business_name: Optional[str] = None
    phone_number: Optional[str] = None
    address: Optional[str] = None
    category: Optional[str] = None
    website: Optional[str] = None
    rating: Optional[float] = None


class LeadImportRequest(BaseModel):
    filename: str
    import_key: Optional[str] = Field(default=None, max_length=255)
    leads: list[LeadRow]


class LeadImportResult(BaseModel):
    batch_id: Optional[UUID] = None
    accepted: int
    duplicates: int
    invalid: int
    replayed: bool = False

    class Config:
        from_attributes = True


class LeadOutcomeUpdate(BaseModel):
    """Result of one call on a lead, reported by the agent working it."""
    status: LeadStatus
    appointment_date: Optional[datetime] = None
    duration: Optional[float] = Field(default=None, ge=0)  # call seconds
    note: Optional[str] = None
    action_taken: Optional[str] = None


class LeadOut(BaseModel):
    id: UUID
    business_name: str
    phone_number: str
    status: LeadStatus
    assigned_to: Optional[UUID] = None
    appointment_date: Optional[datetime] = None
    processed_at: Optional[datetime] = None
    batch_id: Optional[UUID] = None

    class Config:
        from_attributes = True


class LeadOutcomeResult(BaseModel):
    lead: LeadOut
    xp_awarded: int = 0
