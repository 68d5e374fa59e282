"""Pydantic schemas for the agent's appointment feed."""

from typing import Optional

from pydantic import BaseModel


class AppointmentRecord(BaseModel):
    """One appointment as consumed by the mission HUD."""
    id: str
    business_name: str
    phone_number: str
    potential_level: Optional[str] = None
    appointment_date: str  # effective time, ISO-8601
    status: str  # won, interviewed, attempted, missed, pending
    call_count: int
    last_call_at: Optional[str] = None
    notes: Optional[str] = None
    urgency_tier: int
    urgency_offset_ms: int


class AppointmentFeedOut(BaseModel):
    appointments: list[AppointmentRecord]
    next_mission: Optional[AppointmentRecord] = None
