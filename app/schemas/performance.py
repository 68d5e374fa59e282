"""Pydantic schemas for performance scores and XP progress."""

from datetime import date
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel

from app.models.sale import SaleStatus


class PerformanceScoreOut(BaseModel):
    score: int
    level: int
    rank: str
    conversion_rate: float
    is_efficient: bool

    class Config:
        from_attributes = True


class LeaderboardEntry(BaseModel):
    agent_id: UUID
    agent_name: Optional[str] = None
    sales: int
    appointments: int
    processed: int
    performance: PerformanceScoreOut
    today_count: int
    yesterday_count: int
    growth_percentage: int

    class Config:
        from_attributes = True


class LeaderboardOut(BaseModel):
    window_days: Optional[int] = None
    agents: list[LeaderboardEntry]


class AgentProgressOut(BaseModel):
    agent_id: UUID
    total_xp: int
    current_level: int
    current_streak: int
    last_activity_date: Optional[date] = None

    class Config:
        from_attributes = True


class SaleOut(BaseModel):
    id: UUID
    lead_id: UUID
    agent_id: UUID
    amount: Optional[Decimal] = None
    status: SaleStatus

    class Config:
        from_attributes = True
