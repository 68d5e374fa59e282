"""Pydantic schemas for batch distribution."""

from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field, model_validator


class AgentAssignment(BaseModel):
    agent_id: UUID
    count: int = Field(ge=0)

    class Config:
        from_attributes = True


class DistributionRequest(BaseModel):
    mode: Literal["auto", "manual"] = "auto"
    agent_ids: list[UUID] = []
    assignments: list[AgentAssignment] = []
    reassign: bool = False
    idempotency_key: Optional[str] = Field(default=None, max_length=255)

    @model_validator(mode="after")
    def check_mode_inputs(self):
        if self.mode == "auto" and not self.agent_ids:
            raise ValueError("auto mode requires agent_ids")
        if self.mode == "manual" and not self.assignments:
            raise ValueError("manual mode requires assignments")
        return self


class DistributionResult(BaseModel):
    batch_id: UUID
    mode: str
    total_assigned: int
    assignments: list[AgentAssignment]
    replayed: bool = False
