"""Agent appointment feed.

- GET /api/v1/agent/appointments → The agent's appointments, most urgent first
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.dependencies import require_capability
from app.core.permissions import Capability
from app.models.profile import Profile
from app.schemas.appointment import AppointmentFeedOut
from app.services.urgency import load_agent_appointments, next_mission

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/appointments", response_model=AppointmentFeedOut)
async def list_my_appointments(
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_capability(Capability.WORK_LEADS)),
):
    views = await load_agent_appointments(db, current_user.id)
    mission = next_mission(views)
    return {
        "appointments": [view.to_record() for view in views],
        "next_mission": mission.to_record() if mission else None,
    }
