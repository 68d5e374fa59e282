"""Performance endpoints.

- GET /api/v1/performance/leaderboard → Team scores, best first
- GET /api/v1/performance/me          → Caller's weighted score
- GET /api/v1/performance/me/progress → Caller's XP, level and streak
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.dependencies import require_capability
from app.core.permissions import Capability
from app.models.profile import Profile
from app.schemas.performance import AgentProgressOut, LeaderboardOut, PerformanceScoreOut
from app.services.scoring import agent_performance, team_performance
from app.services.xp_ledger import get_progress

router = APIRouter()
logger = logging.getLogger(__name__)


def _window_start(days: Optional[int]) -> Optional[datetime]:
    if not days:
        return None
    return datetime.utcnow() - timedelta(days=days)


@router.get("/leaderboard", response_model=LeaderboardOut)
async def leaderboard(
    days: Optional[int] = Query(None, ge=1, le=365, description="Scoring window; omit for lifetime"),
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_capability(Capability.VIEW_TEAM_PERFORMANCE)),
):
    board = await team_performance(db, since=_window_start(days))
    return {"window_days": days, "agents": board}


@router.get("/me", response_model=PerformanceScoreOut)
async def my_performance(
    days: Optional[int] = Query(None, ge=1, le=365),
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_capability(Capability.WORK_LEADS)),
):
    return await agent_performance(db, current_user.id, since=_window_start(days))


@router.get("/me/progress", response_model=AgentProgressOut)
async def my_progress(
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_capability(Capability.WORK_LEADS)),
):
    progress = await get_progress(db, current_user.id)
    if progress is None:
        # No XP yet
        return AgentProgressOut(agent_id=current_user.id, total_xp=0, current_level=1, current_streak=0)
    return progress
