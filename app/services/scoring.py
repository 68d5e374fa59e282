"""Weighted agent performance score, level and rank tier.

score = sales*500 + appointments*50 + processed*1, plus a 10% efficiency
bonus when an agent has processed more than 10 leads and converts strictly
more than 15% of them into appointments. Level is one per 100 points.
Everything is derived from append-only data on every read.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, time, timedelta, timezone
from typing import Optional
from uuid import UUID
from zoneinfo import ZoneInfo

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.models.activity_log import ActivityAction, ActivityLogEntry
from app.models.lead import Lead, LeadStatus
from app.models.profile import Profile
from app.models.sale import Sale, SaleStatus

logger = logging.getLogger(__name__)

SALE_POINTS = 500
APPOINTMENT_POINTS = 50
PROCESSED_POINTS = 1

EFFICIENCY_MIN_PROCESSED = 10  # must be strictly exceeded
EFFICIENCY_MIN_RATE_PCT = 15   # must be strictly exceeded

POINTS_PER_LEVEL = 100

# (exclusive upper level bound, title); levels at or above the last bound are Legend
RANK_TIERS = [
    (10, "Rookie"),
    (25, "Hunter"),
    (50, "Veteran"),
    (100, "Elite"),
]
TOP_RANK = "Legend"


@dataclass(frozen=True)
class PerformanceScore:
    score: int
    level: int
    rank: str
    conversion_rate: float  # percent, one decimal
    is_efficient: bool


@dataclass
class AgentPerformance:
    agent_id: UUID
    agent_name: Optional[str]
    sales: int
    appointments: int
    processed: int
    performance: PerformanceScore
    today_count: int = 0
    yesterday_count: int = 0
    growth_percentage: int = 0


def rank_for_level(level: int) -> str:
    for bound, title in RANK_TIERS:
        if level < bound:
            return title
    return TOP_RANK


def level_for_score(score: int) -> int:
    return score // POINTS_PER_LEVEL + 1


def compute_score(sales: int, appointments: int, processed: int) -> PerformanceScore:
    score = sales * SALE_POINTS + appointments * APPOINTMENT_POINTS + processed * PROCESSED_POINTS

    if processed:
        conversion_rate = round(appointments / processed * 100, 1)
        # appointments / processed > 15%, compared without floats
        efficient = (
            processed > EFFICIENCY_MIN_PROCESSED
            and appointments * 100 > EFFICIENCY_MIN_RATE_PCT * processed
        )
    else:
        conversion_rate = 0.0
        efficient = False

    if efficient:
        score = (score * 11 + 5) // 10  # round(score * 1.1), halves up

    level = level_for_score(score)
    return PerformanceScore(
        score=score,
        level=level,
        rank=rank_for_level(level),
        conversion_rate=conversion_rate,
        is_efficient=efficient,
    )


def growth_percentage(today: int, yesterday: int) -> int:
    if not yesterday:
        return 0
    return round((today - yesterday) / yesterday * 100)


def _local_day_start_utc(now: datetime, tz: ZoneInfo) -> datetime:
    """Local midnight of ``now``'s day, as naive UTC for column comparison."""
    local_midnight = datetime.combine(now.astimezone(tz).date(), time.min, tzinfo=tz)
    return local_midnight.astimezone(timezone.utc).replace(tzinfo=None)


async def _count_by(db: AsyncSession, column, *conditions) -> dict[UUID, int]:
    result = await db.execute(
        select(column, func.count()).where(*conditions).group_by(column)
    )
    return {key: count for key, count in result.all() if key is not None}


async def team_performance(
    db: AsyncSession,
    since: datetime | None = None,
    now: datetime | None = None,
) -> list[AgentPerformance]:
    """Score every active profile, best first.

    ``since`` (naive UTC) limits the scoring window; None means lifetime.
    """
    now = now or datetime.now(timezone.utc)
    tz = ZoneInfo(settings.LOCAL_TIMEZONE)

    agents = (await db.execute(
        select(Profile).where(Profile.is_active.is_(True)).order_by(Profile.full_name)
    )).scalars().all()

    sale_filters = [Sale.status == SaleStatus.APPROVED]
    appointment_filters = [Lead.status == LeadStatus.APPOINTMENT]
    processed_filters = [ActivityLogEntry.action == ActivityAction.COMPLETED]
    if since is not None:
        sale_filters.append(Sale.created_at >= since)
        appointment_filters.append(Lead.processed_at >= since)
        processed_filters.append(ActivityLogEntry.created_at >= since)

    sales = await _count_by(db, Sale.agent_id, *sale_filters)
    appointments = await _count_by(db, Lead.assigned_to, *appointment_filters)
    processed = await _count_by(db, ActivityLogEntry.agent_id, *processed_filters)

    today_start = _local_day_start_utc(now, tz)
    yesterday_start = today_start - timedelta(days=1)
    today_counts = await _count_by(
        db, ActivityLogEntry.agent_id,
        ActivityLogEntry.action == ActivityAction.COMPLETED,
        ActivityLogEntry.created_at >= today_start,
    )
    yesterday_counts = await _count_by(
        db, ActivityLogEntry.agent_id,
        ActivityLogEntry.action == ActivityAction.COMPLETED,
        ActivityLogEntry.created_at >= yesterday_start,
        ActivityLogEntry.created_at < today_start,
    )

    board = []
    for agent in agents:
        s, a, p = sales.get(agent.id, 0), appointments.get(agent.id, 0), processed.get(agent.id, 0)
        today, yesterday = today_counts.get(agent.id, 0), yesterday_counts.get(agent.id, 0)
        board.append(AgentPerformance(
            agent_id=agent.id,
            agent_name=agent.full_name,
            sales=s,
            appointments=a,
            processed=p,
            performance=compute_score(s, a, p),
            today_count=today,
            yesterday_count=yesterday,
            growth_percentage=growth_percentage(today, yesterday),
        ))

    board.sort(key=lambda row: row.performance.score, reverse=True)
    logger.debug("Scored %d agents (since=%s)", len(board), since)
    return board


async def agent_performance(
    db: AsyncSession,
    agent_id: UUID,
    since: datetime | None = None,
) -> PerformanceScore:
    """Score a single agent."""
    sale_q = select(func.count(Sale.id)).where(Sale.agent_id == agent_id, Sale.status == SaleStatus.APPROVED)
    appt_q = select(func.count(Lead.id)).where(Lead.assigned_to == agent_id, Lead.status == LeadStatus.APPOINTMENT)
    proc_q = select(func.count(ActivityLogEntry.id)).where(
        ActivityLogEntry.agent_id == agent_id, ActivityLogEntry.action == ActivityAction.COMPLETED
    )
    if since is not None:
        sale_q = sale_q.where(Sale.created_at >= since)
        appt_q = appt_q.where(Lead.processed_at >= since)
        proc_q = proc_q.where(ActivityLogEntry.created_at >= since)

    sales = (await db.execute(sale_q)).scalar() or 0
    appointments = (await db.execute(appt_q)).scalar() or 0
    processed = (await db.execute(proc_q)).scalar() or 0
    return compute_score(sales, appointments, processed)
