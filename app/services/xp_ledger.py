"""XP / streak ledger.

Habit tracking kept separate from the weighted performance score: every award
adds to ``total_xp``, the level is ``total_xp // 1000 + 1`` and the streak
counts consecutive local calendar days with at least one award.

The ledger row is a genuine read-modify-write accumulator, so each agent's
update runs under a per-agent ``asyncio.Lock`` and (on PostgreSQL) a
``SELECT ... FOR UPDATE`` row lock.
"""

import asyncio
import logging
import weakref
from datetime import date, datetime, timedelta
from uuid import UUID
from zoneinfo import ZoneInfo

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.models.agent_progress import AgentProgress

logger = logging.getLogger(__name__)

XP_PER_LEVEL = 1000

# Reason → XP amount
XP_REWARDS = {
    "call_made": 10,
    "appointment_set": 200,
    "sale_closed": 1000,
}


def xp_level(total_xp: int) -> int:
    return max(1, total_xp // XP_PER_LEVEL + 1)


def next_streak(last_activity: date | None, current_streak: int, today: date) -> int:
    """Streak after an award on ``today``.

    Same day keeps the streak, exactly yesterday extends it by one, any
    other gap (or no history) restarts at 1.
    """
    if last_activity is None:
        return 1
    if last_activity == today:
        return max(current_streak, 1)
    if last_activity == today - timedelta(days=1):
        return current_streak + 1
    return 1


def local_today(tz_name: str | None = None) -> date:
    return datetime.now(ZoneInfo(tz_name or settings.LOCAL_TIMEZONE)).date()


class XPLedger:
    """Serializes XP awards per agent."""

    def __init__(self):
        # Entries vanish once no award holds or awaits the lock.
        self._locks: weakref.WeakValueDictionary[UUID, asyncio.Lock] = weakref.WeakValueDictionary()

    def lock_for(self, agent_id: UUID) -> asyncio.Lock:
        lock = self._locks.get(agent_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[agent_id] = lock
        return lock

    async def award(
        self,
        db: AsyncSession,
        agent_id: UUID,
        amount: int,
        reason: str,
        today: date | None = None,
    ) -> AgentProgress:
        """Add ``amount`` XP to an agent and update level / streak."""
        if amount <= 0:
            raise ValueError(f"XP amount must be positive, got {amount}")

        today = today or local_today()
        logger.info("Awarding %d XP to %s for: %s", amount, agent_id, reason)

        async with self.lock_for(agent_id):
            try:
                progress = await self._apply(db, agent_id, amount, today)
            except IntegrityError:
                # Another process created the row first; retry as an update.
                await db.rollback()
                progress = await self._apply(db, agent_id, amount, today)

        logger.info(
            "Agent %s is now level %d (%d XP, streak %d)",
            agent_id, progress.current_level, progress.total_xp, progress.current_streak,
        )
        return progress

    async def award_for(self, db: AsyncSession, agent_id: UUID, reason: str,
                        today: date | None = None) -> AgentProgress:
        """Award the fixed amount configured for ``reason``."""
        if reason not in XP_REWARDS:
            raise ValueError(f"Unknown XP reason: {reason}")
        return await self.award(db, agent_id, XP_REWARDS[reason], reason, today=today)

    async def award_quietly(self, db: AsyncSession, agent_id: UUID, reasons: list[str],
                            today: date | None = None) -> int:
        """Award each reason in turn; returns the XP actually granted.

        Ledger failures are logged and rolled back, never raised, so the
        action that earned the XP stands on its own.
        """
        granted = 0
        for reason in reasons:
            try:
                await self.award_for(db, agent_id, reason, today=today)
            except SQLAlchemyError as e:
                await db.rollback()
                logger.error("XP award %s for %s failed: %s", reason, agent_id, e)
                continue
            granted += XP_REWARDS[reason]
        return granted

    async def _apply(self, db: AsyncSession, agent_id: UUID, amount: int, today: date) -> AgentProgress:
        result = await db.execute(
            select(AgentProgress)
            .where(AgentProgress.agent_id == agent_id)
            .with_for_update()
        )
        progress = result.scalar_one_or_none()

        if progress is None:
            progress = AgentProgress(
                agent_id=agent_id,
                total_xp=amount,
                current_level=xp_level(amount),
                current_streak=1,
                last_activity_date=today,
            )
            db.add(progress)
        else:
            progress.current_streak = next_streak(
                progress.last_activity_date, progress.current_streak or 0, today
            )
            progress.total_xp = (progress.total_xp or 0) + amount
            progress.current_level = xp_level(progress.total_xp)
            progress.last_activity_date = today
            progress.updated_at = datetime.utcnow()

        await db.commit()
        await db.refresh(progress)
        return progress


async def get_progress(db: AsyncSession, agent_id: UUID) -> AgentProgress | None:
    result = await db.execute(select(AgentProgress).where(AgentProgress.agent_id == agent_id))
    return result.scalar_one_or_none()
