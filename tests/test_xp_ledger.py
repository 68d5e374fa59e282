"""Tests for the XP / streak ledger."""

import asyncio
import gc
import uuid
from datetime import date

import pytest

from app.services.xp_ledger import XPLedger, get_progress, next_streak, xp_level
from conftest import TestSession

D = date(2026, 3, 5)


def test_next_streak_rules():
    assert next_streak(None, 0, D) == 1
    assert next_streak(D, 4, D) == 4
    assert next_streak(date(2026, 3, 4), 4, D) == 5
    assert next_streak(date(2026, 3, 2), 4, D) == 1


def test_xp_level():
    assert xp_level(0) == 1
    assert xp_level(999) == 1
    assert xp_level(1000) == 2
    assert xp_level(12345) == 13


@pytest.mark.asyncio
async def test_award_creates_row_then_accumulates(db, agent):
    ledger = XPLedger()
    progress = await ledger.award_for(db, agent.id, "appointment_set", today=D)
    assert progress.total_xp == 200
    assert progress.current_streak == 1
    assert progress.current_level == 1

    progress = await ledger.award_for(db, agent.id, "sale_closed", today=D)
    assert progress.total_xp == 1200
    assert progress.current_level == 2
    assert progress.current_streak == 1


@pytest.mark.asyncio
async def test_consecutive_days_extend_streak_and_gaps_reset(db, agent, second_agent):
    ledger = XPLedger()
    await ledger.award_for(db, agent.id, "call_made", today=date(2026, 3, 1))
    progress = await ledger.award_for(db, agent.id, "call_made", today=date(2026, 3, 2))
    assert progress.current_streak == 2

    await ledger.award_for(db, second_agent.id, "call_made", today=date(2026, 3, 1))
    progress = await ledger.award_for(db, second_agent.id, "call_made", today=date(2026, 3, 4))
    assert progress.current_streak == 1


@pytest.mark.asyncio
async def test_invalid_awards_rejected(db, agent):
    ledger = XPLedger()
    with pytest.raises(ValueError):
        await ledger.award(db, agent.id, 0, "nothing")
    with pytest.raises(ValueError):
        await ledger.award_for(db, agent.id, "coffee_break")


@pytest.mark.asyncio
async def test_concurrent_awards_are_not_lost(db, agent):
    ledger = XPLedger()

    async def award_once():
        async with TestSession() as session:
            await ledger.award(session, agent.id, 10, "call_made", today=D)

    await asyncio.gather(*(award_once() for _ in range(8)))

    progress = await get_progress(db, agent.id)
    assert progress.total_xp == 80


@pytest.mark.asyncio
async def test_agent_locks_are_shared_then_released():
    ledger = XPLedger()
    agent_id = uuid.uuid4()

    lock = ledger.lock_for(agent_id)
    async with lock:
        assert ledger.lock_for(agent_id) is lock

    del lock
    gc.collect()
    assert agent_id not in ledger._locks


@pytest.mark.asyncio
async def test_award_quietly_reports_granted_xp(db, agent):
    ledger = XPLedger()
    granted = await ledger.award_quietly(db, agent.id, ["call_made", "appointment_set"], today=D)
    assert granted == 210
    assert (await get_progress(db, agent.id)).total_xp == 210
