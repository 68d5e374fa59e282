"""Tests for the weighted performance score and leaderboard."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from app.models.activity_log import ActivityAction, ActivityLogEntry
from app.models.lead import Lead, LeadStatus
from app.models.sale import Sale, SaleStatus
from app.services.scoring import (
    agent_performance,
    compute_score,
    growth_percentage,
    rank_for_level,
    team_performance,
)


def test_exactly_fifteen_percent_gets_no_bonus():
    result = compute_score(sales=2, appointments=3, processed=20)
    assert result.score == 1170
    assert result.level == 12
    assert result.rank == "Hunter"
    assert result.conversion_rate == 15.0
    assert result.is_efficient is False


def test_efficiency_bonus_above_threshold():
    # 4 / 20 = 20% with more than 10 processed
    result = compute_score(sales=0, appointments=4, processed=20)
    assert result.is_efficient is True
    assert result.score == 242  # round((200 + 20) * 1.1)
    assert result.level == 3


def test_bonus_needs_more_than_ten_processed():
    result = compute_score(sales=0, appointments=5, processed=10)
    assert result.is_efficient is False
    assert result.score == 260


def test_bonus_rounds_half_up():
    # base 165 at 20% -> 181.5
    result = compute_score(sales=0, appointments=3, processed=15)
    assert result.is_efficient is True
    assert result.score == 182


def test_zero_processed_is_not_an_error():
    result = compute_score(sales=1, appointments=0, processed=0)
    assert result.conversion_rate == 0.0
    assert result.is_efficient is False
    assert result.score == 500
    assert result.level == 6
    assert result.rank == "Rookie"


@pytest.mark.parametrize("level,rank", [
    (1, "Rookie"), (9, "Rookie"), (10, "Hunter"), (24, "Hunter"),
    (25, "Veteran"), (49, "Veteran"), (50, "Elite"), (99, "Elite"), (100, "Legend"), (400, "Legend"),
])
def test_rank_tiers(level, rank):
    assert rank_for_level(level) == rank


def test_growth_percentage():
    assert growth_percentage(15, 10) == 50
    assert growth_percentage(5, 10) == -50
    assert growth_percentage(7, 0) == 0


async def _seed_activity(db, agent, sales=0, appointments=0, processed=0, when=None):
    when = when or datetime.utcnow()
    for i in range(appointments):
        db.add(Lead(
            business_name=f"Appt {agent.email} {i}", phone_number=f"9055{i:08d}",
            status=LeadStatus.APPOINTMENT, assigned_to=agent.id, processed_at=when,
        ))
    await db.flush()
    lead = Lead(business_name="Sold", phone_number="905999999999", assigned_to=agent.id)
    db.add(lead)
    await db.flush()
    for _ in range(sales):
        db.add(Sale(lead_id=lead.id, agent_id=agent.id, amount=Decimal("1000"), status=SaleStatus.APPROVED))
    db.add(Sale(lead_id=lead.id, agent_id=agent.id, amount=Decimal("50"), status=SaleStatus.PENDING))
    for _ in range(processed):
        db.add(ActivityLogEntry(lead_id=lead.id, agent_id=agent.id, action=ActivityAction.COMPLETED,
                                details={}, created_at=when))
    await db.commit()


@pytest.mark.asyncio
async def test_agent_performance_counts_only_approved_sales(db, agent):
    await _seed_activity(db, agent, sales=2, appointments=3, processed=20)
    result = await agent_performance(db, agent.id)
    assert result.score == 1170
    assert result.rank == "Hunter"


@pytest.mark.asyncio
async def test_team_performance_sorted_with_daily_growth(db, manager, agent, second_agent):
    now = datetime(2026, 3, 5, 12, 0, tzinfo=timezone.utc)
    today = datetime(2026, 3, 5, 10, 0)
    yesterday = datetime(2026, 3, 4, 10, 0)

    await _seed_activity(db, agent, appointments=1, processed=3, when=today)
    lead = Lead(business_name="Y", phone_number="905000000001", assigned_to=agent.id)
    db.add(lead)
    await db.flush()
    db.add_all([
        ActivityLogEntry(lead_id=lead.id, agent_id=agent.id, action=ActivityAction.COMPLETED,
                         details={}, created_at=yesterday)
        for _ in range(2)
    ])
    await db.commit()

    await _seed_activity(db, second_agent, sales=1, when=today)

    board = await team_performance(db, now=now)

    assert [row.agent_id for row in board][:2] == [second_agent.id, agent.id]
    first_agent_row = board[1]
    assert first_agent_row.processed == 5
    assert first_agent_row.appointments == 1
    assert first_agent_row.today_count == 3
    assert first_agent_row.yesterday_count == 2
    assert first_agent_row.growth_percentage == 50
    # profiles without activity still appear
    assert {row.agent_id for row in board} == {manager.id, agent.id, second_agent.id}


@pytest.mark.asyncio
async def test_team_performance_window(db, agent):
    old = datetime.utcnow() - timedelta(days=30)
    await _seed_activity(db, agent, processed=4, when=old)

    lifetime = await team_performance(db)
    recent = await team_performance(db, since=datetime.utcnow() - timedelta(days=7))

    assert lifetime[0].processed == 4
    assert recent[0].processed == 0
