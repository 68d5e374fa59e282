"""Tests for batch distribution (auto split, manual validation, idempotency)."""

import uuid

import pytest
from sqlalchemy import func, select

from app.models.activity_log import ActivityAction, ActivityLogEntry
from app.models.distribution_run import DistributionRun
from app.models.lead import Lead
from app.models.upload_batch import UploadBatch
from app.services.distribution import (
    Allocation,
    BatchNotFoundError,
    DistributionMismatchError,
    IdempotencyKeyConflictError,
    NothingToDistributeError,
    UnknownAgentError,
    auto_distribute,
    distribute_batch,
    validate_manual,
)


def test_auto_distribute_remainder_goes_to_first_agents():
    agents = [uuid.uuid4() for _ in range(3)]
    plan = auto_distribute(10, agents)
    assert [a.count for a in plan] == [4, 3, 3]
    assert [a.agent_id for a in plan] == agents


@pytest.mark.parametrize("total,k", [(0, 1), (1, 4), (7, 7), (100, 3), (101, 10)])
def test_auto_distribute_is_even_and_conserves_total(total, k):
    plan = auto_distribute(total, [uuid.uuid4() for _ in range(k)])
    counts = [a.count for a in plan]
    assert sum(counts) == total
    assert max(counts) - min(counts) <= 1


def test_auto_distribute_needs_agents():
    with pytest.raises(ValueError):
        auto_distribute(5, [])


def test_validate_manual_reports_signed_delta():
    a, b = uuid.uuid4(), uuid.uuid4()
    with pytest.raises(DistributionMismatchError) as exc:
        validate_manual(10, [Allocation(a, 6), Allocation(b, 6)])
    assert exc.value.delta == 2

    with pytest.raises(DistributionMismatchError) as exc:
        validate_manual(10, [Allocation(a, 3), Allocation(b, 3)])
    assert exc.value.delta == -4


def test_validate_manual_rejects_negative_counts():
    with pytest.raises(ValueError):
        validate_manual(0, [Allocation(uuid.uuid4(), -1), Allocation(uuid.uuid4(), 1)])


async def _batch_with_leads(db, owner, count: int) -> UploadBatch:
    batch = UploadBatch(filename="sheet.csv", uploaded_by=owner.id, total_leads=count)
    db.add(batch)
    await db.flush()
    db.add_all([
        Lead(business_name=f"Biz {i}", phone_number=f"90555000{i:04d}", batch_id=batch.id)
        for i in range(count)
    ])
    await db.commit()
    return batch


async def _assigned_counts(db, batch_id):
    result = await db.execute(
        select(Lead.assigned_to, func.count()).where(Lead.batch_id == batch_id).group_by(Lead.assigned_to)
    )
    return dict(result.all())


@pytest.mark.asyncio
async def test_distribute_batch_auto(db, manager, agent, second_agent, third_agent):
    batch = await _batch_with_leads(db, manager, 10)

    outcome = await distribute_batch(
        db, batch.id, requested_by=manager.id,
        agent_ids=[agent.id, second_agent.id, third_agent.id],
    )

    assert outcome.total_assigned == 10
    counts = await _assigned_counts(db, batch.id)
    assert counts == {agent.id: 4, second_agent.id: 3, third_agent.id: 3}

    entries = (await db.execute(
        select(ActivityLogEntry).where(ActivityLogEntry.action == ActivityAction.ASSIGNED)
    )).scalars().all()
    assert len(entries) == 10
    assert entries[0].details["assigned_by"] == str(manager.id)
    assert entries[0].details["batch_id"] == str(batch.id)


@pytest.mark.asyncio
async def test_distribute_batch_manual_mismatch_writes_nothing(db, manager, agent, second_agent):
    batch = await _batch_with_leads(db, manager, 5)
    batch_id = batch.id

    with pytest.raises(DistributionMismatchError) as exc:
        await distribute_batch(
            db, batch_id, requested_by=manager.id,
            allocations=[Allocation(agent.id, 4), Allocation(second_agent.id, 2)],
        )
    assert exc.value.delta == 1
    await db.rollback()

    assert await _assigned_counts(db, batch_id) == {None: 5}
    runs = await db.execute(select(func.count()).select_from(DistributionRun))
    assert runs.scalar() == 0


@pytest.mark.asyncio
async def test_distribute_batch_only_touches_unassigned(db, manager, agent, second_agent):
    batch = await _batch_with_leads(db, manager, 4)
    await distribute_batch(db, batch.id, requested_by=manager.id, agent_ids=[agent.id])

    with pytest.raises(NothingToDistributeError):
        await distribute_batch(db, batch.id, requested_by=manager.id, agent_ids=[second_agent.id])

    outcome = await distribute_batch(
        db, batch.id, requested_by=manager.id, agent_ids=[agent.id, second_agent.id], reassign=True,
    )
    assert outcome.total_assigned == 4
    assert await _assigned_counts(db, batch.id) == {agent.id: 2, second_agent.id: 2}


@pytest.mark.asyncio
async def test_distribute_batch_replays_idempotency_key(db, manager, agent, second_agent):
    batch = await _batch_with_leads(db, manager, 3)

    first = await distribute_batch(
        db, batch.id, requested_by=manager.id, agent_ids=[agent.id], idempotency_key="dist-1",
    )
    # Same key, different agents: the stored result wins and nothing moves
    second = await distribute_batch(
        db, batch.id, requested_by=manager.id, agent_ids=[second_agent.id], idempotency_key="dist-1",
    )

    assert not first.replayed
    assert second.replayed
    assert second.allocations == [Allocation(agent.id, 3)]
    assert await _assigned_counts(db, batch.id) == {agent.id: 3}


@pytest.mark.asyncio
async def test_distribute_batch_key_bound_to_its_batch(db, manager, agent, second_agent):
    first_batch = await _batch_with_leads(db, manager, 2)
    other_batch = await _batch_with_leads(db, manager, 3)
    first_id, other_id = first_batch.id, other_batch.id

    await distribute_batch(db, first_id, requested_by=manager.id, agent_ids=[agent.id], idempotency_key="k1")

    with pytest.raises(IdempotencyKeyConflictError) as exc:
        await distribute_batch(db, other_id, requested_by=manager.id, agent_ids=[second_agent.id], idempotency_key="k1")
    assert exc.value.used_for == first_id
    assert exc.value.requested == other_id

    assert await _assigned_counts(db, other_id) == {None: 3}
    assert await _assigned_counts(db, first_id) == {agent.id: 2}


@pytest.mark.asyncio
async def test_distribute_batch_rejects_unknown_agents(db, manager, agent):
    batch = await _batch_with_leads(db, manager, 2)
    stranger = uuid.uuid4()

    with pytest.raises(UnknownAgentError) as exc:
        await distribute_batch(db, batch.id, requested_by=manager.id, agent_ids=[agent.id, stranger])
    assert exc.value.agent_ids == [stranger]


@pytest.mark.asyncio
async def test_distribute_batch_missing_batch(db, manager, agent):
    with pytest.raises(BatchNotFoundError):
        await distribute_batch(db, uuid.uuid4(), requested_by=manager.id, agent_ids=[agent.id])
