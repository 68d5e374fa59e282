"""Batch distribution of leads across agents.

Auto mode splits N leads over K agents as evenly as possible (the first
N mod K agents get one extra). Manual mode takes caller-supplied counts and
only checks that they add up to N; it never fixes a bad split itself.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.permissions import Capability, has_capability
from app.models.activity_log import ActivityAction, ActivityLogEntry
from app.models.distribution_run import DistributionRun
from app.models.lead import Lead
from app.models.profile import Profile
from app.models.upload_batch import UploadBatch

logger = logging.getLogger(__name__)


class DistributionMismatchError(ValueError):
    """Manual counts do not add up to the number of leads available."""

    def __init__(self, requested: int, available: int):
        self.requested = requested
        self.available = available
        self.delta = requested - available
        super().__init__(
            f"Distribution total {requested} does not match {available} available leads "
            f"(delta {self.delta:+d})"
        )


class NothingToDistributeError(ValueError):
    pass


class IdempotencyKeyConflictError(ValueError):
    """Key already used for a different batch."""

    def __init__(self, idempotency_key: str, used_for: UUID, requested: UUID):
        self.idempotency_key = idempotency_key
        self.used_for = used_for
        self.requested = requested
        super().__init__(
            f"Idempotency key {idempotency_key!r} was already used for batch {used_for}, not {requested}"
        )


class BatchNotFoundError(LookupError):
    pass


class UnknownAgentError(ValueError):
    def __init__(self, agent_ids: Sequence[UUID]):
        self.agent_ids = list(agent_ids)
        super().__init__(f"Unknown or inactive agents: {', '.join(str(a) for a in self.agent_ids)}")


@dataclass(frozen=True)
class Allocation:
    agent_id: UUID
    count: int


@dataclass
class DistributionOutcome:
    batch_id: UUID
    mode: str
    allocations: list[Allocation]
    replayed: bool = False

    @property
    def total_assigned(self) -> int:
        return sum(a.count for a in self.allocations)


def auto_distribute(total: int, agent_ids: Sequence[UUID]) -> list[Allocation]:
    """Even split; deterministic and stable in ``agent_ids`` order."""
    if not agent_ids:
        raise ValueError("At least one agent is required")
    if total < 0:
        raise ValueError("Lead count cannot be negative")

    base, remainder = divmod(total, len(agent_ids))
    return [
        Allocation(agent_id=agent_id, count=base + (1 if index < remainder else 0))
        for index, agent_id in enumerate(agent_ids)
    ]


def validate_manual(total: int, allocations: Sequence[Allocation]) -> None:
    """Reject negative counts and totals that do not conserve ``total``."""
    negative = [a for a in allocations if a.count < 0]
    if negative:
        raise ValueError(f"Negative lead count for agent {negative[0].agent_id}")

    requested = sum(a.count for a in allocations)
    if requested != total:
        raise DistributionMismatchError(requested=requested, available=total)


async def _replay(db: AsyncSession, idempotency_key: str, batch_id: UUID) -> Optional[DistributionOutcome]:
    result = await db.execute(
        select(DistributionRun).where(DistributionRun.idempotency_key == idempotency_key)
    )
    run = result.scalar_one_or_none()
    if run is None:
        return None
    if run.batch_id != batch_id:
        raise IdempotencyKeyConflictError(idempotency_key, used_for=run.batch_id, requested=batch_id)
    logger.info("Distribution key %s already applied to batch %s; replaying", idempotency_key, run.batch_id)
    return DistributionOutcome(
        batch_id=run.batch_id,
        mode=run.mode,
        allocations=[
            Allocation(agent_id=UUID(item["agent_id"]), count=item["assigned_count"])
            for item in run.result
        ],
        replayed=True,
    )


async def _check_agents(db: AsyncSession, agent_ids: Sequence[UUID]) -> None:
    result = await db.execute(
        select(Profile).where(Profile.id.in_(list(agent_ids)), Profile.is_active.is_(True))
    )
    usable = {p.id for p in result.scalars().all() if has_capability(p.role, Capability.WORK_LEADS)}
    missing = [a for a in agent_ids if a not in usable]
    if missing:
        raise UnknownAgentError(missing)


async def distribute_batch(
    db: AsyncSession,
    batch_id: UUID,
    requested_by: UUID,
    agent_ids: Sequence[UUID] | None = None,
    allocations: Sequence[Allocation] | None = None,
    reassign: bool = False,
    idempotency_key: str | None = None,
) -> DistributionOutcome:
    """Assign a batch's leads to agents.

    Exactly one of ``agent_ids`` (auto) or ``allocations`` (manual) must be
    given. Only unassigned leads are touched unless ``reassign`` is set.
    Everything is written in a single commit.
    """
    if (agent_ids is None) == (allocations is None):
        raise ValueError("Provide either agent_ids (auto) or allocations (manual)")

    if idempotency_key:
        replay = await _replay(db, idempotency_key, batch_id)
        if replay:
            return replay

    batch = await db.get(UploadBatch, batch_id)
    if batch is None:
        raise BatchNotFoundError(f"Batch {batch_id} not found")

    query = select(Lead).where(Lead.batch_id == batch_id)
    if not reassign:
        query = query.where(Lead.assigned_to.is_(None))
    query = query.order_by(Lead.created_at, Lead.id)
    leads = (await db.execute(query)).scalars().all()

    if not leads:
        raise NothingToDistributeError(f"No unassigned leads in batch {batch_id}")

    if allocations is None:
        mode = "auto"
        plan = auto_distribute(len(leads), list(agent_ids))
    else:
        mode = "manual"
        plan = list(allocations)
        validate_manual(len(leads), plan)

    await _check_agents(db, [a.agent_id for a in plan])

    cursor = 0
    for allocation in plan:
        if allocation.count == 0:
            continue
        chunk = leads[cursor:cursor + allocation.count]
        cursor += allocation.count
        for lead in chunk:
            lead.assigned_to = allocation.agent_id
        db.add_all([
            ActivityLogEntry(
                lead_id=lead.id,
                agent_id=allocation.agent_id,
                action=ActivityAction.ASSIGNED,
                details={"assigned_by": str(requested_by), "batch_id": str(batch_id)},
            )
            for lead in chunk
        ])

    db.add(DistributionRun(
        batch_id=batch_id,
        idempotency_key=idempotency_key,
        requested_by=requested_by,
        mode=mode,
        total_assigned=len(leads),
        result=[{"agent_id": str(a.agent_id), "assigned_count": a.count} for a in plan],
    ))
    await db.commit()

    logger.info(
        "Batch %s: %d leads distributed (%s) across %d agents by %s",
        batch_id, len(leads), mode, len(plan), requested_by,
    )
    return DistributionOutcome(batch_id=batch_id, mode=mode, allocations=plan)
