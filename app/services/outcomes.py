"""Recording call outcomes on leads and approving sales.

Both write append-only history (activity log, notes) next to the mutable
lead/sale row and commit once. XP is awarded by the caller afterwards, so a
ledger failure never undoes the outcome itself.
"""

import logging
from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.permissions import Capability, has_capability
from app.models.activity_log import ActivityAction, ActivityLogEntry
from app.models.lead import Lead, LeadStatus
from app.models.lead_note import LeadNote
from app.models.profile import Profile
from app.models.sale import Sale, SaleStatus
from app.services.urgency import as_utc

logger = logging.getLogger(__name__)


class LeadNotFoundError(LookupError):
    pass


class LeadNotAssignedError(PermissionError):
    pass


class SaleNotFoundError(LookupError):
    pass


class SaleNotPendingError(ValueError):
    def __init__(self, sale_id: UUID, status: str):
        self.status = status
        super().__init__(f"Sale {sale_id} is {status}, only pending sales can be approved")


def _naive_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    return as_utc(value).replace(tzinfo=None)


def xp_reasons_for(status: LeadStatus) -> list[str]:
    """XP reasons earned by one recorded call."""
    reasons = ["call_made"]
    if status == LeadStatus.APPOINTMENT:
        reasons.append("appointment_set")
    return reasons


async def record_outcome(
    db: AsyncSession,
    lead_id: UUID,
    agent: Profile,
    status: LeadStatus,
    appointment_date: datetime | None = None,
    duration: float | None = None,
    note: str | None = None,
    action_taken: str | None = None,
) -> Lead:
    """Apply one call result to a lead.

    Agents may only work leads assigned to them; profiles that can
    distribute leads may record on any lead.
    """
    lead = await db.get(Lead, lead_id)
    if lead is None:
        raise LeadNotFoundError(f"Lead {lead_id} not found")

    if lead.assigned_to != agent.id and not has_capability(agent.role, Capability.DISTRIBUTE_LEADS):
        raise LeadNotAssignedError(f"Lead {lead_id} is not assigned to {agent.id}")

    now = datetime.utcnow()
    lead.status = status
    lead.processed_at = now
    if appointment_date is not None:
        lead.appointment_date = _naive_utc(appointment_date)

    details: dict = {"status": status.value}
    if duration is not None:
        details["duration"] = duration
    db.add(ActivityLogEntry(
        lead_id=lead.id,
        agent_id=agent.id,
        action=ActivityAction.COMPLETED,
        details=details,
    ))

    if note:
        db.add(LeadNote(lead_id=lead.id, agent_id=agent.id, note=note, action_taken=action_taken))

    await db.commit()
    await db.refresh(lead)
    logger.info("Lead %s marked %s by %s", lead.id, status.value, agent.id)
    return lead


async def approve_sale(db: AsyncSession, sale_id: UUID, approver: Profile) -> Sale:
    sale: Optional[Sale] = await db.get(Sale, sale_id)
    if sale is None:
        raise SaleNotFoundError(f"Sale {sale_id} not found")
    if sale.status != SaleStatus.PENDING:
        raise SaleNotPendingError(sale_id, SaleStatus(sale.status).value)

    sale.status = SaleStatus.APPROVED
    sale.approved_at = datetime.utcnow()
    await db.commit()
    await db.refresh(sale)
    logger.info("Sale %s approved by %s", sale.id, approver.id)
    return sale
