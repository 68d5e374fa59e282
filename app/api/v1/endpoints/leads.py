"""Lead endpoints.

- POST /api/v1/leads/import        → Import parsed sheet rows as a new batch
- POST /api/v1/leads/{id}/outcome  → Record the result of a call on a lead
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import get_db
from app.core.dependencies import require_capability
from app.core.permissions import Capability
from app.core.services import LeadEngineServices, get_services
from app.models.profile import Profile
from app.schemas.lead import (
    LeadImportRequest,
    LeadImportResult,
    LeadOut,
    LeadOutcomeResult,
    LeadOutcomeUpdate,
)
from app.services.lead_import import import_leads
from app.services.outcomes import (
    LeadNotAssignedError,
    LeadNotFoundError,
    record_outcome,
    xp_reasons_for,
)

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/import", response_model=LeadImportResult)
async def import_lead_rows(
    payload: LeadImportRequest,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_capability(Capability.IMPORT_LEADS)),
    services: LeadEngineServices = Depends(get_services),
):
    """Validate, dedup and insert uploaded rows.

    If the lead store fails while checking for duplicates the import is
    aborted and nothing is written.
    """
    try:
        summary = await import_leads(
            db,
            filename=payload.filename,
            rows=[row.model_dump() for row in payload.leads],
            uploaded_by=current_user.id,
            import_key=payload.import_key,
            lock=services.import_lock,
            chunk_size=settings.DEDUP_CHUNK_SIZE,
        )
    except IntegrityError as e:
        await db.rollback()
        logger.warning("Import %s collided with a concurrent import: %s", payload.import_key, e)
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="An import with this key is already in progress",
        )
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("Lead import of %s aborted: %s", payload.filename, e)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Lead store unavailable; import aborted and nothing was written",
        )

    return summary


@router.post("/{lead_id}/outcome", response_model=LeadOutcomeResult)
async def record_lead_outcome(
    lead_id: UUID,
    payload: LeadOutcomeUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_capability(Capability.WORK_LEADS)),
    services: LeadEngineServices = Depends(get_services),
):
    try:
        lead = await record_outcome(
            db,
            lead_id=lead_id,
            agent=current_user,
            status=payload.status,
            appointment_date=payload.appointment_date,
            duration=payload.duration,
            note=payload.note,
            action_taken=payload.action_taken,
        )
    except LeadNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except LeadNotAssignedError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))

    lead_out = LeadOut.model_validate(lead)
    xp = await services.xp_ledger.award_quietly(db, current_user.id, xp_reasons_for(payload.status))
    return LeadOutcomeResult(lead=lead_out, xp_awarded=xp)
