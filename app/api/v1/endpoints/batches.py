"""Batch distribution endpoint.

- POST /api/v1/batches/{id}/distribute → Assign a batch's leads to agents
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.dependencies import require_capability
from app.core.permissions import Capability
from app.models.profile import Profile
from app.schemas.batch import AgentAssignment, DistributionRequest, DistributionResult
from app.services.distribution import (
    Allocation,
    BatchNotFoundError,
    DistributionMismatchError,
    IdempotencyKeyConflictError,
    NothingToDistributeError,
    UnknownAgentError,
    distribute_batch,
)

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/{batch_id}/distribute", response_model=DistributionResult)
async def distribute(
    batch_id: UUID,
    payload: DistributionRequest,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_capability(Capability.DISTRIBUTE_LEADS)),
):
    """Distribute evenly (auto) or by explicit per-agent counts (manual).

    A manual split that does not add up is rejected with the signed
    difference; nothing is assigned.
    """
    if payload.mode == "manual":
        kwargs = {"allocations": [Allocation(a.agent_id, a.count) for a in payload.assignments]}
    else:
        kwargs = {"agent_ids": payload.agent_ids}

    try:
        outcome = await distribute_batch(
            db,
            batch_id=batch_id,
            requested_by=current_user.id,
            reassign=payload.reassign,
            idempotency_key=payload.idempotency_key,
            **kwargs,
        )
    except DistributionMismatchError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={
                "message": str(e),
                "requested": e.requested,
                "available": e.available,
                "delta": e.delta,
            },
        )
    except BatchNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except IdempotencyKeyConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except NothingToDistributeError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except (UnknownAgentError, ValueError) as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("Distribution of batch %s failed: %s", batch_id, e)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Lead store unavailable; nothing was assigned",
        )

    return DistributionResult(
        batch_id=outcome.batch_id,
        mode=outcome.mode,
        total_assigned=outcome.total_assigned,
        assignments=[AgentAssignment(agent_id=a.agent_id, count=a.count) for a in outcome.allocations],
        replayed=outcome.replayed,
    )
