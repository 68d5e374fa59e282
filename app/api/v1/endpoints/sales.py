"""Sales endpoints.

- POST /api/v1/sales/{id}/approve → Approve a pending sale
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.dependencies import require_capability
from app.core.permissions import Capability
from app.core.services import LeadEngineServices, get_services
from app.models.profile import Profile
from app.schemas.performance import SaleOut
from app.services.outcomes import SaleNotFoundError, SaleNotPendingError, approve_sale

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/{sale_id}/approve", response_model=SaleOut)
async def approve(
    sale_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_capability(Capability.APPROVE_SALES)),
    services: LeadEngineServices = Depends(get_services),
):
    try:
        sale = await approve_sale(db, sale_id, approver=current_user)
    except SaleNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except SaleNotPendingError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    sale_out = SaleOut.model_validate(sale)
    await services.xp_ledger.award_quietly(db, sale.agent_id, ["sale_closed"])
    return sale_out
