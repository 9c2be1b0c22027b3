"""
app/api/admin.py

Purpose: Operator endpoints

- Twin activation once the external avatar is ready
- Payment anomaly review
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from app.api.deps import get_reconciliation_log, get_twin_service, get_user_service, require_admin
from app.core.config import settings
from app.core.exceptions import ConflictError, ResourceNotFoundError
from app.core.logging import get_logger
from app.models.twin import public_twin
from app.services.reconciliation_service import AnomalyStatus, ReconciliationLog
from app.services.twin_service import TwinService
from app.services.user_service import UserService

logger = get_logger(__name__)
router = APIRouter()


class ActivateRequest(BaseModel):
    heygen_avatar_id: str = Field(..., min_length=1)


class ResolveRequest(BaseModel):
    note: str = Field(..., min_length=1)


def _public_anomaly(anomaly: Dict[str, Any]) -> Dict[str, Any]:
    return {**anomaly, "_id": str(anomaly["_id"])}


@router.post("/twins/{twin_id}/activate")
async def activate_twin(
    twin_id: str,
    body: ActivateRequest,
    admin: Dict[str, Any] = Depends(require_admin),
    twins: TwinService = Depends(get_twin_service),
    users: UserService = Depends(get_user_service),
):
    """Activates a twin and grants the creator's activation bonus once."""
    twin = await twins.activate(twin_id, body.heygen_avatar_id)
    if not twin:
        if await twins.get_twin(twin_id):
            raise ConflictError("Twin is already active", details={"twin_id": twin_id})
        raise ResourceNotFoundError("Twin not found")

    await users.add_credits(twin["creator_id"], settings.ACTIVATION_BONUS_CREDITS)
    return {"success": True, "data": public_twin(twin)}


@router.get("/anomalies")
async def list_anomalies(
    status: Optional[AnomalyStatus] = Query(AnomalyStatus.OPEN),
    limit: int = Query(100, ge=1, le=500),
    admin: Dict[str, Any] = Depends(require_admin),
    reconciliation: ReconciliationLog = Depends(get_reconciliation_log),
):
    anomalies = await reconciliation.list_anomalies(status=status, limit=limit)
    return {"success": True, "count": len(anomalies), "data": [_public_anomaly(a) for a in anomalies]}


@router.post("/anomalies/{anomaly_id}/resolve")
async def resolve_anomaly(
    anomaly_id: str,
    body: ResolveRequest,
    admin: Dict[str, Any] = Depends(require_admin),
    reconciliation: ReconciliationLog = Depends(get_reconciliation_log),
):
    anomaly = await reconciliation.resolve_anomaly(anomaly_id, body.note)
    if not anomaly:
        raise ResourceNotFoundError("Open anomaly not found")

    logger.info(f"Anomaly {anomaly_id} resolved by {admin['email']}")
    return {"success": True, "data": _public_anomaly(anomaly)}
