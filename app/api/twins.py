"""
app/api/twins.py

Purpose: Twin endpoints

- Creator onboarding: stores assets, creates the provider order, session
  and PENDING billing record; the twin itself only appears after the
  payment webhook
- Owner CRUD on materialized twins
"""

import json
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from app.api.deps import (
    get_billing_ledger,
    get_current_user,
    get_order_service,
    get_session_store,
    get_twin_service,
    get_user_service,
)
from app.core.config import settings
from app.core.exceptions import AuthorizationError, ResourceNotFoundError, ValidationError
from app.core.logging import get_logger, LogContext
from app.flow.states import OnboardingStatus, PlanType, UserRole
from app.models.twin import public_twin
from app.schemas.onboarding import OnboardingAnswers
from app.services.billing_service import BillingLedger
from app.services.onboarding_service import OnboardingSessionStore
from app.services.order_service import OrderService, onboarding_intent
from app.services.twin_service import TwinService
from app.services.upload_service import save_onboarding_assets
from app.services.user_service import UserService
from utils.constants import MSG_ANSWERS_REQUIRED, MSG_ONBOARDING_ORDER_CREATED

logger = get_logger(__name__)
router = APIRouter()


class TwinUpdateRequest(BaseModel):
    name: Optional[str] = None
    occupation: Optional[str] = None
    personality: Optional[str] = None
    voice_description: Optional[str] = None


def _parse_answers(raw: str) -> OnboardingAnswers:
    try:
        data = json.loads(raw)
    except ValueError:
        raise ValidationError(MSG_ANSWERS_REQUIRED)
    if not isinstance(data, dict):
        raise ValidationError(MSG_ANSWERS_REQUIRED)
    try:
        return OnboardingAnswers.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(MSG_ANSWERS_REQUIRED, details=e.errors(include_url=False))


def _ensure_access(twin: Optional[Dict[str, Any]], user: Dict[str, Any]) -> Dict[str, Any]:
    if not twin:
        raise ResourceNotFoundError("Twin not found")
    if twin["creator_id"] != user["_id"] and user.get("role") != UserRole.ADMIN.value:
        raise AuthorizationError("Not authorized to access this twin")
    return twin


@router.post("/initiate-onboarding")
async def initiate_onboarding(
    answers: str = Form(...),
    plan_type: str = Form(PlanType.MONTHLY.value),
    video: Optional[UploadFile] = File(None),
    audio: Optional[UploadFile] = File(None),
    thumbnail: Optional[UploadFile] = File(None),
    user: Dict[str, Any] = Depends(get_current_user),
    orders: OrderService = Depends(get_order_service),
    sessions: OnboardingSessionStore = Depends(get_session_store),
    billing: BillingLedger = Depends(get_billing_ledger),
    users: UserService = Depends(get_user_service),
):
    """
    Starts creator onboarding.

    Validation happens before the provider is contacted, so a bad plan or
    malformed answers never produce an order.
    """
    user_id = str(user["_id"])
    parsed_answers = _parse_answers(answers)
    intent = onboarding_intent(user_id, plan_type)

    with LogContext(user_id=user_id):
        asset_paths = await save_onboarding_assets(
            {"video": video, "audio": audio, "thumbnail": thumbnail},
            settings.UPLOAD_DIR,
        )

        order = await orders.create_order(user_id, intent)

        session_id = await sessions.create_session(
            user_id=user_id,
            answers=parsed_answers,
            plan_type=intent.plan_type,
            asset_paths=asset_paths,
            order_id=order.id,
        )
        await billing.record_pending(
            user_id=user_id,
            amount=order.amount,
            kind=intent.kind,
            order_id=order.id,
            plan_type=intent.plan_type,
            currency=order.currency,
        )
        await users.set_onboarding_status(user_id, OnboardingStatus.PAYMENT_PENDING)

        logger.info(f"Onboarding initiated, awaiting payment for {order.id}")

    return {
        "success": True,
        "message": MSG_ONBOARDING_ORDER_CREATED,
        "data": {
            "session_id": session_id,
            "razorpay_order": {
                "id": order.id,
                "amount": order.amount,
                "currency": order.currency,
            },
        },
    }


@router.get("")
async def list_my_twins(
    user: Dict[str, Any] = Depends(get_current_user),
    twins: TwinService = Depends(get_twin_service),
):
    items = await twins.list_for_creator(user["_id"])
    return {"success": True, "count": len(items), "data": [public_twin(t) for t in items]}


@router.get("/{twin_id}")
async def get_twin(
    twin_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    twins: TwinService = Depends(get_twin_service),
):
    twin = _ensure_access(await twins.get_twin(twin_id), user)
    return {"success": True, "data": public_twin(twin)}


@router.put("/{twin_id}")
async def update_twin(
    twin_id: str,
    body: TwinUpdateRequest,
    user: Dict[str, Any] = Depends(get_current_user),
    twins: TwinService = Depends(get_twin_service),
):
    _ensure_access(await twins.get_twin(twin_id), user)
    updated = await twins.update_twin(twin_id, body.model_dump(exclude_none=True))
    if not updated:
        raise ResourceNotFoundError("Twin not found")
    return {"success": True, "data": public_twin(updated)}


@router.delete("/{twin_id}")
async def delete_twin(
    twin_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    twins: TwinService = Depends(get_twin_service),
):
    _ensure_access(await twins.get_twin(twin_id), user)
    await twins.delete_twin(twin_id)
    return {"success": True, "data": {}}
