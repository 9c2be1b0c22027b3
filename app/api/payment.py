"""
app/api/payment.py

Purpose: Payment endpoints

- Razorpay webhook (unauthenticated, signature-checked on the raw body)
- Onboarding payment status, credit purchases and billing history
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Header, Query, Request
from fastapi.responses import JSONResponse

from app.api.deps import (
    get_billing_ledger,
    get_current_user,
    get_order_service,
    get_session_store,
    get_webhook_dispatcher,
)
from app.core.exceptions import AuthorizationError, ResourceNotFoundError
from app.core.logging import get_logger
from app.flow.dispatcher import PaymentWebhookDispatcher
from app.flow.states import BillingStatus, TransactionType
from app.models.billing import public_billing
from app.schemas.payment import CreditPurchaseRequest
from app.services.billing_service import BillingLedger
from app.services.onboarding_service import OnboardingSessionStore
from app.services.order_service import OrderService, credit_intent
from utils.time_utils import is_expired

logger = get_logger(__name__)
router = APIRouter()


@router.post("/webhook")
async def payment_webhook(
    request: Request,
    x_razorpay_signature: Optional[str] = Header(None),
    dispatcher: PaymentWebhookDispatcher = Depends(get_webhook_dispatcher),
):
    """
    Razorpay payment webhook.

    The signature covers the exact bytes received, so the body is read raw
    and never re-serialized before verification.
    """
    body = await request.body()
    result = await dispatcher.dispatch(body, x_razorpay_signature)
    return JSONResponse(status_code=result.status_code, content=result.body)


@router.get("/status/{session_id}")
async def onboarding_payment_status(
    session_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    sessions: OnboardingSessionStore = Depends(get_session_store),
):
    session = await sessions.get_by_id(session_id)
    if not session or session["user_id"] != user["_id"]:
        raise ResourceNotFoundError("Onboarding session not found or expired")

    return {
        "success": True,
        "data": {
            "session_id": str(session["_id"]),
            "status": session["status"],
            "plan_type": session["plan_type"],
            "razorpay_order_id": session["provider_order_id"],
            "expires_at": session["expires_at"].isoformat(),
            "expired": is_expired(session["expires_at"]),
        },
    }


@router.post("/purchase-credits")
async def purchase_credits(
    body: CreditPurchaseRequest,
    user: Dict[str, Any] = Depends(get_current_user),
    orders: OrderService = Depends(get_order_service),
    billing: BillingLedger = Depends(get_billing_ledger),
):
    user_id = str(user["_id"])
    intent = credit_intent(user_id, body.credits, body.amount)

    order = await orders.create_order(user_id, intent)
    billing_id = await billing.record_pending(
        user_id=user_id,
        amount=order.amount,
        kind=intent.kind,
        order_id=order.id,
        credits=intent.credits,
        currency=order.currency,
    )

    return {
        "success": True,
        "data": {
            "billing_id": billing_id,
            "razorpay_order": {
                "id": order.id,
                "amount": order.amount,
                "currency": order.currency,
            },
        },
    }


@router.get("/credit-status/{billing_id}")
async def credit_status(
    billing_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    billing: BillingLedger = Depends(get_billing_ledger),
):
    record = await billing.get_by_id(billing_id)
    if not record:
        raise ResourceNotFoundError("Billing record not found")
    if record["user_id"] != user["_id"]:
        raise AuthorizationError("Not authorized to view this billing record")

    return {
        "success": True,
        "data": {
            "status": record["status"],
            "credits": record.get("credits"),
            "amount": record["amount"],
            "completed_at": record.get("completed_at"),
        },
    }


@router.get("/my-billings")
async def my_billings(
    status: Optional[BillingStatus] = Query(None),
    kind: Optional[TransactionType] = Query(None, alias="type"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    user: Dict[str, Any] = Depends(get_current_user),
    billing: BillingLedger = Depends(get_billing_ledger),
):
    records = await billing.list_billings(
        user_id=str(user["_id"]),
        status=status,
        kind=kind,
        limit=limit,
        offset=offset,
    )
    return {"success": True, "count": len(records), "data": [public_billing(r) for r in records]}
