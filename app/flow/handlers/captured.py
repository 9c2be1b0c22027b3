"""
app/flow/handlers/captured.py

Handles: payment.captured

- Completes the PENDING billing record (idempotency guard)
- PURCHASE: credits the user
- PLAN_UPGRADE: materializes the twin, marks the user paid, closes the session
- Never rolls back a completed billing record; divergences go to the
  reconciliation log
"""

from typing import Any, Dict

from app.core.exceptions import CorrelationMissError
from app.core.logging import get_logger
from app.flow.dispatcher import WebhookContext, WebhookResult
from app.flow.states import TransactionType
from app.schemas.payment import PaymentEntity
from app.services.reconciliation_service import AnomalyKind
from utils.constants import MSG_BILLING_NOT_FOUND
from utils.time_utils import compute_plan_expiry

logger = get_logger(__name__)


async def handle_payment_captured(ctx: WebhookContext, payment: PaymentEntity) -> WebhookResult:
    """
    Processes a successful capture.

    Args:
        ctx: Services for this delivery
        payment: Payment entity from the webhook

    Returns:
        Acknowledgement for the provider

    Raises:
        CorrelationMissError: No PENDING billing record for the order
    """
    order_id = payment.order_id

    billing = await ctx.billing.complete_by_order_id(order_id, payment.id)
    if billing is None:
        # Already processed, or an order we never issued
        raise CorrelationMissError(MSG_BILLING_NOT_FOUND, details={"order_id": order_id})

    kind = billing.get("transaction_type")
    try:
        if kind == TransactionType.PURCHASE.value:
            await _apply_credit_purchase(ctx, billing)
        elif kind == TransactionType.PLAN_UPGRADE.value:
            await _apply_plan_upgrade(ctx, billing, payment)
        else:
            logger.warning(f"No capture action for transaction type {kind}")
    except Exception as e:
        # Money was collected; the ledger stays COMPLETED
        logger.error(f"Post-completion step failed: {e}", exc_info=True)
        await ctx.reconciliation.record_anomaly(
            AnomalyKind.POST_COMPLETION_FAILURE,
            order_id=order_id,
            user_id=billing.get("user_id"),
            billing_id=billing.get("_id"),
            details={
                "payment_id": payment.id,
                "transaction_type": kind,
                "error": f"{type(e).__name__}: {e}",
            },
        )

    return WebhookResult(200, {"success": True})


async def _apply_credit_purchase(ctx: WebhookContext, billing: Dict[str, Any]):
    logger.info("✓ Processing credit purchase...")
    credits = billing.get("credits") or 0

    balance = await ctx.users.add_credits(billing["user_id"], credits)
    if balance is None:
        await ctx.reconciliation.record_anomaly(
            AnomalyKind.USER_MISSING,
            order_id=billing["provider_order_id"],
            user_id=billing.get("user_id"),
            billing_id=billing.get("_id"),
            details={"credits": credits},
        )
        return

    logger.info(f"✅ Added {credits} credits to user {billing['user_id']}")


async def _apply_plan_upgrade(ctx: WebhookContext, billing: Dict[str, Any], payment: PaymentEntity):
    logger.info("✓ Processing onboarding payment (Twin Synthesis)...")
    order_id = payment.order_id

    session = await ctx.sessions.find_by_order_id(order_id)
    if session is None:
        # Consumed already, or expired before the webhook arrived
        await ctx.reconciliation.record_anomaly(
            AnomalyKind.SESSION_MISSING,
            order_id=order_id,
            user_id=billing.get("user_id"),
            billing_id=billing.get("_id"),
            details={"payment_id": payment.id, "plan_type": billing.get("plan_type")},
        )
        return

    plan_expires_at = compute_plan_expiry(session["plan_type"], ctx.clock())
    twin = await ctx.twins.create_from_session(session, plan_expires_at, payment.id)

    if not await ctx.users.mark_onboarding_paid(session["user_id"], payment.id):
        await ctx.reconciliation.record_anomaly(
            AnomalyKind.USER_MISSING,
            order_id=order_id,
            user_id=session["user_id"],
            billing_id=billing.get("_id"),
            details={"payment_id": payment.id, "twin_id": str(twin["_id"])},
        )
    await ctx.sessions.mark_paid(order_id, payment.id)

    logger.info(
        f"✅ Onboarding completed for user: {session['user_id']} (twin {twin['_id']})"
    )
