"""
app/flow/handlers/failed.py

Handles: payment.failed

- Marks the billing record FAILED
- Marks the onboarding session FAILED
- Both are no-ops when the record is gone or already final
"""

from app.core.logging import get_logger
from app.flow.dispatcher import WebhookContext, WebhookResult
from app.schemas.payment import PaymentEntity

logger = get_logger(__name__)


async def handle_payment_failed(ctx: WebhookContext, payment: PaymentEntity) -> WebhookResult:
    order_id = payment.order_id

    billing = await ctx.billing.fail_by_order_id(order_id)
    session = await ctx.sessions.mark_failed(order_id)

    logger.info(
        f"❌ Payment failed for order: {order_id}",
        extra={"billing_updated": billing is not None, "session_updated": session is not None}
    )
    return WebhookResult(200, {"success": True})
