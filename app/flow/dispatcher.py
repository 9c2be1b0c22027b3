"""
app/flow/dispatcher.py

Purpose: Payment webhook dispatcher

- Verifies the provider signature before anything else
- Classifies the event (capture succeeded / capture failed / ignored)
- Routes to the matching handler in app/flow/handlers
- Always answers the provider with an acknowledgement once authenticated
"""

import hashlib
import hmac
import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from pydantic import ValidationError as PydanticValidationError

from app.core.exceptions import AuthenticityError, CorrelationMissError
from app.core.logging import get_logger, LogContext
from app.flow.states import WebhookEvent
from app.schemas.payment import WebhookEnvelope
from app.services.billing_service import BillingLedger
from app.services.onboarding_service import OnboardingSessionStore
from app.services.reconciliation_service import ReconciliationLog
from app.services.twin_service import TwinService
from app.services.user_service import UserService
from utils.constants import MSG_EVENT_IGNORED

logger = get_logger(__name__)


@dataclass
class WebhookResult:
    status_code: int
    body: Dict[str, Any]


@dataclass
class WebhookContext:
    """Everything a handler may touch while processing one delivery."""
    billing: BillingLedger
    sessions: OnboardingSessionStore
    users: UserService
    twins: TwinService
    reconciliation: ReconciliationLog
    clock: Callable[[], datetime] = field(default=datetime.utcnow)


def compute_signature(body: bytes, secret: str) -> str:
    """Hex HMAC-SHA256 of the raw request body."""
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


def verify_signature(body: bytes, signature: Optional[str], secret: Optional[str]) -> None:
    """
    Raises:
        AuthenticityError: Secret not configured, header missing, or mismatch
    """
    if not secret:
        logger.error("Webhook secret not configured; rejecting delivery")
        raise AuthenticityError()
    if not signature:
        logger.warning("⚠️ Webhook without signature header")
        raise AuthenticityError()

    expected = compute_signature(body, secret)
    if not hmac.compare_digest(expected.encode("utf-8"), signature.strip().encode("utf-8")):
        logger.warning("⚠️ Invalid webhook signature")
        raise AuthenticityError()


class PaymentWebhookDispatcher:
    """
    Drives the payment state machine for one webhook delivery.

    Each delivery is independent. Duplicate or concurrent deliveries are
    safe because every transition is an atomic update conditioned on the
    record still being PENDING.
    """

    def __init__(self, secret: Optional[str], context: WebhookContext):
        self.secret = secret
        self.context = context

    async def dispatch(self, body: bytes, signature: Optional[str]) -> WebhookResult:
        verify_signature(body, signature, self.secret)

        try:
            envelope = WebhookEnvelope.model_validate(json.loads(body))
        except (ValueError, PydanticValidationError) as e:
            logger.error(f"Verified webhook with unreadable body: {e}")
            return WebhookResult(200, {"success": False, "message": "Malformed payload ignored"})

        handler = self._route(envelope.event)
        if handler is None:
            logger.info(f"Webhook event ignored: {envelope.event}")
            return WebhookResult(200, {"success": True, "message": MSG_EVENT_IGNORED})

        try:
            payment = envelope.payment_entity()
        except PydanticValidationError as e:
            logger.error(f"Webhook {envelope.event} without usable payment entity: {e}")
            return WebhookResult(200, {"success": False, "message": "Malformed payload ignored"})

        with LogContext(event=envelope.event, order_id=payment.order_id):
            logger.info(f"✓ Webhook received: {envelope.event}")
            try:
                return await handler(self.context, payment)
            except CorrelationMissError as e:
                # Acknowledged so the provider stops retrying
                logger.warning(f"⚠️ No pending billing record found for: {payment.order_id}")
                return WebhookResult(200, {"success": False, "error": e.message, "code": e.code})

    @staticmethod
    def _route(event: str):
        from app.flow.handlers.captured import handle_payment_captured
        from app.flow.handlers.failed import handle_payment_failed

        handlers = {
            WebhookEvent.PAYMENT_CAPTURED.value: handle_payment_captured,
            WebhookEvent.PAYMENT_FAILED.value: handle_payment_failed,
        }
        return handlers.get(event)
