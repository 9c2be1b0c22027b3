"""
app/services/order_service.py

Purpose: Payment order creation

- Turns a purchase intent (onboarding plan or credit pack) into a provider order
- Builds short deterministic receipts
- Rejects unknown plans and packages before touching the provider
"""

from dataclasses import dataclass, field
from typing import Dict, Optional

from app.core.exceptions import ValidationError
from app.core.logging import get_logger
from app.flow.states import PlanType, TransactionType, get_plan_metadata
from app.services.razorpay_service import RazorpayClient
from utils.constants import (
    CREDIT_PACKAGES,
    MSG_INVALID_PACKAGE,
    MSG_INVALID_PLAN,
    RECEIPT_MAX_LENGTH,
    RECEIPT_PREFIX_CREDITS,
    RECEIPT_PREFIX_ONBOARDING,
)
from utils.time_utils import current_millis

logger = get_logger(__name__)


@dataclass
class PurchaseIntent:
    kind: TransactionType
    amount: int  # smallest currency unit
    receipt_prefix: str
    credits: Optional[int] = None
    plan_type: Optional[PlanType] = None
    notes: Dict[str, str] = field(default_factory=dict)


@dataclass
class ProviderOrder:
    id: str
    amount: int
    currency: str
    receipt: str


def build_receipt(prefix: str, user_id: str, now_ms: Optional[int] = None) -> str:
    """
    Receipt ids must stay within 40 characters.
    Format: {prefix}_{last 8 of user id}_{epoch ms minus its first 3 digits}
    """
    now_ms = now_ms if now_ms is not None else current_millis()
    short_user_id = user_id[-8:]
    timestamp = str(now_ms)[3:]
    return f"{prefix}_{short_user_id}_{timestamp}"[:RECEIPT_MAX_LENGTH]


def parse_plan_type(plan_type: str) -> PlanType:
    try:
        return PlanType(plan_type)
    except ValueError:
        raise ValidationError(MSG_INVALID_PLAN, details={"plan_type": plan_type})


def onboarding_intent(user_id: str, plan_type: str) -> PurchaseIntent:
    plan = get_plan_metadata(parse_plan_type(plan_type))
    return PurchaseIntent(
        kind=TransactionType.PLAN_UPGRADE,
        amount=plan.amount,
        receipt_prefix=RECEIPT_PREFIX_ONBOARDING,
        plan_type=plan.name,
        notes={
            "purpose": "Creator Onboarding",
            "userId": user_id,
            "planType": plan.name.value,
        },
    )


def credit_intent(user_id: str, credits: int, amount: float) -> PurchaseIntent:
    """
    Credit packs are quoted in whole currency units; the order is placed in
    minor units.
    """
    if CREDIT_PACKAGES.get(credits) != amount:
        raise ValidationError(MSG_INVALID_PACKAGE, details={"credits": credits, "amount": amount})
    return PurchaseIntent(
        kind=TransactionType.PURCHASE,
        amount=int(round(amount * 100)),
        receipt_prefix=RECEIPT_PREFIX_CREDITS,
        credits=credits,
        notes={
            "purpose": "Credit Purchase",
            "userId": user_id,
            "credits": str(credits),
        },
    )


class OrderService:
    """Creates provider orders through an injected RazorpayClient."""

    def __init__(self, client: RazorpayClient, currency: str = "USD"):
        self.client = client
        self.currency = currency

    async def create_order(self, user_id: str, intent: PurchaseIntent) -> ProviderOrder:
        receipt = build_receipt(intent.receipt_prefix, user_id)
        logger.info(
            f"Creating {intent.kind.value} order for user {user_id}",
            extra={"amount": intent.amount, "receipt": receipt}
        )
        order = await self.client.create_order(
            amount=intent.amount,
            currency=self.currency,
            receipt=receipt,
            notes=intent.notes,
        )
        return ProviderOrder(
            id=order["id"],
            amount=int(order.get("amount", intent.amount)),
            currency=order.get("currency", self.currency),
            receipt=receipt,
        )
