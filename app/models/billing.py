"""
app/models/billing.py

Purpose: Billing ledger document model

- One record per purchase intent, keyed by the provider order id
- Amount in the smallest currency unit
- Status only moves PENDING -> COMPLETED or PENDING -> FAILED
"""

from datetime import datetime
from typing import Any, Dict, Optional

from bson import ObjectId

from app.flow.states import BillingStatus, PlanType, TransactionType


def new_billing_document(
    user_id: ObjectId,
    amount: int,
    transaction_type: TransactionType,
    order_id: str,
    credits: Optional[int] = None,
    plan_type: Optional[PlanType] = None,
    currency: str = "USD",
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    now = now or datetime.utcnow()
    return {
        "user_id": user_id,
        "amount": int(amount),
        "currency": currency,
        "credits": credits,
        "plan_type": PlanType(plan_type).value if plan_type else None,
        "status": BillingStatus.PENDING.value,
        "transaction_type": TransactionType(transaction_type).value,
        "provider_order_id": order_id,
        "provider_payment_id": None,
        "created_at": now,
        "updated_at": now,
        "completed_at": None,
    }


def public_billing(record: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": str(record["_id"]),
        "amount": record.get("amount"),
        "currency": record.get("currency"),
        "credits": record.get("credits"),
        "plan_type": record.get("plan_type"),
        "status": record.get("status"),
        "transaction_type": record.get("transaction_type"),
        "razorpay_order_id": record.get("provider_order_id"),
        "razorpay_payment_id": record.get("provider_payment_id"),
        "created_at": record.get("created_at"),
    }
