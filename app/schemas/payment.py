"""
app/schemas/payment.py

Purpose: Payment request and webhook payload schemas

- Credit purchase request
- Razorpay webhook envelope and the payment entity inside it
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, Optional


class CreditPurchaseRequest(BaseModel):
    credits: int = Field(..., description="Credits in the package (20, 75 or 200)")
    amount: float = Field(..., description="Package price in whole currency units")


class PaymentEntity(BaseModel):
    """
    `payload.payment.entity` of a Razorpay payment event.
    Only the ids are needed; everything else is kept untouched.
    """
    model_config = ConfigDict(extra="allow")

    id: str
    order_id: str
    amount: Optional[int] = None
    currency: Optional[str] = None
    status: Optional[str] = None


class WebhookEnvelope(BaseModel):
    """
    Razorpay webhook body:

    {
        "event": "payment.captured",
        "payload": {"payment": {"entity": {"id": "pay_..", "order_id": "order_..", ...}}}
    }
    """
    model_config = ConfigDict(extra="allow")

    event: str
    payload: Dict[str, Any] = Field(default_factory=dict)

    def payment_entity(self) -> PaymentEntity:
        """
        Raises:
            pydantic.ValidationError: The payment entity is missing or incomplete
        """
        payment = self.payload.get("payment")
        entity = payment.get("entity") if isinstance(payment, dict) else None
        return PaymentEntity.model_validate(entity)
