"""Razorpay-shaped webhook bodies signed with a test secret."""

import json
from typing import Any, Dict, Optional, Tuple

from app.flow.dispatcher import compute_signature

WEBHOOK_SECRET = "whsec_test_secret"


def webhook_body(event: str, order_id: Optional[str], payment_id: str = "pay_test_001") -> bytes:
    entity: Dict[str, Any] = {"id": payment_id, "amount": 4500, "currency": "USD"}
    if order_id is not None:
        entity["order_id"] = order_id
    payload = {
        "entity": "event",
        "event": event,
        "payload": {"payment": {"entity": entity}},
    }
    return json.dumps(payload).encode("utf-8")


def signed(body: bytes, secret: str = WEBHOOK_SECRET) -> Tuple[bytes, str]:
    return body, compute_signature(body, secret)
