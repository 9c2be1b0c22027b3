"""
Sends a signed Razorpay-style payment webhook to a running server.

Useful against a local instance after initiating an onboarding or a credit
purchase, to simulate the provider:
    python scripts/send_webhook.py order_N1a2b3c4 --event payment.captured
"""

import argparse
import asyncio
import json
import os
import sys
from pathlib import Path

import httpx
from dotenv import load_dotenv

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

load_dotenv()

from app.flow.dispatcher import compute_signature


async def send_webhook(url: str, secret: str, event: str, order_id: str, payment_id: str):
    body = json.dumps({
        "entity": "event",
        "event": event,
        "payload": {
            "payment": {
                "entity": {"id": payment_id, "order_id": order_id, "status": event.split(".")[-1]}
            }
        },
    }).encode("utf-8")

    print(f"🧪 Sending {event} for {order_id} to {url}")

    async with httpx.AsyncClient() as client:
        response = await client.post(
            url,
            content=body,
            headers={
                "Content-Type": "application/json",
                "X-Razorpay-Signature": compute_signature(body, secret),
            },
            timeout=10.0
        )

    print(f"✅ Status: {response.status_code}")
    print(f"📥 Response: {response.text[:200]}")


def main():
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("order_id")
    parser.add_argument("--event", default="payment.captured")
    parser.add_argument("--payment-id", default="pay_local_test")
    parser.add_argument("--url", default="http://localhost:8000/api/payment/webhook")
    args = parser.parse_args()

    secret = os.getenv("RAZORPAY_WEBHOOK_SECRET")
    if not secret:
        raise SystemExit("❌ RAZORPAY_WEBHOOK_SECRET must be set in .env file")

    asyncio.run(send_webhook(args.url, secret, args.event, args.order_id, args.payment_id))


if __name__ == "__main__":
    main()
