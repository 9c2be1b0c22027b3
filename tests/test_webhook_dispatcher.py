"""Payment webhook state machine: signature, routing, idempotency, anomalies."""

import asyncio
import json
from datetime import datetime, timedelta
from unittest.mock import AsyncMock

import pytest

from app.core.exceptions import AuthenticityError
from app.core.logging import current_log_context
from app.flow.dispatcher import PaymentWebhookDispatcher, verify_signature
from app.flow.states import (
    AvatarStatus,
    BillingStatus,
    OnboardingStatus,
    PaymentStatus,
    SessionStatus,
    TransactionType,
)
from app.services.reconciliation_service import AnomalyKind
from tests.fakes.payloads import WEBHOOK_SECRET, signed, webhook_body


# ============================================================================
# SIGNATURE
# ============================================================================

def test_verify_signature_accepts_matching_digest():
    body, signature = signed(b'{"event":"payment.captured"}')
    verify_signature(body, signature, WEBHOOK_SECRET)


@pytest.mark.parametrize("signature, secret", [
    (None, WEBHOOK_SECRET),
    ("", WEBHOOK_SECRET),
    ("deadbeef", WEBHOOK_SECRET),
    ("anything", None),
])
def test_verify_signature_rejects(signature, secret):
    with pytest.raises(AuthenticityError):
        verify_signature(b"{}", signature, secret)


def test_signature_covers_raw_bytes():
    body, signature = signed(b'{"event": "payment.captured"}')
    with pytest.raises(AuthenticityError):
        verify_signature(b'{"event":"payment.captured"}', signature, WEBHOOK_SECRET)


@pytest.mark.asyncio
async def test_wrong_secret_has_no_side_effects(webhook_context, collections, credit_order):
    body, signature = signed(webhook_body("payment.captured", credit_order), secret="not-the-secret")
    dispatcher = PaymentWebhookDispatcher(WEBHOOK_SECRET, webhook_context)

    with pytest.raises(AuthenticityError):
        await dispatcher.dispatch(body, signature)

    record = collections["billings"].docs[0]
    assert record["status"] == BillingStatus.PENDING.value
    assert collections["users"].docs[0]["credits"] == 0
    assert collections["anomalies"].docs == []


@pytest.mark.asyncio
async def test_missing_secret_rejects_every_delivery(webhook_context, credit_order):
    body, signature = signed(webhook_body("payment.captured", credit_order))
    dispatcher = PaymentWebhookDispatcher(None, webhook_context)

    with pytest.raises(AuthenticityError):
        await dispatcher.dispatch(body, signature)


# ============================================================================
# ROUTING
# ============================================================================

@pytest.mark.asyncio
async def test_unhandled_event_is_acknowledged(dispatcher, collections, credit_order):
    result = await dispatcher.dispatch(*signed(webhook_body("order.paid", credit_order)))

    assert result.status_code == 200
    assert result.body == {"success": True, "message": "Event ignored"}
    assert collections["billings"].docs[0]["status"] == BillingStatus.PENDING.value


@pytest.mark.asyncio
async def test_verified_garbage_is_acknowledged(dispatcher):
    result = await dispatcher.dispatch(*signed(b"not json"))
    assert result.status_code == 200
    assert result.body["success"] is False


@pytest.mark.asyncio
async def test_payment_without_order_id_is_acknowledged(dispatcher):
    result = await dispatcher.dispatch(*signed(webhook_body("payment.captured", None)))
    assert result.status_code == 200
    assert result.body["success"] is False


@pytest.mark.asyncio
async def test_non_object_payment_is_acknowledged(dispatcher):
    body = json.dumps({"event": "payment.captured", "payload": {"payment": "pay_1"}}).encode("utf-8")

    result = await dispatcher.dispatch(*signed(body))

    assert result.status_code == 200
    assert result.body["success"] is False


# ============================================================================
# CAPTURE: CREDIT PURCHASE
# ============================================================================

@pytest.mark.asyncio
async def test_capture_credits_user_once(dispatcher, collections, credit_order):
    body, signature = signed(webhook_body("payment.captured", credit_order))

    first = await dispatcher.dispatch(body, signature)
    second = await dispatcher.dispatch(body, signature)

    assert first.status_code == 200
    assert first.body == {"success": True}
    assert second.status_code == 200
    assert second.body["code"] == "CORRELATION_MISS"

    record = collections["billings"].docs[0]
    assert record["status"] == BillingStatus.COMPLETED.value
    assert record["provider_payment_id"] == "pay_test_001"
    assert record["completed_at"] is not None
    assert collections["users"].docs[0]["credits"] == 75


@pytest.mark.asyncio
async def test_capture_for_unknown_order_is_correlation_miss(dispatcher, collections):
    result = await dispatcher.dispatch(*signed(webhook_body("payment.captured", "order_unknown")))

    assert result.status_code == 200
    assert result.body == {
        "success": False,
        "error": "Billing record not found",
        "code": "CORRELATION_MISS",
    }
    assert collections["anomalies"].docs == []


@pytest.mark.asyncio
async def test_capture_for_deleted_user_records_anomaly(dispatcher, collections, credit_order):
    collections["users"].docs.clear()

    result = await dispatcher.dispatch(*signed(webhook_body("payment.captured", credit_order)))

    assert result.body == {"success": True}
    assert collections["billings"].docs[0]["status"] == BillingStatus.COMPLETED.value
    [anomaly] = collections["anomalies"].docs
    assert anomaly["kind"] == AnomalyKind.USER_MISSING.value
    assert anomaly["order_id"] == credit_order
    assert anomaly["details"] == {"credits": 75}


# ============================================================================
# CAPTURE: ONBOARDING
# ============================================================================

@pytest.mark.asyncio
async def test_capture_materializes_twin(dispatcher, collections, onboarding_order, creator):
    result = await dispatcher.dispatch(*signed(webhook_body("payment.captured", onboarding_order, "pay_onb_1")))

    assert result.body == {"success": True}

    [twin] = collections["twins"].docs
    assert twin["creator_id"] == creator["_id"]
    assert twin["name"] == "Ada"
    assert twin["occupation"] == "Digital Intelligence"
    assert twin["personality"] == "Analytical and adaptive."
    assert twin["voice_description"] == "Clear and resonant."
    assert twin["brain_data"] == {"name": "Ada", "favouriteColour": "teal"}
    assert twin["avatar_status"] == AvatarStatus.PENDING.value
    assert twin["plan"] == "YEARLY"
    assert twin["plan_expires_at"] == datetime(2025, 1, 1, 12, 0, 0)
    assert twin["source_video_path"] == "uploads/video/a.mp4"
    assert twin["source_order_id"] == onboarding_order
    assert twin["fidelity_score"] == 98.4

    user = collections["users"].docs[0]
    assert user["payment_status"] == PaymentStatus.PAID.value
    assert user["onboarding_status"] == OnboardingStatus.COMPLETED.value
    assert user["razorpay_id"] == "pay_onb_1"

    session = collections["sessions"].docs[0]
    assert session["status"] == SessionStatus.PAID.value
    assert session["provider_payment_id"] == "pay_onb_1"


@pytest.mark.asyncio
async def test_duplicate_onboarding_capture_creates_one_twin(dispatcher, collections, onboarding_order):
    body, signature = signed(webhook_body("payment.captured", onboarding_order))

    await dispatcher.dispatch(body, signature)
    second = await dispatcher.dispatch(body, signature)

    assert second.body["code"] == "CORRELATION_MISS"
    assert len(collections["twins"].docs) == 1
    assert collections["anomalies"].docs == []


@pytest.mark.asyncio
async def test_onboarding_capture_for_deleted_user_records_anomaly(dispatcher, collections, onboarding_order):
    collections["users"].docs.clear()

    result = await dispatcher.dispatch(*signed(webhook_body("payment.captured", onboarding_order, "pay_onb_2")))

    assert result.body == {"success": True}
    assert len(collections["twins"].docs) == 1
    assert collections["sessions"].docs[0]["status"] == SessionStatus.PAID.value

    [anomaly] = collections["anomalies"].docs
    assert anomaly["kind"] == AnomalyKind.USER_MISSING.value
    assert anomaly["order_id"] == onboarding_order
    assert anomaly["details"]["payment_id"] == "pay_onb_2"


@pytest.mark.asyncio
async def test_expired_session_goes_to_anomaly_log(dispatcher, collections, onboarding_order):
    collections["sessions"].docs[0]["expires_at"] = datetime.utcnow() - timedelta(seconds=1)

    result = await dispatcher.dispatch(*signed(webhook_body("payment.captured", onboarding_order)))

    assert result.status_code == 200
    assert result.body == {"success": True}
    assert collections["billings"].docs[0]["status"] == BillingStatus.COMPLETED.value
    assert collections["twins"].docs == []

    [anomaly] = collections["anomalies"].docs
    assert anomaly["kind"] == AnomalyKind.SESSION_MISSING.value
    assert anomaly["status"] == "OPEN"
    assert anomaly["details"]["plan_type"] == "YEARLY"


@pytest.mark.asyncio
async def test_failure_after_completion_keeps_ledger_completed(
    dispatcher, webhook_context, collections, onboarding_order
):
    webhook_context.twins.create_from_session = AsyncMock(side_effect=RuntimeError("disk full"))

    result = await dispatcher.dispatch(*signed(webhook_body("payment.captured", onboarding_order)))

    assert result.status_code == 200
    assert result.body == {"success": True}
    assert collections["billings"].docs[0]["status"] == BillingStatus.COMPLETED.value

    [anomaly] = collections["anomalies"].docs
    assert anomaly["kind"] == AnomalyKind.POST_COMPLETION_FAILURE.value
    assert "disk full" in anomaly["details"]["error"]


@pytest.mark.asyncio
async def test_twin_insert_is_once_per_order(twins, sessions, onboarding_order):
    session = await sessions.find_by_order_id(onboarding_order)
    expires = datetime(2025, 1, 1)

    first = await twins.create_from_session(session, expires, "pay_1")
    second = await twins.create_from_session(session, expires, "pay_1")

    assert first["_id"] == second["_id"]


# ============================================================================
# CAPTURE FAILED
# ============================================================================

@pytest.mark.asyncio
async def test_failed_payment_marks_records_failed(dispatcher, collections, onboarding_order):
    result = await dispatcher.dispatch(*signed(webhook_body("payment.failed", onboarding_order)))

    assert result.status_code == 200
    assert result.body == {"success": True}
    assert collections["billings"].docs[0]["status"] == BillingStatus.FAILED.value
    assert collections["sessions"].docs[0]["status"] == SessionStatus.FAILED.value
    assert collections["twins"].docs == []


@pytest.mark.asyncio
async def test_capture_after_failure_is_correlation_miss(dispatcher, collections, onboarding_order):
    await dispatcher.dispatch(*signed(webhook_body("payment.failed", onboarding_order)))
    result = await dispatcher.dispatch(*signed(webhook_body("payment.captured", onboarding_order)))

    assert result.body["code"] == "CORRELATION_MISS"
    assert collections["billings"].docs[0]["status"] == BillingStatus.FAILED.value
    assert collections["twins"].docs == []


@pytest.mark.asyncio
async def test_failure_after_completion_is_ignored(dispatcher, collections, credit_order):
    await dispatcher.dispatch(*signed(webhook_body("payment.captured", credit_order)))
    result = await dispatcher.dispatch(*signed(webhook_body("payment.failed", credit_order)))

    assert result.status_code == 200
    assert collections["billings"].docs[0]["status"] == BillingStatus.COMPLETED.value
    assert collections["users"].docs[0]["credits"] == 75


def test_webhook_body_helper_shape():
    payload = json.loads(webhook_body("payment.captured", "order_1"))
    assert payload["payload"]["payment"]["entity"]["order_id"] == "order_1"


# ============================================================================
# CONCURRENT DELIVERIES
# ============================================================================

@pytest.mark.asyncio
async def test_overlapping_deliveries_keep_handlers_working(
    dispatcher, billing, collections, creator, credit_order, onboarding_order
):
    for collection in collections.values():
        collection.yield_control = True
    await billing.record_pending(
        user_id=str(creator["_id"]),
        amount=1500,
        kind=TransactionType.PURCHASE,
        order_id="order_credits_002",
        credits=20,
    )

    first, second = await asyncio.gather(
        dispatcher.dispatch(*signed(webhook_body("payment.captured", credit_order, "pay_c1"))),
        dispatcher.dispatch(*signed(webhook_body("payment.captured", "order_credits_002", "pay_c2"))),
    )
    assert first.body == second.body == {"success": True}
    assert current_log_context() == {}

    result = await dispatcher.dispatch(*signed(webhook_body("payment.captured", onboarding_order, "pay_onb_3")))

    assert result.body == {"success": True}
    user = collections["users"].docs[0]
    assert user["credits"] == 95
    assert user["payment_status"] == PaymentStatus.PAID.value
    assert collections["sessions"].docs[0]["status"] == SessionStatus.PAID.value
    assert len(collections["twins"].docs) == 1
    assert collections["anomalies"].docs == []


@pytest.mark.asyncio
async def test_concurrent_duplicate_captures_credit_once(dispatcher, collections, credit_order):
    for collection in collections.values():
        collection.yield_control = True
    body, signature = signed(webhook_body("payment.captured", credit_order))

    results = await asyncio.gather(*(dispatcher.dispatch(body, signature) for _ in range(3)))

    assert sorted(r.body.get("code", "OK") for r in results) == ["CORRELATION_MISS", "CORRELATION_MISS", "OK"]
    assert collections["users"].docs[0]["credits"] == 75
