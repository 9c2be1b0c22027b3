"""Billing ledger and onboarding session store."""

from datetime import datetime, timedelta

import pytest

from app.core.exceptions import ValidationError
from app.flow.states import BillingStatus, PlanType, SessionStatus, TransactionType
from app.schemas.onboarding import OnboardingAnswers


# ============================================================================
# BILLING LEDGER
# ============================================================================

@pytest.mark.asyncio
async def test_one_record_per_order(billing, creator, credit_order, collections):
    with pytest.raises(ValidationError):
        await billing.record_pending(
            user_id=str(creator["_id"]),
            amount=1500,
            kind=TransactionType.PURCHASE,
            order_id=credit_order,
            credits=20,
        )
    assert len(collections["billings"].docs) == 1


@pytest.mark.asyncio
async def test_pending_record_shape(billing, creator, credit_order):
    record = await billing.find_by_order_id(credit_order)

    assert record["user_id"] == creator["_id"]
    assert record["amount"] == 4500
    assert record["credits"] == 75
    assert record["status"] == BillingStatus.PENDING.value
    assert record["transaction_type"] == TransactionType.PURCHASE.value
    assert record["provider_payment_id"] is None


@pytest.mark.asyncio
async def test_complete_happens_once(billing, credit_order):
    first = await billing.complete_by_order_id(credit_order, "pay_1")
    second = await billing.complete_by_order_id(credit_order, "pay_2")

    assert first["status"] == BillingStatus.PENDING.value
    assert second is None

    stored = await billing.find_by_order_id(credit_order)
    assert stored["status"] == BillingStatus.COMPLETED.value
    assert stored["provider_payment_id"] == "pay_1"


@pytest.mark.asyncio
async def test_fail_only_touches_pending(billing, credit_order):
    await billing.complete_by_order_id(credit_order, "pay_1")

    assert await billing.fail_by_order_id(credit_order) is None
    stored = await billing.find_by_order_id(credit_order)
    assert stored["status"] == BillingStatus.COMPLETED.value


@pytest.mark.asyncio
async def test_list_billings_filters(billing, creator, credit_order, onboarding_order):
    user_id = str(creator["_id"])
    await billing.complete_by_order_id(credit_order, "pay_1")

    everything = await billing.list_billings(user_id=user_id)
    purchases = await billing.list_billings(user_id=user_id, kind=TransactionType.PURCHASE)
    pending = await billing.list_billings(user_id=user_id, status=BillingStatus.PENDING)

    assert len(everything) == 2
    assert [r["provider_order_id"] for r in purchases] == [credit_order]
    assert [r["provider_order_id"] for r in pending] == [onboarding_order]


@pytest.mark.asyncio
async def test_get_by_id_tolerates_bad_ids(billing):
    assert await billing.get_by_id("not-an-object-id") is None


# ============================================================================
# ONBOARDING SESSIONS
# ============================================================================

@pytest.mark.asyncio
async def test_session_expires_after_ttl(sessions, onboarding_order):
    session = await sessions.find_by_order_id(onboarding_order)

    assert session["status"] == SessionStatus.PENDING.value
    assert session["expires_at"] - session["created_at"] == timedelta(minutes=30)
    assert session["answers"] == {"name": "Ada", "favouriteColour": "teal"}


@pytest.mark.asyncio
async def test_expired_session_is_unreachable(sessions, collections, onboarding_order):
    collections["sessions"].docs[0]["expires_at"] = datetime.utcnow() - timedelta(minutes=1)

    assert await sessions.find_by_order_id(onboarding_order) is None
    assert await sessions.mark_paid(onboarding_order, "pay_1") is None


@pytest.mark.asyncio
async def test_one_session_per_order(sessions, creator, onboarding_order):
    with pytest.raises(ValidationError):
        await sessions.create_session(
            user_id=str(creator["_id"]),
            answers=OnboardingAnswers(),
            plan_type=PlanType.MONTHLY,
            asset_paths=None,
            order_id=onboarding_order,
        )


@pytest.mark.asyncio
async def test_session_paid_once(sessions, onboarding_order):
    paid = await sessions.mark_paid(onboarding_order, "pay_1")

    assert paid["status"] == SessionStatus.PAID.value
    assert await sessions.mark_paid(onboarding_order, "pay_2") is None
    assert await sessions.mark_failed(onboarding_order) is None
    assert await sessions.find_by_order_id(onboarding_order, status=SessionStatus.PAID) is not None


@pytest.mark.asyncio
async def test_session_lookup_by_id(sessions, onboarding_order):
    session = await sessions.find_by_order_id(onboarding_order)
    assert (await sessions.get_by_id(str(session["_id"])))["provider_order_id"] == onboarding_order
    assert await sessions.get_by_id("garbage") is None
