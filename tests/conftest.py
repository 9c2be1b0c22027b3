"""Shared fixtures: fake collections, services and seeded orders."""

from datetime import datetime
from typing import Any, Dict

import pytest

from app.flow.dispatcher import PaymentWebhookDispatcher, WebhookContext
from app.flow.states import PlanType, TransactionType
from app.schemas.onboarding import OnboardingAnswers
from app.services.billing_service import BillingLedger
from app.services.onboarding_service import OnboardingSessionStore
from app.services.reconciliation_service import ReconciliationLog
from app.services.twin_service import TwinService
from app.services.user_service import UserService
from tests.fakes.fake_mongo import FakeCollection
from tests.fakes.payloads import WEBHOOK_SECRET


@pytest.fixture
def collections() -> Dict[str, FakeCollection]:
    return {
        "users": FakeCollection(unique=("email", "uid")),
        "twins": FakeCollection(unique=("source_order_id",)),
        "billings": FakeCollection(unique=("provider_order_id",)),
        "sessions": FakeCollection(unique=("provider_order_id",)),
        "anomalies": FakeCollection(),
    }


@pytest.fixture
def users(collections) -> UserService:
    return UserService(collections["users"])


@pytest.fixture
def billing(collections) -> BillingLedger:
    return BillingLedger(collections["billings"])


@pytest.fixture
def sessions(collections) -> OnboardingSessionStore:
    return OnboardingSessionStore(collections["sessions"], ttl_minutes=30)


@pytest.fixture
def twins(collections) -> TwinService:
    return TwinService(collections["twins"])


@pytest.fixture
def reconciliation(collections) -> ReconciliationLog:
    return ReconciliationLog(collections["anomalies"])


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2024, 1, 1, 12, 0, 0)


@pytest.fixture
def webhook_context(billing, sessions, users, twins, reconciliation, fixed_now) -> WebhookContext:
    return WebhookContext(
        billing=billing,
        sessions=sessions,
        users=users,
        twins=twins,
        reconciliation=reconciliation,
        clock=lambda: fixed_now,
    )


@pytest.fixture
def dispatcher(webhook_context) -> PaymentWebhookDispatcher:
    return PaymentWebhookDispatcher(WEBHOOK_SECRET, webhook_context)


@pytest.fixture
async def creator(users) -> Dict[str, Any]:
    return await users.create_user("Ada Creator", "ada@example.com", "hash")


@pytest.fixture
async def credit_order(billing, creator) -> str:
    """A PENDING 75-credit purchase."""
    order_id = "order_credits_001"
    await billing.record_pending(
        user_id=str(creator["_id"]),
        amount=4500,
        kind=TransactionType.PURCHASE,
        order_id=order_id,
        credits=75,
    )
    return order_id


@pytest.fixture
async def onboarding_order(billing, sessions, creator) -> str:
    """A PENDING YEARLY onboarding with its session."""
    order_id = "order_onboard_001"
    user_id = str(creator["_id"])
    await sessions.create_session(
        user_id=user_id,
        answers=OnboardingAnswers.model_validate({"name": "Ada", "favouriteColour": "teal"}),
        plan_type=PlanType.YEARLY,
        asset_paths={"video": "uploads/video/a.mp4"},
        order_id=order_id,
    )
    await billing.record_pending(
        user_id=user_id,
        amount=79200,
        kind=TransactionType.PLAN_UPGRADE,
        order_id=order_id,
        plan_type=PlanType.YEARLY,
    )
    return order_id

