"""
app/api/deps.py

Purpose: FastAPI dependencies

- Bearer token authentication and the admin guard
- Service construction per request (overridable in tests)
"""

from typing import Any, Dict, Optional

from fastapi import Depends, Header, Request

from app.core.config import settings
from app.core.exceptions import AuthenticationError, AuthorizationError
from app.core.security import decode_access_token
from app.flow.dispatcher import PaymentWebhookDispatcher, WebhookContext
from app.flow.states import UserRole
from app.services.billing_service import BillingLedger
from app.services.onboarding_service import OnboardingSessionStore
from app.services.order_service import OrderService
from app.services.reconciliation_service import ReconciliationLog
from app.services.twin_service import TwinService
from app.services.user_service import UserService


def get_user_service() -> UserService:
    return UserService()


def get_billing_ledger() -> BillingLedger:
    return BillingLedger()


def get_session_store() -> OnboardingSessionStore:
    return OnboardingSessionStore(ttl_minutes=settings.ONBOARDING_SESSION_TTL_MINUTES)


def get_twin_service() -> TwinService:
    return TwinService()


def get_reconciliation_log() -> ReconciliationLog:
    return ReconciliationLog()


def get_order_service(request: Request) -> OrderService:
    # The provider client is built once in the lifespan handler
    return OrderService(request.app.state.payment_client, currency=settings.PAYMENT_CURRENCY)


def get_webhook_dispatcher(
    billing: BillingLedger = Depends(get_billing_ledger),
    sessions: OnboardingSessionStore = Depends(get_session_store),
    users: UserService = Depends(get_user_service),
    twins: TwinService = Depends(get_twin_service),
    reconciliation: ReconciliationLog = Depends(get_reconciliation_log),
) -> PaymentWebhookDispatcher:
    context = WebhookContext(
        billing=billing,
        sessions=sessions,
        users=users,
        twins=twins,
        reconciliation=reconciliation,
    )
    return PaymentWebhookDispatcher(settings.RAZORPAY_WEBHOOK_SECRET, context)


async def get_current_user(
    authorization: Optional[str] = Header(None),
    users: UserService = Depends(get_user_service),
) -> Dict[str, Any]:
    """
    Resolves the caller from an `Authorization: Bearer <token>` header.

    Raises:
        AuthenticationError: Missing, invalid or expired token, or unknown user
    """
    if not authorization or not authorization.lower().startswith("bearer "):
        raise AuthenticationError()

    claims = decode_access_token(authorization.split(" ", 1)[1].strip())
    if not claims or not claims.get("sub"):
        raise AuthenticationError()

    user = await users.get_user_by_id(claims["sub"])
    if not user:
        raise AuthenticationError()
    return user


async def require_admin(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    if user.get("role") != UserRole.ADMIN.value:
        raise AuthorizationError(f"User role {user.get('role')} is not authorized to access this route")
    return user
