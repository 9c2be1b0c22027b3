"""
app/flow/states.py

Purpose: Defines every status in the payment pipeline

- Enums for billing, onboarding session, twin avatar and user progress
- Single source of truth for allowed status transitions
- Plan metadata (price, term)
"""

from enum import Enum
from typing import Dict, List
from dataclasses import dataclass


class BillingStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class TransactionType(str, Enum):
    PURCHASE = "PURCHASE"          # credit top-up
    PLAN_UPGRADE = "PLAN_UPGRADE"  # onboarding payment
    USAGE = "USAGE"
    REFUND = "REFUND"


class SessionStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    FAILED = "FAILED"
    EXPIRED = "EXPIRED"


class PlanType(str, Enum):
    MONTHLY = "MONTHLY"
    YEARLY = "YEARLY"
    AFTERLIFE = "AFTERLIFE"


class AvatarStatus(str, Enum):
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    REJECTED = "REJECTED"


class UserRole(str, Enum):
    CREATOR = "CREATOR"
    CALLER = "CALLER"
    ADMIN = "ADMIN"


class OnboardingStatus(str, Enum):
    INITIAL = "INITIAL"
    FORM_FILLED = "FORM_FILLED"
    PAYMENT_PENDING = "PAYMENT_PENDING"
    COMPLETED = "COMPLETED"


class PaymentStatus(str, Enum):
    UNPAID = "UNPAID"
    PAID = "PAID"


class WebhookEvent(str, Enum):
    """Provider events that drive a transition. Everything else is ignored."""
    PAYMENT_CAPTURED = "payment.captured"
    PAYMENT_FAILED = "payment.failed"


@dataclass
class PlanMetadata:
    """
    Pricing and term for an onboarding plan.
    Amounts are in the smallest currency unit.
    """
    name: PlanType
    display_name: str
    amount: int
    term_days: int = 0
    term_years: int = 0
    description: str = ""


PLAN_METADATA: Dict[PlanType, PlanMetadata] = {
    PlanType.MONTHLY: PlanMetadata(
        name=PlanType.MONTHLY,
        display_name="Monthly",
        amount=6900,
        term_days=30,
        description="Twin hosted for 30 days"
    ),
    PlanType.YEARLY: PlanMetadata(
        name=PlanType.YEARLY,
        display_name="Yearly",
        amount=79200,
        term_years=1,
        description="Twin hosted for one year"
    ),
    PlanType.AFTERLIFE: PlanMetadata(
        name=PlanType.AFTERLIFE,
        display_name="Afterlife",
        amount=6900,
        term_years=100,
        description="Twin hosted for a century"
    ),
}


# Terminal statuses have no outgoing transitions
BILLING_TRANSITIONS: Dict[BillingStatus, List[BillingStatus]] = {
    BillingStatus.PENDING: [
        BillingStatus.COMPLETED,
        BillingStatus.FAILED,
    ],
    BillingStatus.COMPLETED: [],
    BillingStatus.FAILED: [],
}

SESSION_TRANSITIONS: Dict[SessionStatus, List[SessionStatus]] = {
    SessionStatus.PENDING: [
        SessionStatus.PAID,
        SessionStatus.FAILED,
        SessionStatus.EXPIRED,  # TTL sweep deletes the document
    ],
    SessionStatus.PAID: [],
    SessionStatus.FAILED: [],
    SessionStatus.EXPIRED: [],
}


def is_valid_transition(from_state: Enum, to_state: Enum) -> bool:
    """
    Checks if a billing or session status transition is valid.

    Args:
        from_state: Current status
        to_state: Target status

    Returns:
        True if transition is allowed, False otherwise
    """
    if isinstance(from_state, BillingStatus):
        allowed_transitions = BILLING_TRANSITIONS.get(from_state, [])
    elif isinstance(from_state, SessionStatus):
        allowed_transitions = SESSION_TRANSITIONS.get(from_state, [])
    else:
        return False
    return to_state in allowed_transitions


def get_plan_metadata(plan_type: PlanType) -> PlanMetadata:
    """
    Retrieves metadata for a given plan.

    Raises:
        ValueError: If the plan is unknown
    """
    return PLAN_METADATA[PlanType(plan_type)]
