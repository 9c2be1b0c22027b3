"""
app/models/user.py

Purpose: User document model

- Role-specific defaults computed before insert
- Credits balance and onboarding progress
"""

import secrets
import string
from datetime import datetime
from typing import Any, Dict, Optional

from app.flow.states import OnboardingStatus, PaymentStatus, UserRole

UID_ALPHABET = string.ascii_uppercase + string.digits


def generate_uid() -> str:
    """Public OWL-XXXXXX identifier."""
    return "OWL-" + "".join(secrets.choice(UID_ALPHABET) for _ in range(6))


def new_user_document(
    name: str,
    email: str,
    password_hash: str,
    role: UserRole = UserRole.CREATOR,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Builds a user document ready for insert.

    Callers skip onboarding entirely; creators start at INITIAL.
    """
    now = now or datetime.utcnow()
    role = UserRole(role)
    onboarding_status = (
        OnboardingStatus.COMPLETED if role == UserRole.CALLER else OnboardingStatus.INITIAL
    )
    return {
        "name": name,
        "email": email.lower().strip(),
        "password_hash": password_hash,
        "role": role.value,
        "uid": generate_uid(),
        "credits": 0,
        "onboarding_status": onboarding_status.value,
        "payment_status": PaymentStatus.UNPAID.value,
        "razorpay_id": None,
        "reset_password_token": None,
        "reset_password_expire": None,
        "created_at": now,
        "updated_at": now,
    }


def public_user(user: Dict[str, Any]) -> Dict[str, Any]:
    """User fields safe to return to clients."""
    return {
        "id": str(user["_id"]),
        "uid": user.get("uid"),
        "name": user.get("name"),
        "email": user.get("email"),
        "role": user.get("role"),
        "credits": user.get("credits", 0),
        "onboarding_status": user.get("onboarding_status"),
        "payment_status": user.get("payment_status"),
    }
