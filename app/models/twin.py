"""
app/models/twin.py

Purpose: Twin document model

- Materialized from a paid onboarding session
- Profile fields with defaults, full answers kept as brain data
- Plan and computed expiry
"""

from datetime import datetime
from typing import Any, Dict, Optional

from app.flow.states import AvatarStatus, PlanType
from app.schemas.onboarding import OnboardingAnswers
from utils.constants import DEFAULT_FIDELITY_SCORE

# Fields a creator may change through the API
EDITABLE_FIELDS = ("name", "occupation", "personality", "voice_description")


def new_twin_document(
    session: Dict[str, Any],
    plan_expires_at: datetime,
    payment_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Builds the twin for a paid onboarding session.

    Never fails on missing answers: every profile field has a default.
    """
    now = now or datetime.utcnow()
    answers = OnboardingAnswers.model_validate(session.get("answers") or {})
    profile = answers.profile()

    return {
        "creator_id": session["user_id"],
        **profile,
        "avatar_status": AvatarStatus.PENDING.value,
        "heygen_avatar_id": None,
        "plan": PlanType(session["plan_type"]).value,
        "plan_expires_at": plan_expires_at,
        "source_video_path": session.get("source_video_path"),
        "source_audio_path": session.get("source_audio_path"),
        "source_thumbnail_path": session.get("source_thumbnail_path"),
        "source_order_id": session.get("provider_order_id"),
        "source_payment_id": payment_id,
        "fidelity_score": DEFAULT_FIDELITY_SCORE,
        "brain_data": answers.raw(),
        "activated_at": None,
        "created_at": now,
        "updated_at": now,
    }


def public_twin(twin: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": str(twin["_id"]),
        "creator_id": str(twin["creator_id"]),
        "name": twin.get("name"),
        "occupation": twin.get("occupation"),
        "personality": twin.get("personality"),
        "voice_description": twin.get("voice_description"),
        "avatar_status": twin.get("avatar_status"),
        "heygen_avatar_id": twin.get("heygen_avatar_id"),
        "plan": twin.get("plan"),
        "plan_expires_at": twin.get("plan_expires_at"),
        "fidelity_score": twin.get("fidelity_score"),
        "activated_at": twin.get("activated_at"),
        "created_at": twin.get("created_at"),
    }
