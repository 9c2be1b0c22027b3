"""
app/models/onboarding_session.py

Purpose: Onboarding session document model

- Stages questionnaire answers and asset paths until payment clears
- Carries an absolute expiry; the store deletes it once passed
"""

from datetime import datetime
from typing import Any, Dict, Optional

from bson import ObjectId

from app.flow.states import PlanType, SessionStatus
from app.schemas.onboarding import OnboardingAnswers
from utils.time_utils import calculate_session_expiry

ASSET_KINDS = ("video", "audio", "thumbnail")


def new_session_document(
    user_id: ObjectId,
    answers: OnboardingAnswers,
    plan_type: PlanType,
    order_id: str,
    asset_paths: Optional[Dict[str, str]] = None,
    ttl_minutes: int = 30,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    now = now or datetime.utcnow()
    asset_paths = asset_paths or {}
    unknown = set(asset_paths) - set(ASSET_KINDS)
    if unknown:
        raise ValueError(f"Unknown asset kinds: {sorted(unknown)}")

    return {
        "user_id": user_id,
        "answers": answers.raw(),
        "plan_type": PlanType(plan_type).value,
        "source_video_path": asset_paths.get("video"),
        "source_audio_path": asset_paths.get("audio"),
        "source_thumbnail_path": asset_paths.get("thumbnail"),
        "provider_order_id": order_id,
        "provider_payment_id": None,
        "status": SessionStatus.PENDING.value,
        "created_at": now,
        "expires_at": calculate_session_expiry(now, ttl_minutes),
    }
