"""
app/services/onboarding_service.py

Purpose: Onboarding session store

- Stages answers and asset paths until the payment webhook arrives
- Exact lookups by the unique provider order id
- Expired sessions are unreachable and removed by the TTL index
"""

from datetime import datetime
from typing import Any, Dict, Optional

from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from app.core.exceptions import ValidationError
from app.core.logging import get_logger, LogContext
from app.db.mongo import get_onboarding_sessions_collection
from app.flow.states import PlanType, SessionStatus
from app.models.onboarding_session import new_session_document
from app.schemas.onboarding import OnboardingAnswers
from app.services.billing_service import to_object_id

logger = get_logger(__name__)


class OnboardingSessionStore:
    """Service for the onboarding_sessions collection."""

    def __init__(self, collection: Optional[AsyncIOMotorCollection] = None, ttl_minutes: int = 30):
        self.collection = collection if collection is not None else get_onboarding_sessions_collection()
        self.ttl_minutes = ttl_minutes

    async def create_session(
        self,
        user_id: str,
        answers: OnboardingAnswers,
        plan_type: PlanType,
        asset_paths: Optional[Dict[str, str]],
        order_id: str,
    ) -> str:
        """
        Stores a PENDING session that expires after the configured TTL.

        Returns:
            Session id
        """
        document = new_session_document(
            user_id=to_object_id(user_id),
            answers=answers,
            plan_type=plan_type,
            order_id=order_id,
            asset_paths=asset_paths,
            ttl_minutes=self.ttl_minutes,
        )
        with LogContext(user_id=str(user_id), order_id=order_id):
            try:
                result = await self.collection.insert_one(document)
            except DuplicateKeyError:
                logger.error("Duplicate onboarding session for order")
                raise ValidationError(
                    "An onboarding session already exists for this order",
                    details={"order_id": order_id}
                )

            session_id = str(result.inserted_id)
            logger.info(
                "Onboarding session created",
                extra={"session_id": session_id, "expires_at": document["expires_at"].isoformat()}
            )
            return session_id

    def _live_filter(self, order_id: str, status: SessionStatus) -> Dict[str, Any]:
        # The TTL monitor sweeps only periodically; expired documents must
        # already be invisible before it runs.
        return {
            "provider_order_id": order_id,
            "status": SessionStatus(status).value,
            "expires_at": {"$gt": datetime.utcnow()},
        }

    async def find_by_order_id(
        self,
        order_id: str,
        status: SessionStatus = SessionStatus.PENDING,
    ) -> Optional[Dict[str, Any]]:
        return await self.collection.find_one(self._live_filter(order_id, status))

    async def get_by_id(self, session_id: str) -> Optional[Dict[str, Any]]:
        oid = to_object_id(session_id)
        if oid is None:
            return None
        return await self.collection.find_one({"_id": oid})

    async def mark_paid(self, order_id: str, payment_id: str) -> Optional[Dict[str, Any]]:
        """PENDING -> PAID. Returns the updated session or None."""
        session = await self.collection.find_one_and_update(
            self._live_filter(order_id, SessionStatus.PENDING),
            {
                "$set": {
                    "status": SessionStatus.PAID.value,
                    "provider_payment_id": payment_id,
                    "paid_at": datetime.utcnow(),
                }
            },
            return_document=ReturnDocument.AFTER,
        )
        if session:
            logger.info(f"Onboarding session paid: {order_id}")
        return session

    async def mark_failed(self, order_id: str) -> Optional[Dict[str, Any]]:
        """PENDING -> FAILED. No-op when the session is gone or already final."""
        session = await self.collection.find_one_and_update(
            {"provider_order_id": order_id, "status": SessionStatus.PENDING.value},
            {"$set": {"status": SessionStatus.FAILED.value, "failed_at": datetime.utcnow()}},
            return_document=ReturnDocument.AFTER,
        )
        if session:
            logger.info(f"Onboarding session failed: {order_id}")
        return session
