"""
app/services/user_service.py

Purpose: User account management

- Create users and look them up
- Credits balance (atomic increments)
- Onboarding progress and payment status
- Password reset tokens
"""

from datetime import datetime
from typing import Any, Dict, Optional

from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from app.core.exceptions import ValidationError
from app.core.logging import get_logger, LogContext
from app.db.mongo import get_users_collection
from app.flow.states import OnboardingStatus, PaymentStatus, UserRole
from app.models.user import new_user_document
from app.services.billing_service import to_object_id

logger = get_logger(__name__)


class UserService:
    """Service for the users collection."""

    def __init__(self, collection: Optional[AsyncIOMotorCollection] = None):
        self.collection = collection if collection is not None else get_users_collection()

    async def create_user(
        self,
        name: str,
        email: str,
        password_hash: str,
        role: UserRole = UserRole.CREATOR,
    ) -> Dict[str, Any]:
        """
        Creates a new user.

        Raises:
            ValidationError: Email already registered
        """
        user = new_user_document(name=name, email=email, password_hash=password_hash, role=role)
        try:
            result = await self.collection.insert_one(user)
        except DuplicateKeyError:
            raise ValidationError("User already exists", details={"email": user["email"]})

        user["_id"] = result.inserted_id
        logger.info(f"New user created", extra={"user_id": str(result.inserted_id), "role": user["role"]})
        return user

    async def get_user_by_id(self, user_id: str) -> Optional[Dict[str, Any]]:
        oid = to_object_id(user_id)
        if oid is None:
            return None
        return await self.collection.find_one({"_id": oid})

    async def get_user_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        return await self.collection.find_one({"email": email.lower().strip()})

    async def add_credits(self, user_id: Any, credits: int) -> Optional[int]:
        """
        Atomically adds credits to a user's balance.

        Returns:
            New balance, or None if the user does not exist
        """
        if credits < 0:
            raise ValueError("credits must be non-negative")

        with LogContext(user_id=str(user_id)):
            result = await self.collection.find_one_and_update(
                {"_id": to_object_id(user_id)},
                {
                    "$inc": {"credits": credits},
                    "$set": {"updated_at": datetime.utcnow()}
                },
                return_document=ReturnDocument.AFTER,
            )

            if not result:
                logger.warning("Cannot add credits: user not found")
                return None

            balance = result.get("credits", 0)
            logger.info(f"Added {credits} credits (balance {balance})")
            return balance

    async def set_onboarding_status(self, user_id: Any, status: OnboardingStatus) -> bool:
        result = await self.collection.update_one(
            {"_id": to_object_id(user_id)},
            {
                "$set": {
                    "onboarding_status": OnboardingStatus(status).value,
                    "updated_at": datetime.utcnow()
                }
            }
        )
        return result.modified_count > 0

    async def mark_onboarding_paid(self, user_id: Any, payment_id: str) -> bool:
        """
        Marks a creator as paid and onboarded.

        Returns:
            True if the user was found
        """
        result = await self.collection.update_one(
            {"_id": to_object_id(user_id)},
            {
                "$set": {
                    "payment_status": PaymentStatus.PAID.value,
                    "onboarding_status": OnboardingStatus.COMPLETED.value,
                    "razorpay_id": payment_id,
                    "updated_at": datetime.utcnow()
                }
            }
        )

        success = result.matched_count > 0
        if success:
            logger.info("User onboarding paid", extra={"user_id": str(user_id)})
        else:
            logger.warning("Cannot mark onboarding paid: user not found", extra={"user_id": str(user_id)})
        return success

    async def set_reset_token(self, user_id: Any, token_hash: str, expires_at: datetime) -> None:
        """Stores a password reset token hash, replacing any earlier one."""
        await self.collection.update_one(
            {"_id": to_object_id(user_id)},
            {
                "$set": {
                    "reset_password_token": token_hash,
                    "reset_password_expire": expires_at,
                    "updated_at": datetime.utcnow()
                }
            }
        )

    async def reset_password(
        self,
        token_hash: str,
        password_hash: str,
        now: Optional[datetime] = None,
    ) -> Optional[Dict[str, Any]]:
        """
        Replaces the password of the user holding an unexpired reset token.

        The token is cleared in the same update, so it works once.

        Returns:
            The updated user, or None if the token is unknown or expired
        """
        now = now or datetime.utcnow()
        user = await self.collection.find_one_and_update(
            {
                "reset_password_token": token_hash,
                "reset_password_expire": {"$gt": now},
            },
            {
                "$set": {
                    "password_hash": password_hash,
                    "reset_password_token": None,
                    "reset_password_expire": None,
                    "updated_at": now
                }
            },
            return_document=ReturnDocument.AFTER,
        )
        if user:
            logger.info("Password reset", extra={"user_id": str(user["_id"])})
        return user
