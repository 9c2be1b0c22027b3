"""
app/services/twin_service.py

Purpose: Twin registry

- Materializes a twin from a paid onboarding session (once per order)
- Owner CRUD
- Admin activation
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from app.core.logging import get_logger
from app.db.mongo import get_twins_collection
from app.flow.states import AvatarStatus
from app.models.twin import EDITABLE_FIELDS, new_twin_document
from app.services.billing_service import to_object_id

logger = get_logger(__name__)


class TwinService:
    """Service for the twins collection."""

    def __init__(self, collection: Optional[AsyncIOMotorCollection] = None):
        self.collection = collection if collection is not None else get_twins_collection()

    async def create_from_session(
        self,
        session: Dict[str, Any],
        plan_expires_at: datetime,
        payment_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Creates the twin for a paid session.

        A unique index on source_order_id keeps this to one twin per order;
        a repeat returns the existing twin.
        """
        twin = new_twin_document(session, plan_expires_at, payment_id)
        try:
            result = await self.collection.insert_one(twin)
        except DuplicateKeyError:
            logger.warning(
                f"Twin already materialized for order {twin['source_order_id']}"
            )
            return await self.collection.find_one({"source_order_id": twin["source_order_id"]})

        twin["_id"] = result.inserted_id
        logger.info(
            f"✅ Twin created: {result.inserted_id} (order {twin['source_order_id']})",
            extra={"user_id": str(twin["creator_id"])}
        )
        return twin

    async def get_twin(self, twin_id: str) -> Optional[Dict[str, Any]]:
        oid = to_object_id(twin_id)
        if oid is None:
            return None
        return await self.collection.find_one({"_id": oid})

    async def list_for_creator(self, creator_id: Any) -> List[Dict[str, Any]]:
        cursor = self.collection.find({"creator_id": to_object_id(creator_id)}).sort("created_at", -1)
        return await cursor.to_list(length=None)

    async def update_twin(self, twin_id: str, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Applies editable profile fields only."""
        fields = {k: v for k, v in changes.items() if k in EDITABLE_FIELDS and v is not None}
        fields["updated_at"] = datetime.utcnow()
        return await self.collection.find_one_and_update(
            {"_id": to_object_id(twin_id)},
            {"$set": fields},
            return_document=ReturnDocument.AFTER,
        )

    async def delete_twin(self, twin_id: str) -> bool:
        result = await self.collection.delete_one({"_id": to_object_id(twin_id)})
        return result.deleted_count > 0

    async def activate(self, twin_id: str, heygen_avatar_id: str) -> Optional[Dict[str, Any]]:
        """
        Marks the avatar ACTIVE with its external avatar id.

        Only a twin that is not yet ACTIVE matches, so concurrent or repeated
        activations return None for every caller but one.
        """
        now = datetime.utcnow()
        twin = await self.collection.find_one_and_update(
            {
                "_id": to_object_id(twin_id),
                "avatar_status": {"$ne": AvatarStatus.ACTIVE.value},
            },
            {
                "$set": {
                    "avatar_status": AvatarStatus.ACTIVE.value,
                    "heygen_avatar_id": heygen_avatar_id,
                    "activated_at": now,
                    "updated_at": now,
                }
            },
            return_document=ReturnDocument.AFTER,
        )
        if twin:
            logger.info(f"Twin activated: {twin_id}")
        return twin
