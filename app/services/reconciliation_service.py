"""
app/services/reconciliation_service.py

Purpose: Payment anomaly log

- Persists divergences between collected money and materialized resources
- Operators list and resolve them by hand
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo import DESCENDING, ReturnDocument

from app.core.logging import get_logger
from app.db.mongo import get_anomalies_collection
from app.services.billing_service import to_object_id

logger = get_logger(__name__)


class AnomalyKind(str, Enum):
    SESSION_MISSING = "SESSION_MISSING"                  # paid, but no onboarding session to materialize
    POST_COMPLETION_FAILURE = "POST_COMPLETION_FAILURE"  # paid, but a later step raised
    USER_MISSING = "USER_MISSING"                        # paid, but the buyer no longer exists


class AnomalyStatus(str, Enum):
    OPEN = "OPEN"
    RESOLVED = "RESOLVED"


class ReconciliationLog:
    """Service for the payment_anomalies collection."""

    def __init__(self, collection: Optional[AsyncIOMotorCollection] = None):
        self.collection = collection if collection is not None else get_anomalies_collection()

    async def record_anomaly(
        self,
        kind: AnomalyKind,
        order_id: str,
        user_id: Any = None,
        billing_id: Any = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> str:
        anomaly = {
            "kind": AnomalyKind(kind).value,
            "status": AnomalyStatus.OPEN.value,
            "order_id": order_id,
            "user_id": str(user_id) if user_id is not None else None,
            "billing_id": str(billing_id) if billing_id is not None else None,
            "details": details or {},
            "created_at": datetime.utcnow(),
            "resolved_at": None,
            "resolution_note": None,
        }
        result = await self.collection.insert_one(anomaly)
        logger.error(
            f"⚠️ Payment anomaly {anomaly['kind']}: manual reconciliation required for order {order_id}",
            extra={
                "user_id": anomaly["user_id"],
                "billing_id": anomaly["billing_id"],
                "anomaly": anomaly["kind"],
            }
        )
        return str(result.inserted_id)

    async def list_anomalies(
        self,
        status: Optional[AnomalyStatus] = AnomalyStatus.OPEN,
        limit: int = 100,
    ) -> List[Dict[str, Any]]:
        query = {"status": AnomalyStatus(status).value} if status else {}
        cursor = self.collection.find(query).sort("created_at", DESCENDING).limit(limit)
        return await cursor.to_list(length=limit)

    async def resolve_anomaly(self, anomaly_id: str, note: str) -> Optional[Dict[str, Any]]:
        return await self.collection.find_one_and_update(
            {"_id": to_object_id(anomaly_id), "status": AnomalyStatus.OPEN.value},
            {
                "$set": {
                    "status": AnomalyStatus.RESOLVED.value,
                    "resolved_at": datetime.utcnow(),
                    "resolution_note": note,
                }
            },
            return_document=ReturnDocument.AFTER,
        )
