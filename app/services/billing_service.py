"""
app/services/billing_service.py

Purpose: Billing ledger

- Records every purchase intent as PENDING
- Atomic PENDING -> COMPLETED / FAILED transitions keyed by provider order id
- History queries by user, status and transaction type
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo import DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError

from app.core.exceptions import ValidationError
from app.core.logging import get_logger, LogContext
from app.db.mongo import get_billings_collection
from app.flow.states import BillingStatus, PlanType, TransactionType, is_valid_transition
from app.models.billing import new_billing_document

logger = get_logger(__name__)


def to_object_id(value: Any) -> Optional[ObjectId]:
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        return None


class BillingLedger:
    """Service for the billing collection. Single source of truth for charges."""

    def __init__(self, collection: Optional[AsyncIOMotorCollection] = None):
        self.collection = collection if collection is not None else get_billings_collection()

    async def record_pending(
        self,
        user_id: str,
        amount: int,
        kind: TransactionType,
        order_id: str,
        credits: Optional[int] = None,
        plan_type: Optional[PlanType] = None,
        currency: str = "USD",
    ) -> str:
        """
        Creates a PENDING billing record for a provider order.

        Raises:
            ValidationError: A record for this order id already exists
        """
        document = new_billing_document(
            user_id=to_object_id(user_id),
            amount=amount,
            transaction_type=kind,
            order_id=order_id,
            credits=credits,
            plan_type=plan_type,
            currency=currency,
        )
        with LogContext(user_id=str(user_id), order_id=order_id):
            try:
                result = await self.collection.insert_one(document)
            except DuplicateKeyError:
                logger.error("Duplicate billing record for order")
                raise ValidationError(
                    "A billing record already exists for this order",
                    details={"order_id": order_id}
                )

            billing_id = str(result.inserted_id)
            logger.info(
                f"Billing record created ({TransactionType(kind).value})",
                extra={"billing_id": billing_id, "amount": amount}
            )
            return billing_id

    async def _transition(
        self,
        order_id: str,
        target: BillingStatus,
        fields: Dict[str, Any],
        return_document: bool,
    ) -> Optional[Dict[str, Any]]:
        # Only PENDING records move; the condition lives in the filter so
        # the check and the write are one atomic step.
        if not is_valid_transition(BillingStatus.PENDING, target):
            raise ValueError(f"Billing cannot move from PENDING to {target}")
        return await self.collection.find_one_and_update(
            {"provider_order_id": order_id, "status": BillingStatus.PENDING.value},
            {"$set": {"status": target.value, "updated_at": datetime.utcnow(), **fields}},
            return_document=return_document,
        )

    async def complete_by_order_id(self, order_id: str, payment_id: str) -> Optional[Dict[str, Any]]:
        """
        Moves the PENDING record for `order_id` to COMPLETED.

        Concurrent or repeated deliveries complete the record exactly once.

        Returns:
            The record as matched (status still PENDING), or None when no
            PENDING record exists. Not an error: webhooks are retried.
        """
        record = await self._transition(
            order_id,
            BillingStatus.COMPLETED,
            {"provider_payment_id": payment_id, "completed_at": datetime.utcnow()},
            return_document=ReturnDocument.BEFORE,
        )
        if record:
            logger.info(f"Billing completed: {order_id}", extra={"billing_id": str(record["_id"])})
        return record

    async def fail_by_order_id(self, order_id: str) -> Optional[Dict[str, Any]]:
        """Moves the PENDING record for `order_id` to FAILED. No-op otherwise."""
        record = await self._transition(
            order_id,
            BillingStatus.FAILED,
            {},
            return_document=ReturnDocument.AFTER,
        )
        if record:
            logger.info(f"Billing failed: {order_id}")
        else:
            logger.debug(f"No pending billing to fail: {order_id}")
        return record

    async def get_by_id(self, billing_id: str) -> Optional[Dict[str, Any]]:
        oid = to_object_id(billing_id)
        if oid is None:
            return None
        return await self.collection.find_one({"_id": oid})

    async def find_by_order_id(self, order_id: str) -> Optional[Dict[str, Any]]:
        return await self.collection.find_one({"provider_order_id": order_id})

    async def list_billings(
        self,
        user_id: Optional[str] = None,
        status: Optional[BillingStatus] = None,
        kind: Optional[TransactionType] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[Dict[str, Any]]:
        """
        Lists billing records, newest first.
        """
        query: Dict[str, Any] = {}
        if user_id is not None:
            query["user_id"] = to_object_id(user_id)
        if status is not None:
            query["status"] = BillingStatus(status).value
        if kind is not None:
            query["transaction_type"] = TransactionType(kind).value

        cursor = (
            self.collection.find(query)
            .sort("created_at", DESCENDING)
            .skip(offset)
            .limit(limit)
        )
        return await cursor.to_list(length=limit)
