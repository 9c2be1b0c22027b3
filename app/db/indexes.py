"""
app/db/indexes.py

Purpose: Database index management

- Creates unique and performance indexes
- Unique provider order ids keep the ledger and session store one-per-order
- TTL index garbage-collects abandoned onboarding sessions
"""

from pymongo import ASCENDING, DESCENDING

from app.db.mongo import (
    get_users_collection,
    get_twins_collection,
    get_billings_collection,
    get_onboarding_sessions_collection,
    get_anomalies_collection,
)
from app.core.logging import get_logger

logger = get_logger(__name__)


async def create_indexes():
    """
    Creates all necessary database indexes.
    This function is idempotent - safe to run multiple times.
    """
    try:
        users = get_users_collection()
        twins = get_twins_collection()
        billings = get_billings_collection()
        sessions = get_onboarding_sessions_collection()
        anomalies = get_anomalies_collection()

        logger.info("Creating database indexes...")

        # ==============================================
        # USERS COLLECTION INDEXES
        # ==============================================

        await users.create_index("email", unique=True, name="email_unique")
        await users.create_index("uid", unique=True, name="uid_unique")
        await users.create_index("role", name="role_idx")
        logger.debug("Created indexes on users")

        # ==============================================
        # BILLINGS COLLECTION INDEXES
        # ==============================================

        # At most one billing record per provider order
        await billings.create_index(
            "provider_order_id",
            unique=True,
            name="billing_order_unique"
        )
        await billings.create_index(
            [("user_id", ASCENDING), ("created_at", DESCENDING)],
            name="user_billings_idx"
        )
        await billings.create_index("status", name="billing_status_idx")
        await billings.create_index("transaction_type", name="billing_type_idx")
        logger.debug("Created indexes on billings")

        # ==============================================
        # ONBOARDING SESSIONS COLLECTION INDEXES
        # ==============================================

        await sessions.create_index(
            "provider_order_id",
            unique=True,
            name="session_order_unique"
        )
        await sessions.create_index("user_id", name="session_user_idx")

        # Delete when expires_at is reached
        await sessions.create_index(
            "expires_at",
            expireAfterSeconds=0,
            name="session_expiry_ttl_idx"
        )
        logger.debug("Created indexes on onboarding_sessions")

        # ==============================================
        # TWINS COLLECTION INDEXES
        # ==============================================

        await twins.create_index("creator_id", name="twin_creator_idx")
        await twins.create_index(
            "source_order_id",
            unique=True,
            sparse=True,
            name="twin_source_order_unique"
        )
        await twins.create_index("avatar_status", name="twin_avatar_status_idx")
        logger.debug("Created indexes on twins")

        # ==============================================
        # PAYMENT ANOMALIES COLLECTION INDEXES
        # ==============================================

        await anomalies.create_index(
            [("status", ASCENDING), ("created_at", DESCENDING)],
            name="anomaly_status_idx"
        )
        await anomalies.create_index("order_id", name="anomaly_order_idx")
        logger.debug("Created indexes on payment_anomalies")

        logger.info("✅ All database indexes created successfully")

    except Exception as e:
        logger.error(f"Failed to create indexes: {str(e)}", exc_info=True)
        raise


if __name__ == "__main__":
    """
    Run this script directly to create indexes manually.
    """
    import asyncio
    from app.db.mongo import connect_to_mongo, close_mongo_connection

    async def main():
        await connect_to_mongo()
        await create_indexes()
        await close_mongo_connection()

    asyncio.run(main())
