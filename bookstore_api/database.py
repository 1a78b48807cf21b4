"""
MongoDB connection management.

Owns the process-wide AsyncMongoClient: opened during application startup,
closed at shutdown, and handed to repositories through ``get_database``.
Also declares the indexes the repositories rely on.
"""

from typing import Optional

import structlog
from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ASCENDING, DESCENDING, AsyncMongoClient
from pymongo.asynchronous.database import AsyncDatabase

from bookstore_api.config import get_settings

logger = structlog.get_logger(__name__)

USERS = "users"
BOOKS = "books"
ORDERS = "orders"
AUDIT_LOGS = "audit_logs"

_client: Optional[AsyncMongoClient] = None


def parse_object_id(value) -> Optional[ObjectId]:
    """Convert a hex string to an ObjectId, or None when it is malformed."""
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


async def init_mongo_client() -> AsyncMongoClient:
    """
    Initialize the MongoDB client.

    Should be called during application startup.

    Returns:
        Connected AsyncMongoClient
    """
    global _client

    if _client is not None:
        return _client

    settings = get_settings()

    try:
        _client = AsyncMongoClient(
            settings.mongodb_url,
            tz_aware=True,
            appname=settings.mongodb_app_name,
            serverSelectionTimeoutMS=settings.mongodb_server_selection_timeout_ms,
        )
        await _client.admin.command("ping")

        logger.info(
            "mongo_client_initialized",
            database=settings.mongodb_database,
            host=settings.mongodb_url.split("@")[-1]
        )

        return _client

    except Exception as e:
        logger.error("mongo_client_init_failed", error=str(e))
        if _client is not None:
            await _client.close()
            _client = None
        raise


async def close_mongo_client():
    """
    Close the MongoDB client.

    Should be called during application shutdown.
    """
    global _client

    if _client is not None:
        await _client.close()
        logger.info("mongo_client_closed")
        _client = None


def get_database() -> AsyncDatabase:
    """
    Get the application database.

    Returns:
        AsyncDatabase handle

    Raises:
        RuntimeError: If the client is not initialized
    """
    if _client is None:
        logger.error("mongo_client_not_initialized")
        raise RuntimeError(
            "MongoDB client not initialized. Call init_mongo_client() during startup."
        )
    return _client[get_settings().mongodb_database]


async def ping() -> bool:
    """Return True when the server answers a ping."""
    if _client is None:
        return False
    try:
        await _client.admin.command("ping")
        return True
    except Exception as e:
        logger.warning("mongo_ping_failed", error=str(e))
        return False


async def ensure_indexes(db: AsyncDatabase) -> None:
    """
    Create the indexes used for uniqueness and for the dashboard queries.

    Safe to run on every startup; existing indexes are left as they are.

    Args:
        db: Target database
    """
    await db[USERS].create_index([("email", ASCENDING)], unique=True, name="uniq_users_email")
    await db[USERS].create_index([("role", ASCENDING), ("createdAt", ASCENDING)], name="idx_users_role_created")

    await db[BOOKS].create_index([("isbn", ASCENDING)], unique=True, name="uniq_books_isbn")
    await db[BOOKS].create_index([("vendor", ASCENDING)], name="idx_books_vendor")
    await db[BOOKS].create_index([("purchasedAt", DESCENDING)], name="idx_books_purchased_at")

    await db[ORDERS].create_index([("user", ASCENDING), ("createdAt", DESCENDING)], name="idx_orders_user")

    await db[AUDIT_LOGS].create_index([("timestamp", DESCENDING)], name="idx_audit_logs_timestamp")

    logger.info("mongo_indexes_ensured", database=db.name)
