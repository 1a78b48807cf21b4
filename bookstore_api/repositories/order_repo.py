"""
Order repository for database operations.
"""

import structlog
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pymongo import DESCENDING, ReturnDocument
from pymongo.asynchronous.database import AsyncDatabase

from bookstore_api.database import ORDERS, parse_object_id
from bookstore_api.models.order import Order

logger = structlog.get_logger(__name__)


class OrderRepository:
    """Repository for order database operations."""

    def __init__(self, db: AsyncDatabase):
        self.collection = db[ORDERS]

    async def create_order(self, doc: Dict[str, Any]) -> Order:
        """
        Insert an order document.

        Args:
            doc: Order document with ObjectId references and camelCase keys

        Returns:
            Created order
        """
        try:
            result = await self.collection.insert_one(doc)
            doc["_id"] = result.inserted_id

            logger.info(
                "order_created",
                order_id=str(result.inserted_id),
                user_id=str(doc["user"]),
                total_amount=doc["totalAmount"]
            )
            return Order.from_document(doc)

        except Exception as e:
            logger.error("order_create_failed", error=str(e), user_id=str(doc.get("user")))
            raise

    async def get_order(self, order_id: str, user_id: Optional[str] = None) -> Optional[Order]:
        """
        Get an order, optionally restricted to its owner.

        Args:
            order_id: Order ID
            user_id: Owner filter (None for any owner)

        Returns:
            Order or None if missing, not owned or malformed ID
        """
        oid = parse_object_id(order_id)
        if oid is None:
            return None

        query: Dict[str, Any] = {"_id": oid}
        if user_id is not None:
            query["user"] = parse_object_id(user_id)

        try:
            doc = await self.collection.find_one(query)
            return Order.from_document(doc) if doc else None
        except Exception as e:
            logger.error("order_get_failed", error=str(e), order_id=order_id)
            raise

    async def list_orders(self, user_id: Optional[str] = None, limit: int = 100) -> List[Order]:
        """
        List orders newest first.

        Args:
            user_id: Owner filter (None for all orders)
            limit: Maximum number of orders

        Returns:
            Orders
        """
        query: Dict[str, Any] = {}
        if user_id is not None:
            query["user"] = parse_object_id(user_id)

        try:
            cursor = self.collection.find(query).sort("createdAt", DESCENDING).limit(limit)
            return [Order.from_document(doc) for doc in await cursor.to_list()]
        except Exception as e:
            logger.error("orders_list_failed", error=str(e), user_id=user_id)
            raise

    async def update_status(
        self,
        order_id: str,
        status: str,
        note: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None
    ) -> Optional[Order]:
        """
        Set the order status and append a status-history entry.

        Args:
            order_id: Order ID
            status: New status value
            note: History note
            extra: Additional document fields to set

        Returns:
            Updated order or None if not found
        """
        oid = parse_object_id(order_id)
        if oid is None:
            return None

        now = datetime.now(timezone.utc)
        fields = {"status": status, "updatedAt": now, **(extra or {})}

        try:
            doc = await self.collection.find_one_and_update(
                {"_id": oid},
                {
                    "$set": fields,
                    "$push": {"statusHistory": {"status": status, "timestamp": now, "note": note}},
                },
                return_document=ReturnDocument.AFTER,
            )
            if not doc:
                return None

            logger.info("order_status_updated", order_id=order_id, status=status)
            return Order.from_document(doc)

        except Exception as e:
            logger.error("order_status_update_failed", error=str(e), order_id=order_id)
            raise
