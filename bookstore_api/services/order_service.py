"""
Order placement and cancellation.

Placing an order records the sale on each book (``purchasedAt``,
``purchasedBy``, ``purchaseLocation``), which is what the dashboard
analytics read.
"""

from datetime import datetime, timezone
from typing import List, Optional

import structlog

from bookstore_api.database import parse_object_id
from bookstore_api.models.auth import CurrentUser
from bookstore_api.models.book import BookStatus
from bookstore_api.models.order import (
    Order, OrderStatus, OrderView, PaymentStatus, PlaceOrderRequest
)
from bookstore_api.repositories.book_repo import BookRepository
from bookstore_api.repositories.order_repo import OrderRepository
from bookstore_api.services.analytics import derived_order_status

logger = structlog.get_logger(__name__)


class OrderNotFoundError(LookupError):
    """An order or one of its books does not exist."""


class OrderRejectedError(ValueError):
    """The order cannot be placed or changed in its current state."""


def with_derived_status(order: Order, now: datetime) -> OrderView:
    return OrderView(**order.model_dump(), derived_status=derived_order_status(order, now))


class OrderService:
    """Order workflow over the orders and books collections."""

    def __init__(self, order_repo: OrderRepository, book_repo: BookRepository):
        self.order_repo = order_repo
        self.book_repo = book_repo

    async def place_order(
        self,
        user: CurrentUser,
        request: PlaceOrderRequest,
        now: Optional[datetime] = None
    ) -> OrderView:
        """
        Place an order for available books.

        Args:
            user: Buyer
            request: Books, shipping address and payment method
            now: Purchase time (defaults to the current UTC time)

        Returns:
            Created order

        Raises:
            OrderNotFoundError: If a referenced book does not exist
            OrderRejectedError: If a book is listed twice or already sold
        """
        now = now or datetime.now(timezone.utc)
        book_ids = [line.book_id for line in request.books]

        if len(set(book_ids)) != len(book_ids):
            raise OrderRejectedError("Each book may appear only once in an order")

        books = {book.id: book for book in await self.book_repo.get_books(book_ids)}
        missing = [book_id for book_id in book_ids if book_id not in books]
        if missing:
            logger.warning("order_books_not_found", user_id=user.id, book_ids=missing)
            raise OrderNotFoundError(f"Book not found: {missing[0]}")

        for book in books.values():
            if book.status != BookStatus.AVAILABLE or book.purchased_at is not None:
                raise OrderRejectedError(f"Book '{book.title}' is not available")

        items = []
        total = 0.0
        for line in request.books:
            price = books[line.book_id].price
            items.append({"book": parse_object_id(line.book_id), "quantity": line.quantity, "price": price})
            total += price * line.quantity

        marked = await self.book_repo.mark_purchased(book_ids, user.id, now, request.purchase_location())
        if marked != len(book_ids):
            await self.book_repo.release_purchase(book_ids, user.id, now)
            logger.warning("order_lost_race", user_id=user.id, requested=len(book_ids), marked=marked)
            raise OrderRejectedError("One or more books were sold while the order was being placed")

        try:
            order = await self.order_repo.create_order({
                "user": parse_object_id(user.id),
                "books": items,
                "totalAmount": round(total, 2),
                "shippingAddress": request.shipping_address.to_document(),
                "paymentMethod": request.payment_method.value,
                "paymentDetails": {"status": PaymentStatus.PENDING.value},
                "status": OrderStatus.PENDING.value,
                "statusHistory": [{"status": OrderStatus.PENDING.value, "timestamp": now, "note": "Order placed"}],
                "note": request.note,
                "createdAt": now,
                "updatedAt": now,
            })
        except Exception as e:
            # Books marked above must not stay sold without an order.
            logger.error("order_insert_failed", user_id=user.id, error=str(e))
            await self.book_repo.release_purchase(book_ids, user.id, now)
            raise

        return with_derived_status(order, now)

    async def list_orders(self, user: CurrentUser, now: Optional[datetime] = None) -> List[OrderView]:
        """Caller's orders newest first; admins get every order."""
        now = now or datetime.now(timezone.utc)
        owner = None if user.is_admin() else user.id
        orders = await self.order_repo.list_orders(owner)
        return [with_derived_status(order, now) for order in orders]

    async def get_order(
        self,
        user: CurrentUser,
        order_id: str,
        now: Optional[datetime] = None
    ) -> Optional[OrderView]:
        now = now or datetime.now(timezone.utc)
        owner = None if user.is_admin() else user.id
        order = await self.order_repo.get_order(order_id, owner)
        return with_derived_status(order, now) if order else None

    async def cancel_order(
        self,
        user: CurrentUser,
        order_id: str,
        reason: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> OrderView:
        """
        Cancel an order that has not been delivered.

        Args:
            user: Caller (owner or admin)
            order_id: Order ID
            reason: Cancellation reason
            now: Cancellation time

        Returns:
            Cancelled order

        Raises:
            OrderNotFoundError: If the order does not exist for this caller
            OrderRejectedError: If it is already delivered or cancelled
        """
        now = now or datetime.now(timezone.utc)
        current = await self.get_order(user, order_id, now)
        if current is None:
            raise OrderNotFoundError("Order not found")

        if current.derived_status in (OrderStatus.DELIVERED, OrderStatus.CANCELLED):
            raise OrderRejectedError(f"Order is already {current.derived_status.value}")

        order = await self.order_repo.update_status(
            order_id,
            OrderStatus.CANCELLED.value,
            note=reason or "Cancelled by customer",
            extra={"cancelledAt": now, "cancelReason": reason},
        )
        if order is None:
            raise OrderNotFoundError("Order not found")

        await self.book_repo.set_status([item.book for item in order.books], BookStatus.CANCELED)

        logger.info("order_cancelled", order_id=order_id, user_id=user.id)
        return with_derived_status(order, now)
