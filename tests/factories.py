"""Model factories shared by the test suites."""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from bson import ObjectId

from bookstore_api.models.auth import Address, UserDB
from bookstore_api.models.book import Book, BookStatus, PurchaseLocation
from bookstore_api.models.order import Order, OrderItem, ShippingAddress

ADMIN_ID = "665f1c2e8b3f4a0012ab0001"
VENDOR_ID = "665f1c2e8b3f4a0012ab0002"
CUSTOMER_ID = "665f1c2e8b3f4a0012ab0003"

NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)


def new_id() -> str:
    return str(ObjectId())


def make_book(**overrides: Any) -> Book:
    fields: Dict[str, Any] = {
        "id": new_id(),
        "title": "The Pragmatic Programmer",
        "author": "Andrew Hunt",
        "isbn": "9780135957059",
        "price": 40.0,
        "description": "From journeyman to master",
        "category": "Programming",
        "vendor": VENDOR_ID,
        "status": BookStatus.AVAILABLE,
        "created_at": NOW,
        "updated_at": NOW,
    }
    fields.update(overrides)
    return Book(**fields)


def make_sold_book(
    purchased_at: datetime,
    price: float = 40.0,
    country: Optional[str] = None,
    lat_lng: Optional[list] = None,
    **overrides: Any
) -> Book:
    location = PurchaseLocation(country=country, lat_lng=lat_lng) if country else None
    return make_book(
        price=price,
        purchased_at=purchased_at,
        purchased_by=CUSTOMER_ID,
        purchase_location=location,
        status=overrides.pop("status", BookStatus.PENDING),
        isbn=overrides.pop("isbn", new_id()),
        **overrides
    )


def make_user_db(**overrides: Any) -> UserDB:
    fields: Dict[str, Any] = {
        "id": CUSTOMER_ID,
        "first_name": "John",
        "last_name": "Doe",
        "email": "user@example.com",
        "password_hash": "",
        "role": "user",
        "address": Address(street="789 Park Ave", city="Mumbai", state="Maharashtra", zip_code="400001", country="India"),
        "avatar": "/images/user/user-01.jpg",
        "created_at": NOW,
    }
    fields.update(overrides)
    return UserDB(**fields)


def make_order(**overrides: Any) -> Order:
    fields: Dict[str, Any] = {
        "id": new_id(),
        "user": CUSTOMER_ID,
        "books": [OrderItem(book=new_id(), quantity=1, price=40.0)],
        "total_amount": 40.0,
        "shipping_address": ShippingAddress(
            street="221B Baker Street",
            city="London",
            state="Greater London",
            zip_code="NW1 6XE",
            country="United Kingdom",
        ),
        "payment_method": "credit_card",
        "status": "pending",
        "created_at": NOW,
    }
    fields.update(overrides)
    return Order(**fields)
