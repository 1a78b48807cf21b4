"""
Order models.

Provides Pydantic schemas for:
- Order documents (orders collection) and their API representation
- Order placement and cancellation requests
- Order, payment and status enums
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from bookstore_api.models.book import PurchaseLocation


class OrderStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentMethod(str, Enum):
    CREDIT_CARD = "credit_card"
    DEBIT_CARD = "debit_card"
    UPI = "upi"
    CASH_ON_DELIVERY = "cash_on_delivery"
    WALLET = "wallet"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


# ============================================================================
# Embedded Documents
# ============================================================================


class ShippingAddress(BaseModel):
    """Delivery address. Every field is required."""
    model_config = ConfigDict(str_strip_whitespace=True)

    street: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)
    zip_code: str = Field(..., min_length=1, validation_alias=AliasChoices("zip_code", "zipCode"))
    country: str = Field(..., min_length=1)

    def to_document(self) -> Dict[str, str]:
        return {
            "street": self.street,
            "city": self.city,
            "state": self.state,
            "zipCode": self.zip_code,
            "country": self.country,
        }

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "ShippingAddress":
        return cls(
            street=doc.get("street", ""),
            city=doc.get("city", ""),
            state=doc.get("state", ""),
            zip_code=doc.get("zipCode", ""),
            country=doc.get("country", ""),
        )


class OrderItem(BaseModel):
    book: str = Field(..., description="Book ID")
    quantity: int = Field(1, ge=1)
    price: float = Field(..., ge=0)


class PaymentDetails(BaseModel):
    transaction_id: Optional[str] = None
    status: PaymentStatus = PaymentStatus.PENDING
    paid_at: Optional[datetime] = None


class StatusHistoryEntry(BaseModel):
    status: OrderStatus
    timestamp: datetime
    note: Optional[str] = None


# ============================================================================
# Order
# ============================================================================


class Order(BaseModel):
    """An order as returned by the API."""
    id: str
    user: str
    books: List[OrderItem]
    total_amount: float
    shipping_address: ShippingAddress
    payment_method: PaymentMethod
    payment_details: PaymentDetails = Field(default_factory=PaymentDetails)
    status: OrderStatus = OrderStatus.PENDING
    status_history: List[StatusHistoryEntry] = Field(default_factory=list)
    delivered_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancel_reason: Optional[str] = None
    tracking_number: Optional[str] = None
    tracking_url: Optional[str] = None
    note: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "Order":
        payment = doc.get("paymentDetails") or {}
        return cls(
            id=str(doc["_id"]),
            user=str(doc["user"]),
            books=[
                OrderItem(
                    book=str(item["book"]),
                    quantity=item.get("quantity", 1),
                    price=item.get("price", 0),
                )
                for item in doc.get("books", [])
            ],
            total_amount=doc.get("totalAmount", 0),
            shipping_address=ShippingAddress.from_document(doc.get("shippingAddress") or {}),
            payment_method=doc["paymentMethod"],
            payment_details=PaymentDetails(
                transaction_id=payment.get("transactionId"),
                status=payment.get("status") or PaymentStatus.PENDING,
                paid_at=payment.get("paidAt"),
            ),
            status=doc.get("status") or OrderStatus.PENDING,
            status_history=[
                StatusHistoryEntry(
                    status=entry["status"],
                    timestamp=entry["timestamp"],
                    note=entry.get("note"),
                )
                for entry in doc.get("statusHistory", [])
            ],
            delivered_at=doc.get("deliveredAt"),
            cancelled_at=doc.get("cancelledAt"),
            cancel_reason=doc.get("cancelReason"),
            tracking_number=doc.get("trackingNumber"),
            tracking_url=doc.get("trackingUrl"),
            note=doc.get("note"),
            created_at=doc["createdAt"],
            updated_at=doc.get("updatedAt"),
        )


class OrderView(Order):
    """Order plus the status derived from its age."""
    derived_status: OrderStatus


# ============================================================================
# Requests
# ============================================================================


class OrderLineRequest(_CamelModel):
    book_id: str = Field(..., min_length=1)
    quantity: int = Field(1, ge=1, le=100)


class PlaceOrderRequest(_CamelModel):
    """Place an order for one or more available books."""
    books: List[OrderLineRequest] = Field(..., min_length=1)
    shipping_address: ShippingAddress
    payment_method: PaymentMethod
    lat_lng: Optional[List[float]] = Field(None, description="[lat, lng] of the buyer")
    note: Optional[str] = Field(None, max_length=1000)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "books": [{"book_id": "665f1c2e8b3f4a0012ab34cd", "quantity": 1}],
                "shipping_address": {
                    "street": "221B Baker Street",
                    "city": "London",
                    "state": "Greater London",
                    "zip_code": "NW1 6XE",
                    "country": "United Kingdom"
                },
                "payment_method": "credit_card",
                "lat_lng": [51.5237, -0.1585]
            }
        }
    )

    def purchase_location(self) -> PurchaseLocation:
        return PurchaseLocation(country=self.shipping_address.country, lat_lng=self.lat_lng)


class CancelOrderRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)
