"""
Book catalog models.

Provides Pydantic schemas for:
- Book documents (books collection) and their API representation
- Create, update and bulk delete requests
- Paginated listings and bulk import results
"""

from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


DEFAULT_COVER_IMAGE = "/images/product/product-01.jpg"


class BookStatus(str, Enum):
    """Lifecycle of a catalog copy."""
    AVAILABLE = "Available"
    PENDING = "Pending"
    DELIVERED = "Delivered"
    CANCELED = "Canceled"


# ============================================================================
# Embedded Documents
# ============================================================================


class PurchaseLocation(BaseModel):
    """Where a book was bought from."""
    country: Optional[str] = None
    lat_lng: Optional[List[float]] = Field(
        None,
        description="[lat, lng]"
    )

    @field_validator("lat_lng")
    @classmethod
    def validate_lat_lng(cls, v: Optional[List[float]]) -> Optional[List[float]]:
        """latLng must be exactly two numbers when present."""
        if v is not None and len(v) != 2:
            raise ValueError("latLng must be an array of two numbers [lat, lng]")
        return v

    @classmethod
    def from_document(cls, doc: Optional[Dict[str, Any]]) -> Optional["PurchaseLocation"]:
        if not doc:
            return None
        lat_lng = doc.get("latLng")
        return cls(
            country=doc.get("country"),
            lat_lng=list(lat_lng) if lat_lng else None,
        )

    def to_document(self) -> Dict[str, Any]:
        doc: Dict[str, Any] = {"country": self.country}
        if self.lat_lng is not None:
            doc["latLng"] = list(self.lat_lng)
        return doc


# ============================================================================
# Book
# ============================================================================


class Book(BaseModel):
    """A catalog entry as returned by the API."""
    id: str = Field(..., description="Book ID (ObjectId hex)")
    title: str
    author: str
    isbn: str
    price: float = Field(..., ge=0)
    description: str = ""
    category: str
    cover_image: str = DEFAULT_COVER_IMAGE
    vendor: Optional[str] = Field(None, description="ID of the owning vendor")
    purchased_at: Optional[datetime] = None
    purchased_by: Optional[str] = None
    purchase_location: Optional[PurchaseLocation] = None
    status: BookStatus = BookStatus.AVAILABLE
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "665f1c2e8b3f4a0012ab34cd",
                "title": "The Pragmatic Programmer",
                "author": "Andrew Hunt",
                "isbn": "9780135957059",
                "price": 39.99,
                "description": "From journeyman to master",
                "category": "Programming",
                "cover_image": DEFAULT_COVER_IMAGE,
                "vendor": "665f1c2e8b3f4a0012ab0001",
                "purchased_at": None,
                "purchased_by": None,
                "purchase_location": None,
                "status": "Available",
                "created_at": "2025-01-15T10:30:00Z",
                "updated_at": "2025-01-15T10:30:00Z"
            }
        }
    )

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "Book":
        """
        Build a book from a raw MongoDB document.

        Args:
            doc: Document from the books collection

        Returns:
            Book instance
        """
        vendor = doc.get("vendor")
        purchased_by = doc.get("purchasedBy")
        return cls(
            id=str(doc["_id"]),
            title=doc.get("title", ""),
            author=doc.get("author", ""),
            isbn=doc.get("isbn", ""),
            price=doc.get("price", 0),
            description=doc.get("description") or "",
            category=doc.get("category", ""),
            cover_image=doc.get("coverImage") or DEFAULT_COVER_IMAGE,
            vendor=str(vendor) if vendor is not None else None,
            purchased_at=doc.get("purchasedAt"),
            purchased_by=str(purchased_by) if purchased_by is not None else None,
            purchase_location=PurchaseLocation.from_document(doc.get("purchaseLocation")),
            status=doc.get("status") or BookStatus.AVAILABLE,
            created_at=doc.get("createdAt"),
            updated_at=doc.get("updatedAt"),
        )


# ============================================================================
# Requests
# ============================================================================


class _BookFields(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    title: Optional[str] = Field(None, max_length=500)
    author: Optional[str] = Field(None, max_length=300)
    isbn: Optional[str] = Field(None, max_length=32)
    price: Optional[float] = None
    description: Optional[str] = None
    category: Optional[str] = Field(None, max_length=200)
    cover_image: Optional[str] = None


class BookCreateRequest(_BookFields):
    """
    Create a single book.

    Required fields are checked by the endpoint; description and cover image
    are optional.
    """

    REQUIRED: ClassVar[Tuple[str, ...]] = ("title", "author", "isbn", "price", "category")

    def missing_fields(self) -> List[str]:
        missing = []
        for name in self.REQUIRED:
            value = getattr(self, name)
            if value is None or (isinstance(value, str) and not value):
                missing.append(name)
        return missing


class BookUpdateRequest(_BookFields):
    """Partial update. Missing or empty values keep the stored ones."""

    def changes(self) -> Dict[str, Any]:
        """Non-empty fields keyed by their document names."""
        updates: Dict[str, Any] = {}
        for name, value in self.model_dump(by_alias=True).items():
            if value is None or value == "":
                continue
            updates[name] = value
        return updates

    @field_validator("price")
    @classmethod
    def validate_price(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v < 0:
            raise ValueError("Price must be a non-negative number")
        return v


class BulkDeleteRequest(BaseModel):
    """Book IDs to delete. Validated by the endpoint."""
    ids: Any = None


# ============================================================================
# Responses
# ============================================================================


class Pagination(BaseModel):
    total: int
    total_pages: int
    current_page: int
    limit: int
    has_next_page: bool
    has_previous_page: bool


class BookListResponse(BaseModel):
    books: List[Book]
    pagination: Pagination


class BookDeleteResponse(BaseModel):
    message: str = "Book deleted successfully"


class BulkImportResponse(BaseModel):
    message: str
    added_books: List[Book]
    skipped_count: int = 0


class BulkDeleteResponse(BaseModel):
    message: str
    deleted_count: int
