"""
Audit logging models.

Provides Pydantic schemas for:
- Audit log entries (audit_logs collection)
- Catalog, order and sign-in action types
- Admin listing responses
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


# ============================================================================
# Enums
# ============================================================================


class AuditAction(str, Enum):
    """Actions recorded in the audit trail."""
    # Authentication actions
    LOGIN_SUCCESS = "login_success"
    LOGIN_FAILURE = "login_failure"
    LOGOUT = "logout"
    USER_SIGNUP = "user_signup"

    # Catalog actions
    BOOK_CREATE = "book_create"
    BOOK_UPDATE = "book_update"
    BOOK_DELETE = "book_delete"
    BOOK_BULK_IMPORT = "book_bulk_import"
    BOOK_BULK_DELETE = "book_bulk_delete"

    # Order actions
    ORDER_PLACE = "order_place"
    ORDER_CANCEL = "order_cancel"

    # Profile actions
    PROFILE_UPDATE = "profile_update"


class ResourceType(str, Enum):
    USER = "user"
    BOOK = "book"
    ORDER = "order"
    AUTH = "auth"


class AuditStatus(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"


# ============================================================================
# Entries
# ============================================================================


class AuditLogEntry(BaseModel):
    """Response model for a single audit log entry."""
    id: str = Field(..., description="Audit log ID")
    user_id: Optional[str] = Field(None, description="Acting user (None for anonymous)")
    action: str = Field(..., description="Action performed")
    resource_type: Optional[str] = Field(None, description="Type of resource")
    resource_id: Optional[str] = Field(None, description="Resource identifier")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional details")
    ip_address: Optional[str] = Field(None, description="Client IP address")
    user_agent: Optional[str] = Field(None, description="Client user agent")
    status_code: Optional[int] = Field(None, description="HTTP status code")
    status: str = Field(AuditStatus.SUCCESS.value, description="Outcome status")
    timestamp: datetime = Field(..., description="When the action occurred")

    model_config = {
        "json_schema_extra": {
            "example": {
                "id": "665f1c2e8b3f4a0012ab9999",
                "user_id": "665f1c2e8b3f4a0012ab0001",
                "action": "book_bulk_import",
                "resource_type": "book",
                "resource_id": None,
                "details": {"added": 12, "skipped": 2},
                "ip_address": "192.168.1.100",
                "user_agent": "Mozilla/5.0",
                "status_code": 200,
                "status": "success",
                "timestamp": "2025-01-15T10:30:00Z"
            }
        }
    }

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "AuditLogEntry":
        user_id = doc.get("userId")
        return cls(
            id=str(doc["_id"]),
            user_id=str(user_id) if user_id is not None else None,
            action=doc["action"],
            resource_type=doc.get("resourceType"),
            resource_id=doc.get("resourceId"),
            details=doc.get("details"),
            ip_address=doc.get("ipAddress"),
            user_agent=doc.get("userAgent"),
            status_code=doc.get("statusCode"),
            status=doc.get("status") or AuditStatus.SUCCESS.value,
            timestamp=doc["timestamp"],
        )


class AuditLogListResponse(BaseModel):
    logs: List[AuditLogEntry]
    total: int
