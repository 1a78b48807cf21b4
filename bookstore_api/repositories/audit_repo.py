"""
Audit log repository for database operations.

Entries are appended to the ``audit_logs`` collection and read back
newest first for the admin listing.
"""

import structlog
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from pymongo import DESCENDING
from pymongo.asynchronous.database import AsyncDatabase

from bookstore_api.database import AUDIT_LOGS, parse_object_id
from bookstore_api.models.audit import AuditLogEntry, AuditStatus

logger = structlog.get_logger(__name__)


class AuditRepository:
    """Repository for audit log database operations."""

    def __init__(self, db: AsyncDatabase):
        """
        Initialize audit repository.

        Args:
            db: MongoDB database handle
        """
        self.collection = db[AUDIT_LOGS]

    async def create_audit_log(
        self,
        user_id: Optional[str],
        action: str,
        resource_type: Optional[str] = None,
        resource_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        status_code: Optional[int] = None,
        status: str = AuditStatus.SUCCESS.value
    ) -> AuditLogEntry:
        """
        Create a new audit log entry.

        Args:
            user_id: User ID (None for anonymous)
            action: Action performed
            resource_type: Type of resource
            resource_id: Resource identifier
            details: Additional details
            ip_address: Client IP address
            user_agent: Client user agent
            status_code: HTTP status code
            status: Outcome (success or failure)

        Returns:
            Created audit log entry
        """
        doc = {
            "userId": parse_object_id(user_id) if user_id else None,
            "action": action,
            "resourceType": resource_type,
            "resourceId": resource_id,
            "details": details,
            "ipAddress": ip_address,
            "userAgent": user_agent,
            "statusCode": status_code,
            "status": status,
            "timestamp": datetime.now(timezone.utc),
        }

        try:
            result = await self.collection.insert_one(doc)
            doc["_id"] = result.inserted_id

            logger.debug(
                "audit_log_created",
                audit_id=str(result.inserted_id),
                user_id=user_id,
                action=action,
                resource_type=resource_type
            )
            return AuditLogEntry.from_document(doc)

        except Exception as e:
            logger.error("audit_log_create_failed", error=str(e), user_id=user_id, action=action)
            raise

    async def list_audit_logs(
        self,
        limit: int = 100,
        skip: int = 0,
        action: Optional[str] = None
    ) -> Tuple[List[AuditLogEntry], int]:
        """
        List audit entries newest first.

        Args:
            limit: Maximum number of entries
            skip: Number of entries to skip
            action: Only entries with this action

        Returns:
            Tuple of (entries, total matching entries)
        """
        query: Dict[str, Any] = {}
        if action:
            query["action"] = action

        try:
            total = await self.collection.count_documents(query)
            cursor = (
                self.collection.find(query)
                .sort([("timestamp", DESCENDING), ("_id", DESCENDING)])
                .skip(skip)
                .limit(limit)
            )
            return [AuditLogEntry.from_document(doc) for doc in await cursor.to_list()], total
        except Exception as e:
            logger.error("audit_logs_list_failed", error=str(e))
            raise
