"""
Audit trail recording.

Routers call ``AuditService.record`` after an action completes. A failed
audit write is logged and never fails the request that triggered it.
"""

import structlog
from typing import Any, Dict, Optional

from bookstore_api.config import get_settings
from bookstore_api.models.audit import AuditAction, AuditStatus, ResourceType
from bookstore_api.repositories.audit_repo import AuditRepository

logger = structlog.get_logger(__name__)


class AuditService:
    """Writes audit entries when audit logging is enabled."""

    def __init__(self, audit_repo: AuditRepository):
        self.audit_repo = audit_repo
        self.settings = get_settings()

    async def record(
        self,
        action: AuditAction,
        resource_type: ResourceType,
        user_id: Optional[str] = None,
        resource_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        status_code: int = 200,
        status: AuditStatus = AuditStatus.SUCCESS
    ) -> None:
        """
        Append an audit entry.

        Args:
            action: Action performed
            resource_type: Type of resource affected
            user_id: Acting user (None for anonymous)
            resource_id: Affected resource ID
            details: Additional context
            ip_address: Client IP address
            user_agent: Client user agent
            status_code: HTTP status code returned to the client
            status: Outcome
        """
        if not self.settings.audit_enabled:
            return

        try:
            await self.audit_repo.create_audit_log(
                user_id=user_id,
                action=action.value,
                resource_type=resource_type.value,
                resource_id=resource_id,
                details=details,
                ip_address=ip_address,
                user_agent=user_agent,
                status_code=status_code,
                status=status.value,
            )
        except Exception as e:
            logger.error(
                "audit_log_failed",
                error=str(e),
                action=action.value,
                user_id=user_id,
            )
