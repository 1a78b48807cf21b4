"""
Admin router.

Admin-only operations. Currently the audit trail listing.
"""

import structlog
from typing import Optional
from fastapi import APIRouter, Depends, Query

from bookstore_api.dependencies import get_audit_repository, require_admin
from bookstore_api.models.audit import AuditAction, AuditLogListResponse
from bookstore_api.models.auth import CurrentUser, ErrorResponse
from bookstore_api.repositories.audit_repo import AuditRepository

logger = structlog.get_logger(__name__)

router = APIRouter(
    prefix="/admin",
    tags=["Admin"],
    responses={
        401: {"model": ErrorResponse, "description": "Unauthorized"},
        403: {"model": ErrorResponse, "description": "Forbidden"}
    }
)


@router.get(
    "/audit-logs",
    response_model=AuditLogListResponse,
    summary="List Audit Logs",
    description="""
    Recent audit entries, newest first.

    **Authentication:** Required (admin role)

    **Query Parameters:**
    - limit: number of entries (1-500, default 100)
    - skip: entries to skip
    - action: only entries with this action
    """
)
async def list_audit_logs(
    limit: int = Query(100, ge=1, le=500),
    skip: int = Query(0, ge=0),
    action: Optional[AuditAction] = Query(None),
    current_user: CurrentUser = Depends(require_admin),
    audit_repo: AuditRepository = Depends(get_audit_repository)
) -> AuditLogListResponse:
    logs, total = await audit_repo.list_audit_logs(
        limit=limit,
        skip=skip,
        action=action.value if action else None,
    )

    logger.info("audit_logs_listed", user_id=current_user.id, count=len(logs), total=total)
    return AuditLogListResponse(logs=logs, total=total)
