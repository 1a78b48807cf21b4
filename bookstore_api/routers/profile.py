"""
Profile router: the signed-in user's account settings.
"""

import structlog
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status

from bookstore_api.dependencies import (
    get_audit_service,
    get_client_ip,
    get_current_user,
    get_profile_service,
    get_user_agent,
)
from bookstore_api.models.audit import AuditAction, ResourceType
from bookstore_api.models.auth import CurrentUser, ErrorResponse
from bookstore_api.models.profile import (
    ProfileResponse, ProfileUpdateRequest, ProfileUpdateResponse
)
from bookstore_api.services.audit_service import AuditService
from bookstore_api.services.profile_service import ProfileService

logger = structlog.get_logger(__name__)

router = APIRouter(
    prefix="/profile",
    tags=["Profile"],
    responses={
        401: {"model": ErrorResponse, "description": "Unauthorized"},
        404: {"model": ErrorResponse, "description": "User not found"}
    }
)


@router.get("", response_model=ProfileResponse, summary="Get Profile")
async def get_profile(
    current_user: CurrentUser = Depends(get_current_user),
    profile_service: ProfileService = Depends(get_profile_service)
) -> ProfileResponse:
    """
    Return the caller's profile with display defaults applied.

    An outdated default avatar is replaced and saved on the way.
    """
    profile = await profile_service.get_profile(current_user.id)
    if profile is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return ProfileResponse(data=profile)


@router.put(
    "",
    response_model=ProfileUpdateResponse,
    response_model_by_alias=False,
    summary="Update Profile"
)
async def update_profile(
    update: ProfileUpdateRequest,
    current_user: CurrentUser = Depends(get_current_user),
    profile_service: ProfileService = Depends(get_profile_service),
    audit_service: AuditService = Depends(get_audit_service),
    client_ip: str = Depends(get_client_ip),
    user_agent: Optional[str] = Depends(get_user_agent)
) -> ProfileUpdateResponse:
    """
    Update the non-empty fields of the caller's profile.

    ``address.city_state`` is split on the first comma into city and state.
    """
    user = await profile_service.update_profile(current_user.id, update)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    await audit_service.record(
        AuditAction.PROFILE_UPDATE,
        ResourceType.USER,
        user_id=current_user.id,
        resource_id=current_user.id,
        details={"fields": sorted(update.model_dump(exclude_none=True))},
        ip_address=client_ip,
        user_agent=user_agent,
    )

    return ProfileUpdateResponse(data=update)
