"""
Profile view and update mapping.

The account settings page edits a flattened address ("City, State" in a
single field) and a fixed set of social links; these helpers translate
between that shape and the stored user document.
"""

from typing import Any, Dict, Optional

import structlog

from bookstore_api.models.auth import UserDB
from bookstore_api.models.profile import (
    Profile, ProfileAddress, ProfileUpdateRequest, SocialLinks
)
from bookstore_api.repositories.user_repo import UserRepository

logger = structlog.get_logger(__name__)

# Avatar path used by accounts created before the current default existed.
LEGACY_DEFAULT_AVATAR = "/images/user/default-avatar.jpg"


def build_profile(user: UserDB, default_avatar: str) -> Profile:
    """
    Render a stored user as a profile.

    Args:
        user: Stored user
        default_avatar: Avatar used when none is stored

    Returns:
        Profile with display defaults applied
    """
    address = user.address
    return Profile(
        id=user.id,
        first_name=user.first_name,
        last_name=user.last_name,
        email=user.email,
        phone=user.phone,
        bio=user.bio or "No bio available",
        role=user.role or "user",
        company=user.company,
        location=user.location,
        address=ProfileAddress(
            country=address.country or "United States",
            city_state=f"{address.city}, {address.state}",
            postal_code=address.zip_code,
            tax_id="",
        ),
        social_links=SocialLinks(
            facebook=user.social.facebook,
            twitter=user.social.twitter,
            linkedin="",
            instagram=user.social.instagram,
        ),
        avatar=user.avatar or default_avatar,
    )


def _split_city_state(city_state: Optional[str]) -> tuple:
    if not city_state:
        return "", ""
    parts = city_state.split(",")
    city = parts[0].strip()
    state = parts[1].strip() if len(parts) > 1 else ""
    return city, state


def profile_changes(user: UserDB, request: ProfileUpdateRequest) -> Dict[str, Any]:
    """
    Document fields to set for a profile update.

    Empty values keep the stored ones. The address is rebuilt from the
    stored address with only the provided parts replaced; social links
    merge the same way.

    Args:
        user: Stored user
        request: Update request

    Returns:
        Dict of camelCase document fields
    """
    fields: Dict[str, Any] = {}
    for name, key in (
        ("first_name", "firstName"),
        ("last_name", "lastName"),
        ("phone", "phone"),
        ("bio", "bio"),
        ("company", "company"),
        ("location", "location"),
    ):
        value = getattr(request, name)
        if value:
            fields[key] = value

    if request.address is not None:
        stored = user.address
        city, state = _split_city_state(request.address.city_state)
        fields["address"] = {
            "street": stored.street,
            "city": city or stored.city,
            "state": state or stored.state,
            "zipCode": request.address.postal_code or stored.zip_code,
            "country": request.address.country or stored.country,
        }

    if request.social_links is not None:
        stored_social = user.social
        fields["social"] = {
            "facebook": request.social_links.facebook or stored_social.facebook,
            "twitter": request.social_links.twitter or stored_social.twitter,
            "instagram": request.social_links.instagram or stored_social.instagram,
        }

    return fields


class ProfileService:
    """Reads and updates the signed-in user's profile."""

    def __init__(self, user_repo: UserRepository, default_avatar: str):
        self.user_repo = user_repo
        self.default_avatar = default_avatar

    async def get_profile(self, user_id: str) -> Optional[Profile]:
        """
        Load a profile, replacing an outdated default avatar on the way.

        Returns:
            Profile or None if the user no longer exists
        """
        user = await self.user_repo.get_user_by_id(user_id)
        if user is None:
            return None

        if not user.avatar or user.avatar == LEGACY_DEFAULT_AVATAR:
            logger.info("profile_avatar_migrated", user_id=user_id)
            user = await self.user_repo.update_user(user_id, {"avatar": self.default_avatar}) or user

        return build_profile(user, self.default_avatar)

    async def update_profile(self, user_id: str, request: ProfileUpdateRequest) -> Optional[UserDB]:
        """
        Apply a profile update.

        Returns:
            Updated user, or None if the user no longer exists
        """
        user = await self.user_repo.get_user_by_id(user_id)
        if user is None:
            return None

        fields = profile_changes(user, request)
        if not fields:
            return user
        return await self.user_repo.update_user(user_id, fields)
