"""
Profile models.

The profile view flattens the stored address into the shape the account
settings page edits ("City, State" in one field, postal code, tax id).
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ProfileAddress(BaseModel):
    country: str = "United States"
    city_state: str = ""
    postal_code: str = ""
    tax_id: str = ""


class SocialLinks(BaseModel):
    facebook: str = ""
    twitter: str = ""
    linkedin: str = ""
    instagram: str = ""


class Profile(BaseModel):
    """Profile of the signed-in user."""
    id: str
    first_name: str = ""
    last_name: str = ""
    email: str
    phone: str = ""
    bio: str = "No bio available"
    role: str = "user"
    company: str = ""
    location: str = ""
    address: ProfileAddress
    social_links: SocialLinks
    avatar: str


class ProfileResponse(BaseModel):
    success: bool = True
    data: Profile


# ============================================================================
# Update Requests
# ============================================================================


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


class ProfileAddressUpdate(_CamelModel):
    country: Optional[str] = None
    city_state: Optional[str] = None
    postal_code: Optional[str] = None


class SocialLinksUpdate(_CamelModel):
    facebook: Optional[str] = None
    twitter: Optional[str] = None
    instagram: Optional[str] = None


class ProfileUpdateRequest(_CamelModel):
    """
    Profile update request.

    Empty or missing values leave the stored value unchanged.
    """
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    bio: Optional[str] = None
    company: Optional[str] = None
    location: Optional[str] = None
    address: Optional[ProfileAddressUpdate] = None
    social_links: Optional[SocialLinksUpdate] = None


class ProfileUpdateResponse(BaseModel):
    success: bool = True
    message: str = "Profile updated successfully"
    data: ProfileUpdateRequest
