"""
Unit tests for the profile view and update mapping.
"""

import pytest
from unittest.mock import AsyncMock

from bookstore_api.models.auth import Address, Social
from bookstore_api.models.profile import ProfileUpdateRequest
from bookstore_api.repositories.user_repo import UserRepository
from bookstore_api.services.profile_service import (
    LEGACY_DEFAULT_AVATAR, ProfileService, build_profile, profile_changes
)
from tests.factories import CUSTOMER_ID, make_user_db

DEFAULT_AVATAR = "/images/user/owner.jpg"


class TestBuildProfile:

    def test_display_defaults(self):
        user = make_user_db(bio="", role="", avatar=None, address=Address())

        profile = build_profile(user, DEFAULT_AVATAR)

        assert profile.bio == "No bio available"
        assert profile.role == "user"
        assert profile.avatar == DEFAULT_AVATAR
        assert profile.address.country == "United States"
        assert profile.address.city_state == ", "
        assert profile.address.tax_id == ""
        assert profile.social_links.linkedin == ""

    def test_stored_values(self):
        user = make_user_db(
            bio="Reader",
            social=Social(twitter="@doe", facebook="doe.fb", instagram="doe.ig"),
        )

        profile = build_profile(user, DEFAULT_AVATAR)

        assert profile.bio == "Reader"
        assert profile.address.city_state == "Mumbai, Maharashtra"
        assert profile.address.postal_code == "400001"
        assert profile.address.country == "India"
        assert profile.social_links.twitter == "@doe"
        assert profile.avatar == "/images/user/user-01.jpg"


class TestProfileChanges:

    def test_empty_values_are_ignored(self):
        request = ProfileUpdateRequest.model_validate({"firstName": "", "lastName": "Smith", "bio": None})

        assert profile_changes(make_user_db(), request) == {"lastName": "Smith"}

    def test_city_state_is_split(self):
        request = ProfileUpdateRequest.model_validate({"address": {"cityState": "Pune, MH"}})

        fields = profile_changes(make_user_db(), request)

        assert fields["address"] == {
            "street": "789 Park Ave",
            "city": "Pune",
            "state": "MH",
            "zipCode": "400001",
            "country": "India",
        }

    def test_city_without_state_keeps_stored_state(self):
        request = ProfileUpdateRequest.model_validate({"address": {"cityState": "Pune", "postalCode": "411001"}})

        address = profile_changes(make_user_db(), request)["address"]

        assert address["city"] == "Pune"
        assert address["state"] == "Maharashtra"
        assert address["zipCode"] == "411001"

    def test_social_links_merge(self):
        user = make_user_db(social=Social(twitter="@old", facebook="fb"))
        request = ProfileUpdateRequest.model_validate({"socialLinks": {"twitter": "@new"}})

        assert profile_changes(user, request)["social"] == {
            "facebook": "fb",
            "twitter": "@new",
            "instagram": "",
        }


class TestProfileService:

    @pytest.fixture
    def user_repo(self):
        return AsyncMock(spec=UserRepository)

    @pytest.fixture
    def service(self, user_repo):
        return ProfileService(user_repo, DEFAULT_AVATAR)

    @pytest.mark.parametrize("stored", [None, LEGACY_DEFAULT_AVATAR])
    async def test_outdated_avatar_is_replaced(self, service, user_repo, stored):
        user_repo.get_user_by_id.return_value = make_user_db(avatar=stored)
        user_repo.update_user.return_value = make_user_db(avatar=DEFAULT_AVATAR)

        profile = await service.get_profile(CUSTOMER_ID)

        user_repo.update_user.assert_awaited_once_with(CUSTOMER_ID, {"avatar": DEFAULT_AVATAR})
        assert profile.avatar == DEFAULT_AVATAR

    async def test_custom_avatar_is_kept(self, service, user_repo):
        user_repo.get_user_by_id.return_value = make_user_db()

        profile = await service.get_profile(CUSTOMER_ID)

        user_repo.update_user.assert_not_called()
        assert profile.avatar == "/images/user/user-01.jpg"

    async def test_missing_user(self, service, user_repo):
        user_repo.get_user_by_id.return_value = None

        assert await service.get_profile(CUSTOMER_ID) is None
        assert await service.update_profile(CUSTOMER_ID, ProfileUpdateRequest()) is None

    async def test_update_without_changes_skips_write(self, service, user_repo):
        user = make_user_db()
        user_repo.get_user_by_id.return_value = user

        result = await service.update_profile(CUSTOMER_ID, ProfileUpdateRequest(bio=""))

        assert result == user
        user_repo.update_user.assert_not_called()

    async def test_update_writes_changes(self, service, user_repo):
        user_repo.get_user_by_id.return_value = make_user_db()
        user_repo.update_user.return_value = make_user_db(phone="+91 98765 43210")

        result = await service.update_profile(CUSTOMER_ID, ProfileUpdateRequest(phone="+91 98765 43210"))

        user_repo.update_user.assert_awaited_once_with(CUSTOMER_ID, {"phone": "+91 98765 43210"})
        assert result.phone == "+91 98765 43210"
