"""
Unit tests for the authentication service.

Tests cover:
- Password hashing and verification
- JWT creation, decoding, expiry and tampering
- Sign-up role handling
- Sign-in and current-user resolution against a repository double
"""

import pytest
from datetime import timedelta
from unittest.mock import AsyncMock

from jose import jwt

from bookstore_api.config import get_settings
from bookstore_api.models.auth import LoginRequest, SignupRequest
from bookstore_api.repositories.user_repo import UserRepository
from bookstore_api.services.auth_service import AuthService
from tests.factories import CUSTOMER_ID, make_user_db


@pytest.fixture
def user_repo():
    return AsyncMock(spec=UserRepository)


@pytest.fixture
def auth_service(user_repo):
    return AuthService(user_repo)


# ============================================================================
# PASSWORDS
# ============================================================================


class TestPasswords:

    def test_hash_is_not_plaintext_and_verifies(self, auth_service):
        hashed = auth_service.hash_password("SecurePass123")

        assert hashed != "SecurePass123"
        assert hashed.startswith("$2b$")
        assert auth_service.verify_password("SecurePass123", hashed)

    def test_wrong_password(self, auth_service):
        hashed = auth_service.hash_password("SecurePass123")

        assert not auth_service.verify_password("WrongPass123", hashed)

    @pytest.mark.parametrize("stored", ["", "not-a-bcrypt-hash"])
    def test_malformed_hash_is_a_mismatch(self, auth_service, stored):
        assert auth_service.verify_password("SecurePass123", stored) is False


# ============================================================================
# TOKENS
# ============================================================================


class TestTokens:

    def test_round_trip_claims(self, auth_service):
        token = auth_service.create_access_token(CUSTOMER_ID, "user@example.com", "user")

        payload = auth_service.decode_token(token)

        assert payload.sub == CUSTOMER_ID
        assert payload.email == "user@example.com"
        assert payload.role == "user"
        assert payload.exp - payload.iat == get_settings().access_token_expire_seconds

    def test_default_lifetime_is_seven_days(self):
        assert get_settings().access_token_expire_seconds == 7 * 24 * 3600

    def test_expired_token_is_rejected(self, auth_service):
        token = auth_service.create_access_token(
            CUSTOMER_ID, "user@example.com", "user", expires_delta=timedelta(seconds=-5)
        )

        assert auth_service.decode_token(token) is None

    def test_token_signed_with_other_key_is_rejected(self, auth_service):
        forged = jwt.encode(
            {"sub": CUSTOMER_ID, "email": "x@example.com", "role": "admin", "exp": 9999999999, "iat": 0},
            "a-completely-different-secret-key-0123456789",
            algorithm="HS256",
        )

        assert auth_service.decode_token(forged) is None

    def test_garbage_token_is_rejected(self, auth_service):
        assert auth_service.decode_token("not.a.jwt") is None


# ============================================================================
# FLOWS
# ============================================================================


class TestRegister:

    async def test_vendor_role_may_be_requested(self, auth_service, user_repo):
        user_repo.create_user.return_value = make_user_db(role="vendor")
        request = SignupRequest(firstName="Vera", lastName="Vendor", email="V@Example.com", password="SecurePass123", role="vendor")

        await auth_service.register(request)

        kwargs = user_repo.create_user.call_args.kwargs
        assert kwargs["role"] == "vendor"
        assert kwargs["email"] == "v@example.com"
        assert auth_service.verify_password("SecurePass123", kwargs["password_hash"])

    @pytest.mark.parametrize("requested", ["admin", "superuser", None])
    async def test_other_roles_become_user(self, auth_service, user_repo, requested):
        user_repo.create_user.return_value = make_user_db()
        request = SignupRequest(firstName="A", lastName="B", email="a@example.com", password="SecurePass123", role=requested)

        await auth_service.register(request)

        assert user_repo.create_user.call_args.kwargs["role"] == "user"

    async def test_duplicate_email_propagates(self, auth_service, user_repo):
        user_repo.create_user.side_effect = ValueError("Email 'a@example.com' already exists")
        request = SignupRequest(firstName="A", lastName="B", email="a@example.com", password="SecurePass123")

        with pytest.raises(ValueError):
            await auth_service.register(request)


class TestLogin:

    async def test_success_returns_token(self, auth_service, user_repo):
        user_repo.get_user_by_email.return_value = make_user_db(
            password_hash=auth_service.hash_password("User@1234")
        )

        response = await auth_service.login(LoginRequest(email="user@example.com", password="User@1234"))

        assert response.token_type == "bearer"
        assert auth_service.decode_token(response.access_token).sub == CUSTOMER_ID

    async def test_unknown_email(self, auth_service, user_repo):
        user_repo.get_user_by_email.return_value = None

        assert await auth_service.login(LoginRequest(email="nobody@example.com", password="x")) is None

    async def test_wrong_password(self, auth_service, user_repo):
        user_repo.get_user_by_email.return_value = make_user_db(
            password_hash=auth_service.hash_password("User@1234")
        )

        assert await auth_service.login(LoginRequest(email="user@example.com", password="nope")) is None


class TestCurrentUser:

    async def test_role_comes_from_stored_user(self, auth_service, user_repo):
        user_repo.get_user_by_id.return_value = make_user_db(role="vendor")
        token = auth_service.create_access_token(CUSTOMER_ID, "user@example.com", "user")

        current = await auth_service.get_current_user(token)

        assert current.id == CUSTOMER_ID
        assert current.role == "vendor"

    async def test_deleted_user(self, auth_service, user_repo):
        user_repo.get_user_by_id.return_value = None
        token = auth_service.create_access_token(CUSTOMER_ID, "user@example.com", "user")

        assert await auth_service.get_current_user(token) is None
