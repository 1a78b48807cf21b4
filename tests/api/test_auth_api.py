"""
API tests for sign-up, sign-in, logout and token handling.

Runs the real auth dependencies against repository doubles, so tokens are
issued and verified end to end.
"""

import pytest

from bookstore_api.services.auth_service import AuthService
from tests.factories import CUSTOMER_ID, make_user_db

SIGNUP = {
    "firstName": "Jane",
    "lastName": "Reader",
    "email": "jane@example.com",
    "password": "SecurePass123",
}


@pytest.fixture
def stored_user(user_repo):
    """A user whose password is ``User@1234``, findable by email and id."""
    user = make_user_db(password_hash=AuthService(user_repo).hash_password("User@1234"))
    user_repo.get_user_by_email.return_value = user
    user_repo.get_user_by_id.return_value = user
    return user


class TestSignup:

    def test_creates_account(self, client, user_repo, audit_repo):
        user_repo.create_user.return_value = make_user_db(
            first_name="Jane", last_name="Reader", email="jane@example.com", role="vendor"
        )

        response = client.post("/api/auth/signup", json={**SIGNUP, "role": "vendor"})

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "User registered successfully"
        assert body["data"] == {
            "id": CUSTOMER_ID,
            "first_name": "Jane",
            "last_name": "Reader",
            "email": "jane@example.com",
            "role": "vendor",
        }
        assert "password" not in response.text
        assert audit_repo.create_audit_log.await_args.kwargs["action"] == "user_signup"

    def test_admin_role_is_not_self_assignable(self, client, user_repo):
        user_repo.create_user.return_value = make_user_db()

        client.post("/api/auth/signup", json={**SIGNUP, "role": "admin"})

        assert user_repo.create_user.await_args.kwargs["role"] == "user"

    def test_missing_fields(self, client, user_repo):
        response = client.post("/api/auth/signup", json={"email": "jane@example.com"})

        assert response.status_code == 400
        assert response.json() == {"detail": "Missing required fields"}
        user_repo.create_user.assert_not_called()

    @pytest.mark.parametrize("email", ["", "   "])
    def test_blank_email_is_a_missing_field(self, client, user_repo, email):
        response = client.post("/api/auth/signup", json={**SIGNUP, "email": email})

        assert response.status_code == 400
        assert response.json() == {"detail": "Missing required fields"}
        user_repo.create_user.assert_not_called()

    def test_short_password(self, client):
        response = client.post("/api/auth/signup", json={**SIGNUP, "password": "short"})

        assert response.status_code == 400
        assert response.json()["detail"] == "Password must be at least 8 characters"

    def test_duplicate_email(self, client, user_repo):
        user_repo.create_user.side_effect = ValueError("Email 'jane@example.com' already exists")

        response = client.post("/api/auth/signup", json=SIGNUP)

        assert response.status_code == 409
        assert response.json()["detail"] == "Email already in use"

    def test_malformed_email(self, client):
        response = client.post("/api/auth/signup", json={**SIGNUP, "email": "nope"})

        assert response.status_code == 422


class TestSignin:

    def test_returns_token_and_sets_cookie(self, client, stored_user, audit_repo):
        response = client.post("/api/auth/signin", json={"email": "USER@example.com", "password": "User@1234"})

        assert response.status_code == 200
        body = response.json()
        assert body["token_type"] == "bearer"
        assert body["expires_in"] == 7 * 24 * 3600
        assert response.cookies.get("token") == body["access_token"]

        set_cookie = response.headers["set-cookie"].lower()
        assert "httponly" in set_cookie
        assert "samesite=lax" in set_cookie

        audit = audit_repo.create_audit_log.await_args.kwargs
        assert audit["action"] == "login_success"
        assert audit["user_id"] == CUSTOMER_ID

    def test_invalid_credentials(self, client, stored_user, audit_repo):
        response = client.post("/api/auth/signin", json={"email": "user@example.com", "password": "wrong"})

        assert response.status_code == 401
        assert response.json() == {"detail": "Invalid credentials"}
        assert "token" not in response.cookies

        audit = audit_repo.create_audit_log.await_args.kwargs
        assert audit["action"] == "login_failure"
        assert audit["status"] == "failure"

    def test_audit_failure_does_not_break_signin(self, client, stored_user, audit_repo):
        audit_repo.create_audit_log.side_effect = RuntimeError("audit store down")

        response = client.post("/api/auth/signin", json={"email": "user@example.com", "password": "User@1234"})

        assert response.status_code == 200


class TestTokens:

    def test_bearer_token(self, client, stored_user):
        token = client.post(
            "/api/auth/signin", json={"email": "user@example.com", "password": "User@1234"}
        ).json()["access_token"]
        client.cookies.clear()

        response = client.get("/api/profile", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 200
        assert response.json()["data"]["email"] == "user@example.com"

    def test_cookie_token(self, client, stored_user):
        client.post("/api/auth/signin", json={"email": "user@example.com", "password": "User@1234"})

        response = client.get("/api/profile")

        assert response.status_code == 200

    def test_no_credentials(self, client):
        response = client.get("/api/profile")

        assert response.status_code == 401
        assert response.json() == {"detail": "Authentication required"}
        assert response.headers["www-authenticate"] == "Bearer"

    def test_invalid_token(self, client, user_repo):
        response = client.get("/api/profile", headers={"Authorization": "Bearer not.a.token"})

        assert response.status_code == 401
        assert response.json() == {"detail": "Invalid authentication token"}
        user_repo.get_user_by_id.assert_not_called()

    def test_token_for_deleted_user(self, client, stored_user, user_repo):
        token = AuthService(user_repo).create_access_token(CUSTOMER_ID, "user@example.com", "user")
        user_repo.get_user_by_id.return_value = None

        response = client.get("/api/profile", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401


class TestLogout:

    def test_clears_cookie(self, client, stored_user):
        client.post("/api/auth/signin", json={"email": "user@example.com", "password": "User@1234"})

        response = client.post("/api/auth/logout")

        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Logged out successfully"}
        assert 'token=""' in response.headers["set-cookie"] or "token=;" in response.headers["set-cookie"]
        assert client.get("/api/profile").status_code == 401
