"""
API tests for the profile endpoints.
"""

import pytest

from tests.factories import CUSTOMER_ID, make_user_db


@pytest.fixture
def as_customer(login_as, customer_user):
    login_as(customer_user)
    return customer_user


class TestProfileApi:

    def test_get(self, client, as_customer, user_repo):
        user_repo.get_user_by_id.return_value = make_user_db(bio="")

        response = client.get("/api/profile")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["first_name"] == "John"
        assert data["bio"] == "No bio available"
        assert data["address"]["city_state"] == "Mumbai, Maharashtra"
        assert "password_hash" not in data

    def test_get_missing_user(self, client, as_customer, user_repo):
        user_repo.get_user_by_id.return_value = None

        response = client.get("/api/profile")

        assert response.status_code == 404
        assert response.json() == {"detail": "User not found"}

    def test_update(self, client, as_customer, user_repo, audit_repo):
        user_repo.get_user_by_id.return_value = make_user_db()
        user_repo.update_user.return_value = make_user_db(first_name="Johnny")

        response = client.put("/api/profile", json={
            "firstName": "Johnny",
            "address": {"cityState": "Pune, MH"},
        })

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Profile updated successfully"
        assert body["data"]["first_name"] == "Johnny"

        user_id, fields = user_repo.update_user.await_args.args
        assert user_id == CUSTOMER_ID
        assert fields["firstName"] == "Johnny"
        assert fields["address"]["city"] == "Pune"
        assert audit_repo.create_audit_log.await_args.kwargs["action"] == "profile_update"

    def test_update_missing_user(self, client, as_customer, user_repo):
        user_repo.get_user_by_id.return_value = None

        assert client.put("/api/profile", json={"bio": "x"}).status_code == 404
