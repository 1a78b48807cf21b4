"""
API tests for the admin audit trail.
"""

from datetime import datetime, timezone

from bookstore_api.models.audit import AuditLogEntry
from tests.factories import ADMIN_ID


def make_entry(action: str = "book_create") -> AuditLogEntry:
    return AuditLogEntry(
        id="665f1c2e8b3f4a0012abffff",
        user_id=ADMIN_ID,
        action=action,
        resource_type="book",
        timestamp=datetime(2025, 6, 15, tzinfo=timezone.utc),
    )


class TestAuditLogs:

    def test_admin_lists_entries(self, client, login_as, admin_user, audit_repo):
        login_as(admin_user)
        audit_repo.list_audit_logs.return_value = ([make_entry()], 1)

        response = client.get("/api/admin/audit-logs", params={"limit": 5, "skip": 10, "action": "book_create"})

        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 1
        assert body["logs"][0]["action"] == "book_create"
        audit_repo.list_audit_logs.assert_awaited_once_with(limit=5, skip=10, action="book_create")

    def test_vendor_is_forbidden(self, client, login_as, vendor_user, audit_repo):
        login_as(vendor_user)

        response = client.get("/api/admin/audit-logs")

        assert response.status_code == 403
        assert response.json() == {"detail": "Admin role required"}
        audit_repo.list_audit_logs.assert_not_called()

    def test_unknown_action(self, client, login_as, admin_user):
        login_as(admin_user)

        assert client.get("/api/admin/audit-logs", params={"action": "explode"}).status_code == 422

    def test_limit_bounds(self, client, login_as, admin_user):
        login_as(admin_user)

        assert client.get("/api/admin/audit-logs", params={"limit": 501}).status_code == 422
