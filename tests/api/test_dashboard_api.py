"""
API tests for the dashboard analytics endpoints.

The analytics arithmetic is covered by the unit tests; these check wiring,
scoping and response envelopes.
"""

import pytest
from datetime import datetime, timezone

from tests.factories import VENDOR_ID, make_sold_book


@pytest.fixture
def as_vendor(login_as, vendor_user):
    login_as(vendor_user)
    return vendor_user


class TestDashboardEndpoints:

    def test_metrics(self, client, as_vendor, book_repo):
        book_repo.count_books.return_value = 4
        book_repo.distinct_purchasers.return_value = ["u1", "u2"]
        book_repo.purchased_books.return_value = []

        response = client.get("/api/dashboard/metrics")

        assert response.status_code == 200
        metrics = response.json()["metrics"]
        assert metrics["books"] == {"total": 4, "growth": "0.00"}
        assert metrics["users"] == {"total": 2, "growth": "0.00"}
        assert metrics["revenue"] == {"total": "0.00", "growth": "0.00"}
        assert metrics["avg_order"] == {"value": "0.00", "growth": "0.00"}

    def test_monthly_sales(self, client, as_vendor, book_repo):
        now = datetime.now(timezone.utc)
        book_repo.purchased_books.return_value = [make_sold_book(now, price=30)]

        body = client.get("/api/dashboard/monthly-sales").json()

        assert body["success"] is True
        assert len(body["data"]["monthly_sales"]) == 12
        assert body["data"]["current_month"] == now.month - 1
        assert body["data"]["monthly_sales"][now.month - 1] == 30
        assert book_repo.purchased_books.await_args.args[0] == VENDOR_ID

    def test_monthly_target(self, client, as_vendor, book_repo):
        book_repo.purchased_books.return_value = []
        book_repo.unpurchased_books.return_value = []

        data = client.get("/api/dashboard/monthly-target").json()["data"]

        assert data["target"] == 10000
        assert data["progress_percentage"] == 0
        assert data["revenue_growth"] == 0

    def test_statistics_without_sales(self, client, as_vendor, book_repo):
        book_repo.purchased_books.return_value = []

        data = client.get("/api/dashboard/statistics").json()["data"]

        assert data["has_sales"] is False
        assert len(data["sales"]["actual"]) == 12

    def test_purchase_locations(self, client, as_vendor, book_repo):
        now = datetime.now(timezone.utc)
        book_repo.purchased_with_location.return_value = [
            make_sold_book(now, price=10, country="India", lat_lng=[20.59, 78.96]),
            make_sold_book(now, price=15, country="India", lat_lng=[20.59, 78.96]),
        ]

        data = client.get("/api/dashboard/purchase-locations").json()["data"]

        assert data["has_purchases"] is True
        assert data["locations"] == [{
            "country": "India",
            "lat_lng": [20.59, 78.96],
            "purchase_count": 2,
            "total_revenue": 25.0,
        }]

    def test_recent_orders(self, client, as_vendor, book_repo):
        book = make_sold_book(datetime.now(timezone.utc), price=20)
        book_repo.purchases_page.return_value = ([book], 1)

        data = client.get("/api/dashboard/recent-orders").json()["data"]

        assert [item["id"] for item in data] == [book.id]
        assert data[0]["status"] == "Pending"

    def test_all_orders(self, client, as_vendor, book_repo):
        book_repo.purchases_page.return_value = ([], 21)

        data = client.get("/api/dashboard/all-orders", params={"page": 3, "limit": 10}).json()["data"]

        assert data["pagination"] == {
            "current_page": 3,
            "total_pages": 3,
            "total_orders": 21,
            "limit": 10,
        }
        assert book_repo.purchases_page.await_args.kwargs == {"skip": 20, "limit": 10}

    @pytest.mark.parametrize("path", [
        "metrics", "monthly-sales", "monthly-target", "statistics",
        "purchase-locations", "recent-orders", "all-orders",
    ])
    def test_requires_authentication(self, client, path):
        assert client.get(f"/api/dashboard/{path}").status_code == 401
