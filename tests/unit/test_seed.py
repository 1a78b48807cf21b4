"""
Unit tests for the seed data generators.
"""

from datetime import datetime, timedelta, timezone

from bson import ObjectId
from faker import Faker

from bookstore_api.models.book import Book, BookStatus
from bookstore_api.scripts.seed import CATEGORIES, LOCATIONS, SEED_USERS, generate_book_document
from tests.factories import NOW


def test_generated_book_is_a_valid_available_book():
    fake = Faker()
    fake.seed_instance(7)
    vendor = ObjectId()

    doc = generate_book_document(fake, vendor, NOW)
    book = Book.from_document({"_id": ObjectId(), **doc})

    assert len(book.isbn) == 13
    assert book.isbn.isdigit()
    assert book.category in CATEGORIES
    assert book.vendor == str(vendor)
    assert book.status == BookStatus.AVAILABLE
    assert book.purchased_at is None
    assert doc["createdAt"] <= NOW
    assert doc["createdAt"].tzinfo is not None


def test_creation_date_falls_in_the_year_before_now():
    fake = Faker()
    now = datetime(2020, 3, 1, tzinfo=timezone.utc)

    for seed in range(20):
        fake.seed_instance(seed)
        created = generate_book_document(fake, ObjectId(), now)["createdAt"]

        assert now - timedelta(days=365) <= created <= now


def test_generated_isbns_are_unique():
    fake = Faker()

    isbns = {generate_book_document(fake, ObjectId(), NOW)["isbn"] for _ in range(50)}

    assert len(isbns) == 50


def test_seed_accounts_cover_every_role():
    assert {user["role"] for user in SEED_USERS} == {"admin", "vendor", "user"}


def test_locations_have_coordinate_pairs():
    assert all(len(lat_lng) == 2 for lat_lng in LOCATIONS.values())
