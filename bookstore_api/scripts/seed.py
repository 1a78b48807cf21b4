"""MongoDB data seeder for local development.

Creates an admin, a vendor and a customer account, a catalog owned by the
vendor (fixed classics plus Faker-generated titles) and a year of purchase
history so every dashboard widget has data.

Usage:
    python -m bookstore_api.scripts.seed [--drop] [--books N] [--purchases N] [--seed N]
"""

import argparse
import random
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import structlog
from faker import Faker
from passlib.context import CryptContext
from pymongo import MongoClient

from bookstore_api.config import get_settings
from bookstore_api.database import AUDIT_LOGS, BOOKS, ORDERS, USERS
from bookstore_api.models.book import BookStatus
from bookstore_api.models.order import OrderStatus, PaymentMethod, PaymentStatus
from shared.logging import configure_logging

logger = structlog.get_logger(__name__)

SEED_USERS = [
    {
        "firstName": "Admin",
        "lastName": "User",
        "email": "admin@kitabi-keeda.com",
        "password": "Admin@123",
        "role": "admin",
        "bio": "System Administrator",
        "company": "Kitabi Keeda",
        "address": {"street": "123 Main St", "city": "Delhi", "state": "Delhi", "zipCode": "110001", "country": "India"},
    },
    {
        "firstName": "Vera",
        "lastName": "Vendor",
        "email": "vendor@example.com",
        "password": "Vendor@123",
        "role": "vendor",
        "bio": "Book Vendor",
        "company": "Paper Trail Books",
        "address": {"street": "456 Market St", "city": "Delhi", "state": "Delhi", "zipCode": "110001", "country": "India"},
    },
    {
        "firstName": "John",
        "lastName": "Doe",
        "email": "user@example.com",
        "password": "User@123",
        "role": "user",
        "bio": "Book Lover",
        "address": {"street": "789 Park Ave", "city": "Mumbai", "state": "Maharashtra", "zipCode": "400001", "country": "India"},
    },
]

CLASSICS = [
    ("The Great Gatsby", "F. Scott Fitzgerald", "9780743273565", 299, "Fiction", "A classic novel about the American Dream"),
    ("To Kill a Mockingbird", "Harper Lee", "9780061120084", 349, "Fiction", "A novel about racial injustice in the American South"),
    ("Brief History of Time", "Stephen Hawking", "9780553380163", 499, "Science", "A landmark volume in science writing"),
    ("Atomic Habits", "James Clear", "9780735211292", 399, "Self-help", "An easy and proven way to build good habits"),
    ("The Psychology of Money", "Morgan Housel", "9780857197689", 379, "Finance", "Timeless lessons on wealth, greed and happiness"),
]

CATEGORIES = ["Fiction", "Science", "Self-help", "Finance", "History", "Programming", "Poetry"]

# country -> [lat, lng]
LOCATIONS = {
    "India": [20.5937, 78.9629],
    "United States": [37.0902, -95.7129],
    "United Kingdom": [55.3781, -3.4360],
    "Germany": [51.1657, 10.4515],
    "Australia": [-25.2744, 133.7751],
}


def generate_book_document(fake: Faker, vendor_id: Any, now: datetime) -> Dict[str, Any]:
    """Generate a catalog entry with a unique-looking ISBN-13."""
    return {
        "title": fake.catch_phrase(),
        "author": fake.name(),
        "isbn": fake.unique.isbn13(separator=""),
        "price": float(random.randint(99, 999)),
        "description": fake.sentence(nb_words=12),
        "category": random.choice(CATEGORIES),
        "coverImage": f"/images/product/product-0{random.randint(1, 5)}.jpg",
        "vendor": vendor_id,
        "purchasedAt": None,
        "purchasedBy": None,
        "status": BookStatus.AVAILABLE.value,
        "createdAt": fake.date_time_between(start_date=now - timedelta(days=365), end_date=now, tzinfo=timezone.utc),
        "updatedAt": now,
    }


class BookstoreSeeder:
    """Seeds users, books and purchase history into MongoDB."""

    def __init__(self, connection_string: str, database: str, seed: Optional[int] = None) -> None:
        """Initialize the seeder.

        Args:
            connection_string: MongoDB connection string
            database: Database name
            seed: Random seed for reproducible data
        """
        self.client = MongoClient(connection_string, tz_aware=True)
        self.db = self.client[database]
        self.pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

        self.fake = Faker()
        if seed is not None:
            Faker.seed(seed)
            random.seed(seed)

    def drop(self) -> None:
        for name in (USERS, BOOKS, ORDERS, AUDIT_LOGS):
            deleted = self.db[name].delete_many({}).deleted_count
            logger.info("collection_cleared", collection=name, deleted=deleted)

    def seed_users(self, now: datetime) -> Dict[str, Any]:
        """Insert the fixed accounts, skipping emails that already exist.

        Returns:
            Mapping of role to user ``_id``
        """
        ids: Dict[str, Any] = {}
        for user in SEED_USERS:
            existing = self.db[USERS].find_one({"email": user["email"]})
            if existing:
                ids[user["role"]] = existing["_id"]
                continue

            doc = {
                **user,
                "password": self.pwd_context.hash(user["password"]),
                "location": user["address"]["country"],
                "avatar": get_settings().default_avatar,
                "isVerified": True,
                "createdAt": now - timedelta(days=random.randint(40, 365)),
                "updatedAt": now,
            }
            ids[user["role"]] = self.db[USERS].insert_one(doc).inserted_id
            logger.info("user_seeded", email=user["email"], role=user["role"])
        return ids

    def seed_books(self, vendor_id: Any, count: int, now: datetime) -> List[Dict[str, Any]]:
        """Insert the classics plus ``count`` generated books.

        Returns:
            Inserted book documents
        """
        existing = set(self.db[BOOKS].distinct("isbn"))
        docs = []
        for title, author, isbn, price, category, description in CLASSICS:
            if isbn in existing:
                continue
            docs.append({
                "title": title,
                "author": author,
                "isbn": isbn,
                "price": float(price),
                "description": description,
                "category": category,
                "coverImage": get_settings().default_cover_image,
                "vendor": vendor_id,
                "purchasedAt": None,
                "purchasedBy": None,
                "status": BookStatus.AVAILABLE.value,
                "createdAt": now - timedelta(days=random.randint(30, 365)),
                "updatedAt": now,
            })

        for _ in range(count):
            doc = generate_book_document(self.fake, vendor_id, now)
            if doc["isbn"] not in existing:
                docs.append(doc)

        if docs:
            result = self.db[BOOKS].insert_many(docs, ordered=False)
            for doc, inserted_id in zip(docs, result.inserted_ids):
                doc["_id"] = inserted_id

        logger.info("books_seeded", count=len(docs))
        return docs

    def seed_purchases(self, books: List[Dict[str, Any]], buyer_id: Any, count: int, now: datetime) -> int:
        """Mark books as purchased this year and record one order per book.

        Returns:
            Number of purchases recorded
        """
        year_start = datetime(now.year, 1, 1, tzinfo=timezone.utc)
        chosen = random.sample(books, min(count, len(books)))

        for book in chosen:
            purchased_at = self.fake.date_time_between(start_date=year_start, end_date=now, tzinfo=timezone.utc)
            country = random.choice(list(LOCATIONS))
            status = BookStatus.PENDING.value
            if random.random() < 0.1:
                status = BookStatus.CANCELED.value

            self.db[BOOKS].update_one(
                {"_id": book["_id"]},
                {"$set": {
                    "purchasedAt": purchased_at,
                    "purchasedBy": buyer_id,
                    "purchaseLocation": {"country": country, "latLng": LOCATIONS[country]},
                    "status": status,
                    "updatedAt": purchased_at,
                }},
            )

            order_status = OrderStatus.CANCELLED.value if status == BookStatus.CANCELED.value else OrderStatus.PENDING.value
            history = [{"status": OrderStatus.PENDING.value, "timestamp": purchased_at, "note": "Order placed"}]
            if order_status == OrderStatus.CANCELLED.value:
                history.append({"status": order_status, "timestamp": purchased_at, "note": "Cancelled by customer"})

            self.db[ORDERS].insert_one({
                "user": buyer_id,
                "books": [{"book": book["_id"], "quantity": 1, "price": book["price"]}],
                "totalAmount": book["price"],
                "shippingAddress": {
                    "street": self.fake.street_address(),
                    "city": self.fake.city(),
                    "state": self.fake.state(),
                    "zipCode": self.fake.postcode(),
                    "country": country,
                },
                "paymentMethod": random.choice(list(PaymentMethod)).value,
                "paymentDetails": {"status": PaymentStatus.COMPLETED.value, "paidAt": purchased_at},
                "status": order_status,
                "statusHistory": history,
                "createdAt": purchased_at,
                "updatedAt": purchased_at,
            })

        logger.info("purchases_seeded", count=len(chosen))
        return len(chosen)

    def close(self) -> None:
        """Close MongoDB connection."""
        self.client.close()

    def __enter__(self) -> "BookstoreSeeder":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Seed the bookstore database")
    parser.add_argument("--drop", action="store_true", help="Delete existing users, books, orders and audit logs first")
    parser.add_argument("--books", type=int, default=40, help="Number of generated books (default: 40)")
    parser.add_argument("--purchases", type=int, default=25, help="Number of purchased books (default: 25)")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for reproducible data")
    args = parser.parse_args(argv)

    settings = get_settings()
    configure_logging(
        log_level=settings.log_level,
        json_logs=settings.log_format == "json",
        service_name="bookstore-seed",
        environment=settings.environment,
    )

    now = datetime.now(timezone.utc)
    with BookstoreSeeder(settings.mongodb_url, settings.mongodb_database, seed=args.seed) as seeder:
        if args.drop:
            seeder.drop()
        users = seeder.seed_users(now)
        books = seeder.seed_books(users["vendor"], args.books, now)
        seeder.seed_purchases(books, users["user"], args.purchases, now)

    logger.info("seed_completed", database=settings.mongodb_database)


if __name__ == "__main__":
    main()
