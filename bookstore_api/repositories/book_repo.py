"""
Book repository for catalog and purchase queries.

Every read and write takes an optional ``vendor_id``: ``None`` means the
caller is an admin and sees the whole catalog, otherwise queries are
restricted to books whose ``vendor`` is that user. ISBN uniqueness is
global and enforced by the ``uniq_books_isbn`` index.
"""

import re
import structlog
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from pymongo import DESCENDING, ReturnDocument
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import BulkWriteError, DuplicateKeyError

from bookstore_api.config import get_settings
from bookstore_api.database import BOOKS, parse_object_id
from bookstore_api.models.book import Book, BookStatus, PurchaseLocation

logger = structlog.get_logger(__name__)

SEARCH_FIELDS = ("title", "author", "isbn", "category")


def duplicate_isbn_message(isbn: str) -> str:
    return f"A book with ISBN {isbn} already exists in the database"


def stored_time(value: datetime) -> datetime:
    """Truncate to the millisecond precision BSON dates keep."""
    return value.replace(microsecond=value.microsecond // 1000 * 1000)


class BookRepository:
    """Repository for book database operations."""

    def __init__(self, db: AsyncDatabase):
        """
        Initialize book repository.

        Args:
            db: MongoDB database handle
        """
        self.collection = db[BOOKS]
        self.settings = get_settings()

    # ========================================================================
    # Query helpers
    # ========================================================================

    @staticmethod
    def _scope(vendor_id: Optional[str]) -> Dict[str, Any]:
        if vendor_id is None:
            return {}
        return {"vendor": parse_object_id(vendor_id)}

    @staticmethod
    def _purchased(start: Optional[datetime] = None, end: Optional[datetime] = None) -> Dict[str, Any]:
        window: Dict[str, Any] = {"$ne": None}
        if start is not None:
            window["$gte"] = start
        if end is not None:
            window["$lt"] = end
        return {"purchasedAt": window}

    def _new_document(self, data: Dict[str, Any], vendor_id: str, now: datetime) -> Dict[str, Any]:
        return {
            "title": data["title"].strip(),
            "author": data["author"].strip(),
            "isbn": data["isbn"].strip(),
            "price": float(data["price"]),
            "description": (data.get("description") or "").strip(),
            "category": data["category"].strip(),
            "coverImage": data.get("coverImage") or self.settings.default_cover_image,
            "vendor": parse_object_id(vendor_id),
            "purchasedAt": None,
            "purchasedBy": None,
            "status": BookStatus.AVAILABLE.value,
            "createdAt": now,
            "updatedAt": now,
        }

    # ========================================================================
    # CRUD
    # ========================================================================

    async def create_book(self, data: Dict[str, Any], vendor_id: str) -> Book:
        """
        Create a book owned by a vendor.

        Args:
            data: Book fields (title, author, isbn, price, category,
                optional description and coverImage)
            vendor_id: Owning vendor ID

        Returns:
            Created book

        Raises:
            ValueError: If the ISBN already exists
        """
        doc = self._new_document(data, vendor_id, datetime.now(timezone.utc))

        try:
            result = await self.collection.insert_one(doc)
            doc["_id"] = result.inserted_id

            logger.info("book_created", book_id=str(result.inserted_id), isbn=doc["isbn"], vendor_id=vendor_id)
            return Book.from_document(doc)

        except DuplicateKeyError:
            logger.warning("isbn_already_exists", isbn=doc["isbn"])
            raise ValueError(duplicate_isbn_message(doc["isbn"]))
        except Exception as e:
            logger.error("book_create_failed", error=str(e), isbn=doc["isbn"])
            raise

    async def create_books(self, rows: List[Dict[str, Any]], vendor_id: str) -> List[Book]:
        """
        Insert several books in one round trip.

        Args:
            rows: Validated book fields, one dict per book
            vendor_id: Owning vendor ID

        Returns:
            Created books in input order

        Raises:
            ValueError: If an ISBN already exists (nothing is inserted)
        """
        if not rows:
            return []

        now = datetime.now(timezone.utc)
        docs = [self._new_document(row, vendor_id, now) for row in rows]

        try:
            result = await self.collection.insert_many(docs, ordered=True)
            for doc, inserted_id in zip(docs, result.inserted_ids):
                doc["_id"] = inserted_id

            logger.info("books_created", count=len(docs), vendor_id=vendor_id)
            return [Book.from_document(doc) for doc in docs]

        except BulkWriteError as e:
            # Ordered inserts stop at the first error; undo the rows before it.
            inserted = e.details.get("nInserted", 0)
            if inserted:
                await self.collection.delete_many({"_id": {"$in": [doc["_id"] for doc in docs[:inserted]]}})

            write_errors = e.details.get("writeErrors", [])
            if write_errors and write_errors[0].get("code") == 11000:
                isbn = docs[write_errors[0]["index"]]["isbn"]
                logger.warning("bulk_isbn_conflict", isbn=isbn, rolled_back=inserted)
                raise ValueError(duplicate_isbn_message(isbn))
            logger.error("books_create_failed", error=str(e))
            raise
        except Exception as e:
            logger.error("books_create_failed", error=str(e))
            raise

    async def get_book(self, book_id: str, vendor_id: Optional[str] = None) -> Optional[Book]:
        """
        Get a book by ID within the caller's scope.

        Args:
            book_id: Book ID
            vendor_id: Vendor scope (None for all)

        Returns:
            Book or None if missing, out of scope or the ID is malformed
        """
        oid = parse_object_id(book_id)
        if oid is None:
            return None

        try:
            doc = await self.collection.find_one({"_id": oid, **self._scope(vendor_id)})
            return Book.from_document(doc) if doc else None
        except Exception as e:
            logger.error("book_get_failed", error=str(e), book_id=book_id)
            raise

    async def get_books(self, book_ids: Iterable[str]) -> List[Book]:
        """
        Get books by ID regardless of vendor. Malformed IDs are ignored.
        """
        oids = [oid for oid in (parse_object_id(b) for b in book_ids) if oid is not None]
        if not oids:
            return []

        try:
            cursor = self.collection.find({"_id": {"$in": oids}})
            return [Book.from_document(doc) for doc in await cursor.to_list()]
        except Exception as e:
            logger.error("books_get_failed", error=str(e), count=len(oids))
            raise

    async def list_books(
        self,
        vendor_id: Optional[str] = None,
        search: str = "",
        skip: int = 0,
        limit: int = 10
    ) -> Tuple[List[Book], int]:
        """
        List books with optional case-insensitive search.

        Args:
            vendor_id: Vendor scope (None for all)
            search: Substring matched against title, author, isbn and category
            skip: Number of books to skip
            limit: Page size

        Returns:
            Tuple of (books on the page, total matching books)
        """
        query = self._scope(vendor_id)
        if search:
            pattern = re.escape(search.strip())
            query["$or"] = [{field: {"$regex": pattern, "$options": "i"}} for field in SEARCH_FIELDS]

        try:
            total = await self.collection.count_documents(query)
            cursor = (
                self.collection.find(query)
                .sort([("createdAt", DESCENDING), ("_id", DESCENDING)])
                .skip(skip)
                .limit(limit)
            )
            books = [Book.from_document(doc) for doc in await cursor.to_list()]

            logger.debug("books_listed", total=total, returned=len(books), search=search or None)
            return books, total

        except Exception as e:
            logger.error("books_list_failed", error=str(e))
            raise

    async def count_books(self, vendor_id: Optional[str] = None, created_before: Optional[datetime] = None) -> int:
        query = self._scope(vendor_id)
        if created_before is not None:
            query["createdAt"] = {"$lt": created_before}

        try:
            return await self.collection.count_documents(query)
        except Exception as e:
            logger.error("books_count_failed", error=str(e))
            raise

    async def update_book(
        self,
        book_id: str,
        changes: Dict[str, Any],
        vendor_id: Optional[str] = None
    ) -> Optional[Book]:
        """
        Apply a partial update.

        Args:
            book_id: Book ID
            changes: Document fields to set (camelCase keys)
            vendor_id: Vendor scope (None for all)

        Returns:
            Updated book or None if not found

        Raises:
            ValueError: If the new ISBN belongs to another book
        """
        oid = parse_object_id(book_id)
        if oid is None:
            return None

        try:
            doc = await self.collection.find_one_and_update(
                {"_id": oid, **self._scope(vendor_id)},
                {"$set": {**changes, "updatedAt": datetime.now(timezone.utc)}},
                return_document=ReturnDocument.AFTER,
            )
            if not doc:
                logger.warning("book_update_not_found", book_id=book_id)
                return None

            logger.info("book_updated", book_id=book_id, fields=sorted(changes))
            return Book.from_document(doc)

        except DuplicateKeyError:
            logger.warning("isbn_already_exists", isbn=changes.get("isbn"))
            raise ValueError(duplicate_isbn_message(changes.get("isbn", "")))
        except Exception as e:
            logger.error("book_update_failed", error=str(e), book_id=book_id)
            raise

    async def delete_book(self, book_id: str, vendor_id: Optional[str] = None) -> bool:
        """
        Delete one book.

        Returns:
            True if deleted, False if not found
        """
        oid = parse_object_id(book_id)
        if oid is None:
            return False

        try:
            result = await self.collection.delete_one({"_id": oid, **self._scope(vendor_id)})
            if result.deleted_count:
                logger.info("book_deleted", book_id=book_id)
                return True
            return False
        except Exception as e:
            logger.error("book_delete_failed", error=str(e), book_id=book_id)
            raise

    async def delete_books(self, book_ids: Iterable[str], vendor_id: Optional[str] = None) -> int:
        """
        Delete several books. Malformed IDs are ignored.

        Returns:
            Number of deleted books
        """
        oids = [oid for oid in (parse_object_id(b) for b in book_ids) if oid is not None]
        if not oids:
            return 0

        try:
            result = await self.collection.delete_many({"_id": {"$in": oids}, **self._scope(vendor_id)})
            logger.info("books_deleted", requested=len(oids), deleted=result.deleted_count)
            return result.deleted_count
        except Exception as e:
            logger.error("books_delete_failed", error=str(e))
            raise

    async def existing_isbns(self, isbns: Iterable[str]) -> Set[str]:
        """
        Return the subset of ISBNs already present in the catalog.
        """
        wanted = list({isbn for isbn in isbns if isbn})
        if not wanted:
            return set()

        try:
            found = await self.collection.distinct("isbn", {"isbn": {"$in": wanted}})
            return set(found)
        except Exception as e:
            logger.error("isbn_lookup_failed", error=str(e), count=len(wanted))
            raise

    # ========================================================================
    # Purchases
    # ========================================================================

    async def purchased_books(
        self,
        vendor_id: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None
    ) -> List[Book]:
        """
        Books purchased in ``[start, end)``; either bound may be open.
        """
        query = {**self._scope(vendor_id), **self._purchased(start, end)}

        try:
            cursor = self.collection.find(query)
            return [Book.from_document(doc) for doc in await cursor.to_list()]
        except Exception as e:
            logger.error("purchased_books_failed", error=str(e))
            raise

    async def unpurchased_books(self, vendor_id: Optional[str] = None) -> List[Book]:
        query = {**self._scope(vendor_id), "purchasedAt": None}

        try:
            cursor = self.collection.find(query)
            return [Book.from_document(doc) for doc in await cursor.to_list()]
        except Exception as e:
            logger.error("unpurchased_books_failed", error=str(e))
            raise

    async def distinct_purchasers(self, vendor_id: Optional[str] = None) -> List[str]:
        query = {
            **self._scope(vendor_id),
            **self._purchased(),
            "purchasedBy": {"$ne": None},
        }

        try:
            buyers = await self.collection.distinct("purchasedBy", query)
            return [str(buyer) for buyer in buyers]
        except Exception as e:
            logger.error("distinct_purchasers_failed", error=str(e))
            raise

    async def purchased_with_location(self, vendor_id: Optional[str] = None) -> List[Book]:
        query = {
            **self._scope(vendor_id),
            **self._purchased(),
            "purchaseLocation.country": {"$exists": True, "$nin": [None, ""]},
        }

        try:
            cursor = self.collection.find(query).sort("purchasedAt", DESCENDING)
            return [Book.from_document(doc) for doc in await cursor.to_list()]
        except Exception as e:
            logger.error("purchase_locations_failed", error=str(e))
            raise

    async def purchases_page(
        self,
        vendor_id: Optional[str] = None,
        skip: int = 0,
        limit: int = 10
    ) -> Tuple[List[Book], int]:
        """
        Purchased books, newest purchase first.

        Returns:
            Tuple of (books on the page, total purchased books)
        """
        query = {**self._scope(vendor_id), **self._purchased()}

        try:
            total = await self.collection.count_documents(query)
            cursor = (
                self.collection.find(query)
                .sort([("purchasedAt", DESCENDING), ("_id", DESCENDING)])
                .skip(skip)
                .limit(limit)
            )
            return [Book.from_document(doc) for doc in await cursor.to_list()], total
        except Exception as e:
            logger.error("purchases_page_failed", error=str(e))
            raise

    async def mark_purchased(
        self,
        book_ids: Iterable[str],
        buyer_id: str,
        purchased_at: datetime,
        location: Optional[PurchaseLocation] = None
    ) -> int:
        """
        Record a sale on books that are still available.

        Returns:
            Number of books updated
        """
        oids = [oid for oid in (parse_object_id(b) for b in book_ids) if oid is not None]
        purchased_at = stored_time(purchased_at)
        fields: Dict[str, Any] = {
            "purchasedAt": purchased_at,
            "purchasedBy": parse_object_id(buyer_id),
            "status": BookStatus.PENDING.value,
            "updatedAt": purchased_at,
        }
        if location is not None:
            fields["purchaseLocation"] = location.to_document()

        try:
            result = await self.collection.update_many(
                {"_id": {"$in": oids}, "status": BookStatus.AVAILABLE.value},
                {"$set": fields},
            )
            logger.info("books_marked_purchased", buyer_id=buyer_id, count=result.modified_count)
            return result.modified_count
        except Exception as e:
            logger.error("mark_purchased_failed", error=str(e), buyer_id=buyer_id)
            raise

    async def release_purchase(self, book_ids: Iterable[str], buyer_id: str, purchased_at: datetime) -> int:
        """
        Undo ``mark_purchased`` for books this buyer marked at ``purchased_at``.

        Returns:
            Number of books made available again
        """
        oids = [oid for oid in (parse_object_id(b) for b in book_ids) if oid is not None]

        try:
            result = await self.collection.update_many(
                {"_id": {"$in": oids}, "purchasedBy": parse_object_id(buyer_id), "purchasedAt": stored_time(purchased_at)},
                {
                    "$set": {
                        "purchasedAt": None,
                        "purchasedBy": None,
                        "status": BookStatus.AVAILABLE.value,
                        "updatedAt": datetime.now(timezone.utc),
                    },
                    "$unset": {"purchaseLocation": ""},
                },
            )
            logger.warning("book_purchase_released", buyer_id=buyer_id, count=result.modified_count)
            return result.modified_count
        except Exception as e:
            logger.error("release_purchase_failed", error=str(e), buyer_id=buyer_id)
            raise

    async def set_status(self, book_ids: Iterable[str], status: BookStatus) -> int:
        oids = [oid for oid in (parse_object_id(b) for b in book_ids) if oid is not None]

        try:
            result = await self.collection.update_many(
                {"_id": {"$in": oids}},
                {"$set": {"status": status.value, "updatedAt": datetime.now(timezone.utc)}},
            )
            logger.info("book_status_set", status=status.value, count=result.modified_count)
            return result.modified_count
        except Exception as e:
            logger.error("book_status_set_failed", error=str(e), status=status.value)
            raise
