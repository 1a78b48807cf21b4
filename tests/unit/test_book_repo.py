"""
Unit tests for book repository write paths that need no running MongoDB.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from bson import ObjectId
from pymongo.errors import BulkWriteError

from bookstore_api.repositories.book_repo import BookRepository
from tests.factories import VENDOR_ID


def row(isbn: str):
    return {"title": f"Book {isbn}", "author": "Author", "isbn": isbn, "price": 10.0, "category": "Fiction"}


@pytest.fixture
def collection():
    return AsyncMock()


@pytest.fixture
def repo(collection):
    db = MagicMock()
    db.__getitem__.return_value = collection
    return BookRepository(db)


class TestCreateBooks:

    async def test_conflict_removes_rows_inserted_before_it(self, repo, collection):
        async def insert_many(docs, ordered):
            for doc in docs:
                doc["_id"] = ObjectId()
            raise BulkWriteError({
                "nInserted": 1,
                "writeErrors": [{"index": 1, "code": 11000, "errmsg": "duplicate key"}],
            })

        collection.insert_many.side_effect = insert_many

        with pytest.raises(ValueError, match="ISBN 111"):
            await repo.create_books([row("222"), row("111")], VENDOR_ID)

        deleted = collection.delete_many.await_args.args[0]["_id"]["$in"]
        assert len(deleted) == 1
        inserted_docs = collection.insert_many.await_args.args[0]
        assert deleted == [inserted_docs[0]["_id"]]

    async def test_conflict_on_first_row_deletes_nothing(self, repo, collection):
        collection.insert_many.side_effect = BulkWriteError({
            "nInserted": 0,
            "writeErrors": [{"index": 0, "code": 11000, "errmsg": "duplicate key"}],
        })

        with pytest.raises(ValueError):
            await repo.create_books([row("111")], VENDOR_ID)

        collection.delete_many.assert_not_called()
