"""
User repository for database operations.

Provides async CRUD operations for users using pymongo's async API.
Email uniqueness is enforced by the ``uniq_users_email`` index.
"""

import structlog
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pymongo import ReturnDocument
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import DuplicateKeyError

from bookstore_api.config import get_settings
from bookstore_api.database import USERS, parse_object_id
from bookstore_api.models.auth import Role, UserDB

logger = structlog.get_logger(__name__)


class UserRepository:
    """Repository for user database operations."""

    def __init__(self, db: AsyncDatabase):
        """
        Initialize user repository.

        Args:
            db: MongoDB database handle
        """
        self.collection = db[USERS]
        self.settings = get_settings()

    async def create_user(
        self,
        first_name: str,
        last_name: str,
        email: str,
        password_hash: str,
        role: str = Role.USER.value
    ) -> UserDB:
        """
        Create a new user.

        Args:
            first_name: First name
            last_name: Last name
            email: Email address (already lowercased)
            password_hash: Hashed password
            role: Role name

        Returns:
            Created user

        Raises:
            ValueError: If the email already exists
        """
        now = datetime.now(timezone.utc)
        doc = {
            "firstName": first_name.strip(),
            "lastName": last_name.strip(),
            "email": email.strip().lower(),
            "password": password_hash,
            "role": role,
            "avatar": self.settings.default_avatar,
            "isVerified": False,
            "createdAt": now,
            "updatedAt": now,
        }

        try:
            result = await self.collection.insert_one(doc)
            doc["_id"] = result.inserted_id

            logger.info("user_created", user_id=str(result.inserted_id), email=doc["email"], role=role)
            return UserDB.from_document(doc)

        except DuplicateKeyError:
            logger.warning("email_already_exists", email=doc["email"])
            raise ValueError(f"Email '{doc['email']}' already exists")
        except Exception as e:
            logger.error("user_create_failed", error=str(e), email=email)
            raise

    async def get_user_by_id(self, user_id: str) -> Optional[UserDB]:
        """
        Get user by ID.

        Args:
            user_id: User ID (ObjectId hex)

        Returns:
            User or None if not found or the ID is malformed
        """
        oid = parse_object_id(user_id)
        if oid is None:
            logger.debug("user_id_malformed", user_id=user_id)
            return None

        try:
            doc = await self.collection.find_one({"_id": oid})
            if not doc:
                logger.debug("user_not_found", user_id=user_id)
                return None
            return UserDB.from_document(doc)

        except Exception as e:
            logger.error("user_get_by_id_failed", error=str(e), user_id=user_id)
            raise

    async def get_user_by_email(self, email: str) -> Optional[UserDB]:
        """
        Get user by email.

        Args:
            email: Email address

        Returns:
            User or None if not found
        """
        try:
            doc = await self.collection.find_one({"email": email.strip().lower()})
            if not doc:
                logger.debug("user_not_found", email=email)
                return None
            return UserDB.from_document(doc)

        except Exception as e:
            logger.error("user_get_by_email_failed", error=str(e), email=email)
            raise

    async def update_user(self, user_id: str, fields: Dict[str, Any]) -> Optional[UserDB]:
        """
        Set document fields on a user.

        Args:
            user_id: User ID
            fields: Document fields to set (camelCase keys)

        Returns:
            Updated user or None if not found
        """
        oid = parse_object_id(user_id)
        if oid is None:
            return None

        try:
            doc = await self.collection.find_one_and_update(
                {"_id": oid},
                {"$set": {**fields, "updatedAt": datetime.now(timezone.utc)}},
                return_document=ReturnDocument.AFTER,
            )
            if not doc:
                logger.warning("user_update_not_found", user_id=user_id)
                return None

            logger.info("user_updated", user_id=user_id, fields=sorted(fields))
            return UserDB.from_document(doc)

        except Exception as e:
            logger.error("user_update_failed", error=str(e), user_id=user_id)
            raise

    async def count_users(self, role: str, created_before: Optional[datetime] = None) -> int:
        """
        Count users with a role.

        Args:
            role: Role name
            created_before: Only count users created strictly before this time

        Returns:
            Number of matching users
        """
        query: Dict[str, Any] = {"role": role}
        if created_before is not None:
            query["createdAt"] = {"$lt": created_before}

        try:
            return await self.collection.count_documents(query)
        except Exception as e:
            logger.error("user_count_failed", error=str(e), role=role)
            raise
