"""
Shared pytest fixtures.

Settings are pinned through environment variables before the application
is imported: cheap bcrypt rounds, no rate limiting and a fixed JWT secret.
API tests run the real FastAPI app with repositories replaced by
``AsyncMock`` doubles through ``app.dependency_overrides``; the lifespan
(and therefore MongoDB) never starts.
"""

import os

os.environ.setdefault("BOOKSTORE_API_PASSWORD_BCRYPT_ROUNDS", "4")
os.environ.setdefault("BOOKSTORE_API_RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("BOOKSTORE_API_JWT_SECRET_KEY", "test-secret-key-for-pytest-only-0123456789")
os.environ.setdefault("BOOKSTORE_API_LOG_LEVEL", "WARNING")

import pytest
from typing import Callable
from unittest.mock import AsyncMock

from fastapi.testclient import TestClient

from bookstore_api.config import clear_settings_cache
from bookstore_api.models.auth import CurrentUser, Role
from bookstore_api.repositories.audit_repo import AuditRepository
from bookstore_api.repositories.book_repo import BookRepository
from bookstore_api.repositories.order_repo import OrderRepository
from bookstore_api.repositories.user_repo import UserRepository

from tests.factories import ADMIN_ID, CUSTOMER_ID, VENDOR_ID

clear_settings_cache()


# ============================================================================
# USERS
# ============================================================================


@pytest.fixture
def admin_user() -> CurrentUser:
    return CurrentUser(id=ADMIN_ID, email="admin@kitabi-keeda.com", role=Role.ADMIN.value)


@pytest.fixture
def vendor_user() -> CurrentUser:
    return CurrentUser(id=VENDOR_ID, email="vendor@example.com", role=Role.VENDOR.value)


@pytest.fixture
def customer_user() -> CurrentUser:
    return CurrentUser(id=CUSTOMER_ID, email="user@example.com", role=Role.USER.value)


# ============================================================================
# REPOSITORY DOUBLES
# ============================================================================


@pytest.fixture
def user_repo() -> AsyncMock:
    return AsyncMock(spec=UserRepository)


@pytest.fixture
def book_repo() -> AsyncMock:
    return AsyncMock(spec=BookRepository)


@pytest.fixture
def order_repo() -> AsyncMock:
    return AsyncMock(spec=OrderRepository)


@pytest.fixture
def audit_repo() -> AsyncMock:
    return AsyncMock(spec=AuditRepository)


# ============================================================================
# APPLICATION
# ============================================================================


@pytest.fixture
def app(user_repo, book_repo, order_repo, audit_repo):
    """The FastAPI app with every repository swapped for a double."""
    from bookstore_api import dependencies
    from bookstore_api.main import app as fastapi_app

    fastapi_app.dependency_overrides[dependencies.get_user_repository] = lambda: user_repo
    fastapi_app.dependency_overrides[dependencies.get_book_repository] = lambda: book_repo
    fastapi_app.dependency_overrides[dependencies.get_order_repository] = lambda: order_repo
    fastapi_app.dependency_overrides[dependencies.get_audit_repository] = lambda: audit_repo

    yield fastapi_app

    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture
def login_as(app) -> Callable[[CurrentUser], None]:
    """Bypass token checks and make every request come from ``user``."""
    from bookstore_api.dependencies import get_current_user

    def _login(user: CurrentUser) -> None:
        app.dependency_overrides[get_current_user] = lambda: user

    return _login
