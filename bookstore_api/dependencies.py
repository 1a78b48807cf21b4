"""
FastAPI dependencies: repositories and services per request, the caller's
identity and role guards, client metadata for audit entries, and paging.

Tests replace repositories through ``app.dependency_overrides``; every
service below is built from the overridable repository getters.
"""

from typing import Optional

import structlog
from fastapi import Depends, HTTPException, Query, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pymongo.asynchronous.database import AsyncDatabase

from bookstore_api.config import get_settings
from bookstore_api.database import get_database
from bookstore_api.models.auth import CurrentUser, Role
from bookstore_api.repositories.audit_repo import AuditRepository
from bookstore_api.repositories.book_repo import BookRepository
from bookstore_api.repositories.order_repo import OrderRepository
from bookstore_api.repositories.user_repo import UserRepository
from bookstore_api.services.analytics import DashboardService
from bookstore_api.services.audit_service import AuditService
from bookstore_api.services.auth_service import AuthService
from bookstore_api.services.csv_import import BookImportService
from bookstore_api.services.order_service import OrderService
from bookstore_api.services.profile_service import ProfileService

logger = structlog.get_logger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def get_db() -> AsyncDatabase:
    return get_database()


# -- repositories -------------------------------------------------------------


def get_user_repository(db: AsyncDatabase = Depends(get_db)) -> UserRepository:
    return UserRepository(db)


def get_book_repository(db: AsyncDatabase = Depends(get_db)) -> BookRepository:
    return BookRepository(db)


def get_order_repository(db: AsyncDatabase = Depends(get_db)) -> OrderRepository:
    return OrderRepository(db)


def get_audit_repository(db: AsyncDatabase = Depends(get_db)) -> AuditRepository:
    return AuditRepository(db)


# -- services -------------------------------------------------------------------


def get_auth_service(user_repo: UserRepository = Depends(get_user_repository)) -> AuthService:
    return AuthService(user_repo)


def get_audit_service(audit_repo: AuditRepository = Depends(get_audit_repository)) -> AuditService:
    return AuditService(audit_repo)


def get_dashboard_service(
    book_repo: BookRepository = Depends(get_book_repository),
    user_repo: UserRepository = Depends(get_user_repository)
) -> DashboardService:
    return DashboardService(book_repo, user_repo)


def get_order_service(
    order_repo: OrderRepository = Depends(get_order_repository),
    book_repo: BookRepository = Depends(get_book_repository)
) -> OrderService:
    return OrderService(order_repo, book_repo)


def get_import_service(book_repo: BookRepository = Depends(get_book_repository)) -> BookImportService:
    return BookImportService(book_repo)


def get_profile_service(user_repo: UserRepository = Depends(get_user_repository)) -> ProfileService:
    return ProfileService(user_repo, get_settings().default_avatar)


# -- identity -------------------------------------------------------------------


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)
) -> str:
    """
    Access token from ``Authorization: Bearer`` or, failing that, the
    session cookie set at sign-in.

    Raises:
        HTTPException: 401 when neither carries a token
    """
    if credentials and credentials.credentials:
        return credentials.credentials

    token = request.cookies.get(get_settings().auth_cookie_name)
    if not token:
        raise _unauthorized("Authentication required")
    return token


async def get_current_user(
    token: str = Depends(get_token),
    auth_service: AuthService = Depends(get_auth_service)
) -> CurrentUser:
    """
    The signed-in caller, with the role currently stored for them.

    Also binds ``user_id`` into the request's log context.
    """
    current_user = await auth_service.get_current_user(token)
    if current_user is None:
        raise _unauthorized("Invalid authentication token")

    structlog.contextvars.bind_contextvars(user_id=current_user.id)
    return current_user


def _forbidden(current_user: CurrentUser, detail: str) -> HTTPException:
    logger.warning("access_denied", user_id=current_user.id, role=current_user.role, required=detail)
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


async def require_admin(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if not current_user.is_admin():
        raise _forbidden(current_user, "Admin role required")
    return current_user


async def require_vendor(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    """Catalog writers: vendors and admins."""
    if not current_user.has_any_role([Role.VENDOR, Role.ADMIN]):
        raise _forbidden(current_user, "Vendor or admin role required")
    return current_user


# -- request metadata -------------------------------------------------------------


async def get_client_ip(request: Request) -> str:
    """First hop of ``X-Forwarded-For`` when behind a proxy, else the peer address."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


async def get_user_agent(request: Request) -> Optional[str]:
    return request.headers.get("User-Agent")


# -- paging ---------------------------------------------------------------------


class PaginationParams:
    """1-based page and a page size clamped to ``[1, pagination_max_limit]``."""

    def __init__(self, page: int = 1, limit: Optional[int] = None):
        settings = get_settings()
        if limit is None:
            limit = settings.pagination_default_limit

        self.page = max(page, 1)
        self.limit = min(max(limit, 1), settings.pagination_max_limit)

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


async def get_pagination_params(
    page: int = Query(1, description="1-based page number"),
    limit: Optional[int] = Query(None, description="Page size")
) -> PaginationParams:
    return PaginationParams(page=page, limit=limit)
