"""
Book catalog router.

Provides REST API endpoints for:
- Paginated, searchable catalog listing
- Single book create, read, update and delete
- Bulk CSV import and bulk delete

Reads require authentication; writes require the vendor (or admin) role.
Non-admin callers only ever see and change their own books.
"""

import math
import structlog
from typing import Optional
from fastapi import APIRouter, Body, Depends, File, HTTPException, Query, UploadFile, status

from bookstore_api.config import get_settings
from bookstore_api.dependencies import (
    PaginationParams,
    get_audit_service,
    get_book_repository,
    get_client_ip,
    get_current_user,
    get_import_service,
    get_pagination_params,
    get_user_agent,
    require_vendor,
)
from bookstore_api.models.audit import AuditAction, ResourceType
from bookstore_api.models.auth import CurrentUser, ErrorResponse
from bookstore_api.models.book import (
    Book, BookCreateRequest, BookDeleteResponse, BookListResponse,
    BookUpdateRequest, BulkDeleteRequest, BulkDeleteResponse,
    BulkImportResponse, Pagination,
)
from bookstore_api.repositories.book_repo import BookRepository
from bookstore_api.services.audit_service import AuditService
from bookstore_api.services.csv_import import BookImportService, CsvImportError
from shared.metrics import setup_metrics

logger = structlog.get_logger(__name__)

router = APIRouter(
    prefix="/books",
    tags=["Books"],
    responses={
        401: {"model": ErrorResponse, "description": "Unauthorized"},
        403: {"model": ErrorResponse, "description": "Forbidden"},
        404: {"model": ErrorResponse, "description": "Book not found"}
    }
)

BOOK_NOT_FOUND = "Book not found"
INVALID_BULK_DELETE = "Invalid request. Expected an array of book IDs."


# ============================================================================
# CATALOG
# ============================================================================


@router.get(
    "",
    response_model=BookListResponse,
    summary="List Books",
    description="""
    List books newest first.

    **Query Parameters:**
    - page: 1-based page number (values below 1 are treated as 1)
    - limit: page size, clamped to the configured maximum
    - search: case-insensitive match on title, author, ISBN or category
    """
)
async def list_books(
    search: str = Query("", max_length=200, description="Search text"),
    pagination: PaginationParams = Depends(get_pagination_params),
    current_user: CurrentUser = Depends(get_current_user),
    book_repo: BookRepository = Depends(get_book_repository)
) -> BookListResponse:
    books, total = await book_repo.list_books(
        vendor_id=current_user.vendor_scope(),
        search=search,
        skip=pagination.skip,
        limit=pagination.limit,
    )

    total_pages = math.ceil(total / pagination.limit)
    return BookListResponse(
        books=books,
        pagination=Pagination(
            total=total,
            total_pages=total_pages,
            current_page=pagination.page,
            limit=pagination.limit,
            has_next_page=pagination.page < total_pages,
            has_previous_page=pagination.page > 1,
        ),
    )


@router.post(
    "",
    response_model=Book,
    status_code=status.HTTP_201_CREATED,
    summary="Create Book",
    responses={400: {"model": ErrorResponse, "description": "Missing fields or duplicate ISBN"}}
)
async def create_book(
    book_request: BookCreateRequest,
    current_user: CurrentUser = Depends(require_vendor),
    book_repo: BookRepository = Depends(get_book_repository),
    audit_service: AuditService = Depends(get_audit_service),
    client_ip: str = Depends(get_client_ip),
    user_agent: Optional[str] = Depends(get_user_agent)
) -> Book:
    """
    Create a book owned by the caller.

    Raises:
        HTTPException: 400 on missing fields, negative price or duplicate ISBN
    """
    missing = book_request.missing_fields()
    if missing:
        logger.warning("book_create_missing_fields", fields=missing, user_id=current_user.id)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing required fields")

    if book_request.price < 0:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid price")

    try:
        book = await book_repo.create_book(book_request.model_dump(by_alias=True), current_user.id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    _, bookstore_metrics = setup_metrics()
    bookstore_metrics.books_created.labels(source="form").inc()

    await audit_service.record(
        AuditAction.BOOK_CREATE,
        ResourceType.BOOK,
        user_id=current_user.id,
        resource_id=book.id,
        details={"isbn": book.isbn, "title": book.title},
        ip_address=client_ip,
        user_agent=user_agent,
        status_code=status.HTTP_201_CREATED,
    )

    return book


# ============================================================================
# BULK OPERATIONS
# ============================================================================


@router.post(
    "/bulk",
    response_model=BulkImportResponse,
    summary="Bulk Import Books (CSV)",
    description="""
    Import books from a CSV upload (multipart field ``file``).

    Required columns: title, author, isbn, price, category, description.
    Rows whose ISBN already exists (in the catalog or earlier in the file)
    are skipped. Any invalid row rejects the whole file.

    **Error Responses:**
    - 400: No file, empty or oversized file, missing columns, invalid rows,
      or nothing left to add
    """,
    responses={400: {"description": "Upload rejected"}}
)
async def bulk_import(
    file: Optional[UploadFile] = File(None, description="CSV file"),
    current_user: CurrentUser = Depends(require_vendor),
    import_service: BookImportService = Depends(get_import_service),
    audit_service: AuditService = Depends(get_audit_service),
    client_ip: str = Depends(get_client_ip),
    user_agent: Optional[str] = Depends(get_user_agent)
) -> BulkImportResponse:
    if file is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No file uploaded")

    max_bytes = get_settings().csv_upload_max_bytes
    content = await file.read(max_bytes + 1)
    if len(content) > max_bytes:
        logger.warning("csv_upload_too_large", filename=file.filename, max_bytes=max_bytes)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"File too large. Maximum size is {max_bytes} bytes"
        )

    _, bookstore_metrics = setup_metrics()

    try:
        result, plan = await import_service.import_csv(content, current_user.id)
    except CsvImportError as e:
        if e.details:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={"error": e.message, "details": e.details}
            )
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    bookstore_metrics.csv_import_size.observe(plan.rows_read)
    bookstore_metrics.csv_rows.labels(outcome="added").inc(len(result.added_books))
    bookstore_metrics.csv_rows.labels(outcome="skipped").inc(result.skipped_count)
    bookstore_metrics.books_created.labels(source="csv").inc(len(result.added_books))

    await audit_service.record(
        AuditAction.BOOK_BULK_IMPORT,
        ResourceType.BOOK,
        user_id=current_user.id,
        details={
            "filename": file.filename,
            "added": len(result.added_books),
            "skipped": result.skipped_count,
        },
        ip_address=client_ip,
        user_agent=user_agent,
    )

    return BulkImportResponse(
        message=result.message,
        added_books=result.added_books,
        skipped_count=result.skipped_count,
    )


@router.delete(
    "/bulk-delete",
    response_model=BulkDeleteResponse,
    summary="Bulk Delete Books",
    responses={400: {"model": ErrorResponse, "description": "Invalid request"}}
)
async def bulk_delete(
    delete_request: Optional[BulkDeleteRequest] = Body(None),
    current_user: CurrentUser = Depends(require_vendor),
    book_repo: BookRepository = Depends(get_book_repository),
    audit_service: AuditService = Depends(get_audit_service),
    client_ip: str = Depends(get_client_ip),
    user_agent: Optional[str] = Depends(get_user_agent)
) -> BulkDeleteResponse:
    """
    Delete several of the caller's books.

    Raises:
        HTTPException: 400 when ``ids`` is not a non-empty list, 404 when
            nothing was deleted
    """
    ids = delete_request.ids if delete_request is not None else None
    if not isinstance(ids, list) or not ids or not all(isinstance(i, str) for i in ids):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=INVALID_BULK_DELETE)

    deleted = await book_repo.delete_books(ids, current_user.vendor_scope())
    if deleted == 0:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No books found with the provided IDs."
        )

    _, bookstore_metrics = setup_metrics()
    bookstore_metrics.books_deleted.inc(deleted)

    await audit_service.record(
        AuditAction.BOOK_BULK_DELETE,
        ResourceType.BOOK,
        user_id=current_user.id,
        details={"requested": len(ids), "deleted": deleted},
        ip_address=client_ip,
        user_agent=user_agent,
    )

    return BulkDeleteResponse(
        message=f"Successfully deleted {deleted} book(s).",
        deleted_count=deleted,
    )


# ============================================================================
# SINGLE BOOK
# ============================================================================


@router.get("/{book_id}", response_model=Book, summary="Get Book")
async def get_book(
    book_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    book_repo: BookRepository = Depends(get_book_repository)
) -> Book:
    book = await book_repo.get_book(book_id, current_user.vendor_scope())
    if not book:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=BOOK_NOT_FOUND)
    return book


@router.put(
    "/{book_id}",
    response_model=Book,
    summary="Update Book",
    description="Partial update. Missing or empty fields keep their stored values."
)
async def update_book(
    book_id: str,
    update_request: BookUpdateRequest,
    current_user: CurrentUser = Depends(require_vendor),
    book_repo: BookRepository = Depends(get_book_repository),
    audit_service: AuditService = Depends(get_audit_service),
    client_ip: str = Depends(get_client_ip),
    user_agent: Optional[str] = Depends(get_user_agent)
) -> Book:
    scope = current_user.vendor_scope()
    changes = update_request.changes()

    try:
        if changes:
            book = await book_repo.update_book(book_id, changes, scope)
        else:
            book = await book_repo.get_book(book_id, scope)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    if not book:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=BOOK_NOT_FOUND)

    if changes:
        await audit_service.record(
            AuditAction.BOOK_UPDATE,
            ResourceType.BOOK,
            user_id=current_user.id,
            resource_id=book_id,
            details={"fields": sorted(changes)},
            ip_address=client_ip,
            user_agent=user_agent,
        )

    return book


@router.delete("/{book_id}", response_model=BookDeleteResponse, summary="Delete Book")
async def delete_book(
    book_id: str,
    current_user: CurrentUser = Depends(require_vendor),
    book_repo: BookRepository = Depends(get_book_repository),
    audit_service: AuditService = Depends(get_audit_service),
    client_ip: str = Depends(get_client_ip),
    user_agent: Optional[str] = Depends(get_user_agent)
) -> BookDeleteResponse:
    deleted = await book_repo.delete_book(book_id, current_user.vendor_scope())
    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=BOOK_NOT_FOUND)

    _, bookstore_metrics = setup_metrics()
    bookstore_metrics.books_deleted.inc()

    await audit_service.record(
        AuditAction.BOOK_DELETE,
        ResourceType.BOOK,
        user_id=current_user.id,
        resource_id=book_id,
        ip_address=client_ip,
        user_agent=user_agent,
    )

    return BookDeleteResponse()
