"""
Bulk catalog import from CSV.

Rules:
- The header row is trimmed and lowercased; ``title, author, isbn, price,
  category, description`` must all be present (any order, extra columns
  ignored).
- Blank lines are skipped. Row numbers are 1-based file rows, so the
  first data row is row 2.
- A row with an empty title, author, isbn, price or category fails with
  "Missing required fields"; a non-numeric or negative price fails with
  "Invalid price".
- An ISBN already in the catalog, or seen earlier in the same file, is
  skipped as a duplicate rather than treated as an error.
- Any row error rejects the whole file; nothing is inserted.

Parsing and validation are pure functions over text; ``BookImportService``
adds the catalog lookups and the insert.
"""

import csv
import io
import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set, Tuple

import structlog

from bookstore_api.models.book import Book
from bookstore_api.repositories.book_repo import BookRepository

logger = structlog.get_logger(__name__)

REQUIRED_COLUMNS = ("title", "author", "isbn", "price", "category", "description")
REQUIRED_VALUES = ("title", "author", "isbn", "price", "category")

MISSING_FIELDS = "Missing required fields"
INVALID_PRICE = "Invalid price"


class CsvImportError(ValueError):
    """The upload was rejected. ``details`` carries per-row errors when present."""

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details


@dataclass
class RowError:
    row: int
    error: str


@dataclass
class SkippedDuplicate:
    row: int
    isbn: str


@dataclass
class ImportPlan:
    """Outcome of validating every data row."""
    books: List[Dict[str, object]] = field(default_factory=list)
    errors: List[RowError] = field(default_factory=list)
    skipped: List[SkippedDuplicate] = field(default_factory=list)
    rows_read: int = 0


@dataclass
class ImportResult:
    message: str
    added_books: List[Book]
    skipped_count: int


# ============================================================================
# Parsing
# ============================================================================


def decode_upload(content: bytes) -> str:
    """Decode an uploaded file, tolerating a UTF-8 byte order mark."""
    try:
        return content.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise CsvImportError("File must be a UTF-8 encoded CSV")


def read_rows(text: str) -> Tuple[List[str], List[Tuple[int, Dict[str, str]]]]:
    """
    Split CSV text into a normalized header and numbered data rows.

    Args:
        text: CSV document

    Returns:
        Tuple of (headers, [(row_number, {header: trimmed value})])

    Raises:
        CsvImportError: If the file is empty or required columns are missing
    """
    reader = csv.reader(io.StringIO(text))
    try:
        raw_headers = next(reader)
    except StopIteration:
        raise CsvImportError("The uploaded file is empty")
    except csv.Error as e:
        raise CsvImportError(f"Could not parse CSV: {e}")

    headers = [h.strip().lower() for h in raw_headers]
    missing = [column for column in REQUIRED_COLUMNS if column not in headers]
    if missing:
        raise CsvImportError(f"Missing required columns: {', '.join(missing)}")

    rows: List[Tuple[int, Dict[str, str]]] = []
    try:
        for row_number, values in enumerate(reader, start=2):
            if not any(value.strip() for value in values):
                continue
            record = {}
            for index, header in enumerate(headers):
                if header not in record:
                    record[header] = values[index].strip() if index < len(values) else ""
            rows.append((row_number, record))
    except csv.Error as e:
        raise CsvImportError(f"Could not parse CSV: {e}")

    return headers, rows


def parse_price(value: str) -> Optional[float]:
    """Parse a non-negative finite price, or return None."""
    try:
        price = float(value)
    except ValueError:
        return None
    if not math.isfinite(price) or price < 0:
        return None
    return price


def plan_import(rows: Iterable[Tuple[int, Dict[str, str]]], existing_isbns: Set[str]) -> ImportPlan:
    """
    Validate rows and pick the books to insert.

    Args:
        rows: Numbered rows from ``read_rows``
        existing_isbns: ISBNs already present in the catalog

    Returns:
        ImportPlan with accepted books, row errors and skipped duplicates
    """
    plan = ImportPlan()
    seen: Set[str] = set()

    for row_number, record in rows:
        plan.rows_read += 1

        if any(not record.get(name) for name in REQUIRED_VALUES):
            plan.errors.append(RowError(row_number, MISSING_FIELDS))
            continue

        price = parse_price(record["price"])
        if price is None:
            plan.errors.append(RowError(row_number, INVALID_PRICE))
            continue

        isbn = record["isbn"]
        if isbn in existing_isbns or isbn in seen:
            plan.skipped.append(SkippedDuplicate(row_number, isbn))
            continue
        seen.add(isbn)

        plan.books.append({
            "title": record["title"],
            "author": record["author"],
            "isbn": isbn,
            "price": price,
            "description": record.get("description", ""),
            "category": record["category"],
        })

    return plan


# ============================================================================
# Messages
# ============================================================================


def format_row_errors(errors: List[RowError]) -> str:
    lines = ["Validation errors:"]
    lines.extend(f"Row {e.row}: {e.error}" for e in errors)
    return "\n".join(lines)


def _skipped_lines(skipped: List[SkippedDuplicate]) -> List[str]:
    return [f"Row {s.row}: ISBN {s.isbn} already exists" for s in skipped]


def nothing_added_message(skipped: List[SkippedDuplicate]) -> str:
    lines = ["No books were added."]
    if skipped:
        lines.append("Skipped duplicate books:")
        lines.extend(_skipped_lines(skipped))
    return "\n".join(lines)


def success_message(added: int, skipped: List[SkippedDuplicate]) -> str:
    lines = [f"Successfully added {added} new book(s)"]
    if skipped:
        lines.append(f"Skipped {len(skipped)} duplicate book(s):")
        lines.extend(_skipped_lines(skipped))
    return "\n".join(lines)


# ============================================================================
# Service
# ============================================================================


class BookImportService:
    """Runs a CSV upload against the catalog."""

    def __init__(self, book_repo: BookRepository):
        self.book_repo = book_repo

    async def import_csv(self, content: bytes, vendor_id: str) -> Tuple[ImportResult, ImportPlan]:
        """
        Validate and insert the books in a CSV upload.

        Args:
            content: Raw file bytes
            vendor_id: Vendor that will own the new books

        Returns:
            Tuple of (result for the response, validation plan)

        Raises:
            CsvImportError: On header, row or "nothing to add" failures
            ValueError: If an ISBN was taken between validation and insert
        """
        _, rows = read_rows(decode_upload(content))
        existing = await self.book_repo.existing_isbns(record.get("isbn", "") for _, record in rows)
        plan = plan_import(rows, existing)

        if plan.errors:
            logger.warning(
                "csv_import_rejected",
                vendor_id=vendor_id,
                rows=plan.rows_read,
                errors=len(plan.errors)
            )
            raise CsvImportError("Validation errors found", details=format_row_errors(plan.errors))

        if not plan.books:
            logger.info("csv_import_nothing_added", vendor_id=vendor_id, skipped=len(plan.skipped))
            raise CsvImportError(nothing_added_message(plan.skipped))

        added = await self.book_repo.create_books(plan.books, vendor_id)

        logger.info(
            "csv_import_completed",
            vendor_id=vendor_id,
            rows=plan.rows_read,
            added=len(added),
            skipped=len(plan.skipped)
        )

        return ImportResult(
            message=success_message(len(added), plan.skipped),
            added_books=added,
            skipped_count=len(plan.skipped),
        ), plan
