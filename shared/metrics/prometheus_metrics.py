"""Prometheus metrics definitions and helpers.

Provides metric definitions for HTTP traffic and for bookstore activity
(sign-ins, catalog changes, CSV imports and orders).
"""

from functools import lru_cache
from typing import Callable

from prometheus_client import (
    Counter,
    Gauge,
    Histogram,
    generate_latest,
    REGISTRY,
    CollectorRegistry,
)


class HttpMetrics:
    """HTTP request metrics."""

    def __init__(self, registry: CollectorRegistry = REGISTRY) -> None:
        """Initialize HTTP metrics.

        Args:
            registry: Prometheus registry to use
        """
        self.requests_total = Counter(
            "http_requests_total",
            "Total HTTP requests",
            ["method", "endpoint", "status"],
            registry=registry,
        )

        self.request_duration = Histogram(
            "http_request_duration_seconds",
            "HTTP request latency",
            ["method", "endpoint"],
            buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
            registry=registry,
        )

        self.requests_in_progress = Gauge(
            "http_requests_in_progress",
            "HTTP requests currently being processed",
            ["method", "endpoint"],
            registry=registry,
        )


class BookstoreMetrics:
    """Business activity metrics."""

    def __init__(self, registry: CollectorRegistry = REGISTRY) -> None:
        """Initialize bookstore metrics.

        Args:
            registry: Prometheus registry to use
        """
        self.signin_attempts = Counter(
            "bookstore_signin_attempts_total",
            "Sign-in attempts by outcome",
            ["outcome"],
            registry=registry,
        )

        self.books_created = Counter(
            "bookstore_books_created_total",
            "Books added to the catalog",
            ["source"],
            registry=registry,
        )

        self.books_deleted = Counter(
            "bookstore_books_deleted_total",
            "Books removed from the catalog",
            registry=registry,
        )

        self.csv_rows = Counter(
            "bookstore_csv_rows_total",
            "Bulk import rows by outcome",
            ["outcome"],
            registry=registry,
        )

        self.csv_import_size = Histogram(
            "bookstore_csv_import_rows",
            "Data rows per bulk import file",
            buckets=[1, 10, 50, 100, 500, 1000, 5000, 10000],
            registry=registry,
        )

        self.orders_placed = Counter(
            "bookstore_orders_placed_total",
            "Orders placed",
            ["payment_method"],
            registry=registry,
        )

        self.orders_cancelled = Counter(
            "bookstore_orders_cancelled_total",
            "Orders cancelled",
            registry=registry,
        )


@lru_cache()
def setup_metrics() -> tuple[HttpMetrics, BookstoreMetrics]:
    """Setup and return metric instances.

    Cached so collectors register with the default registry only once.

    Returns:
        Tuple of (HttpMetrics, BookstoreMetrics)
    """
    return HttpMetrics(), BookstoreMetrics()


def get_metrics_handler() -> Callable[[], bytes]:
    """Get metrics handler for HTTP endpoint.

    Returns:
        Function that generates Prometheus metrics output
    """

    def metrics_handler() -> bytes:
        return generate_latest(REGISTRY)

    return metrics_handler
