"""
Unit tests for structured logging and Prometheus metrics helpers.
"""

import structlog
import structlog.testing
from prometheus_client import CollectorRegistry

from shared.logging.structured_logger import add_app_context
from shared.logging import bind_context, clear_context, configure_logging, get_logger
from shared.metrics import BookstoreMetrics, HttpMetrics, get_metrics_handler, setup_metrics


class TestLogging:

    def test_context_binding(self):
        clear_context()
        bind_context(correlation_id="abc-123", user_id="u1")

        assert structlog.contextvars.get_contextvars() == {"correlation_id": "abc-123", "user_id": "u1"}

        clear_context()
        assert structlog.contextvars.get_contextvars() == {}

    def test_app_context_is_stamped(self):
        configure_logging(log_level="WARNING", service_name="bookstore-api", environment="staging")

        event = add_app_context(None, "info", {"event": "book_created"})

        assert event == {"event": "book_created", "app": "bookstore-api", "environment": "staging"}

    def test_explicit_fields_win(self):
        event = add_app_context(None, "info", {"event": "x", "app": "seed"})

        assert event["app"] == "seed"

    def test_events_are_captured(self):
        with structlog.testing.capture_logs() as logs:
            get_logger("tests").warning("csv_import_failed", rows=3)

        assert logs == [{"event": "csv_import_failed", "rows": 3, "log_level": "warning"}]


class TestMetrics:

    def test_business_counters(self):
        registry = CollectorRegistry()
        metrics = BookstoreMetrics(registry=registry)

        metrics.signin_attempts.labels(outcome="failure").inc()
        metrics.books_created.labels(source="csv").inc(3)

        assert registry.get_sample_value("bookstore_signin_attempts_total", {"outcome": "failure"}) == 1
        assert registry.get_sample_value("bookstore_books_created_total", {"source": "csv"}) == 3

    def test_http_metrics(self):
        registry = CollectorRegistry()
        metrics = HttpMetrics(registry=registry)

        metrics.requests_total.labels(method="GET", endpoint="/api/books", status=200).inc()

        assert registry.get_sample_value(
            "http_requests_total", {"method": "GET", "endpoint": "/api/books", "status": "200"}
        ) == 1

    def test_setup_is_idempotent(self):
        assert setup_metrics() is setup_metrics()

    def test_handler_renders_exposition(self):
        setup_metrics()

        output = get_metrics_handler()()

        assert b"bookstore_orders_placed_total" in output
