"""Metrics module using Prometheus."""

from .prometheus_metrics import (
    BookstoreMetrics,
    HttpMetrics,
    setup_metrics,
    get_metrics_handler,
)

__all__ = [
    "BookstoreMetrics",
    "HttpMetrics",
    "setup_metrics",
    "get_metrics_handler",
]
