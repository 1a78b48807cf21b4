"""
Request logging and HTTP metrics middleware.

Binds a correlation ID to the structlog context for the duration of the
request, logs start/completion/failure with timing, records Prometheus
HTTP metrics and echoes the correlation ID back in ``X-Correlation-ID``.
"""

import time
import uuid

import structlog
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from shared.metrics import setup_metrics

logger = structlog.get_logger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"


def _endpoint_label(request: Request) -> str:
    # Route templates keep label cardinality bounded (/api/books/{book_id}).
    route = request.scope.get("route")
    return getattr(route, "path", None) or request.url.path


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for request logging and metrics."""

    async def dispatch(self, request: Request, call_next):
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(correlation_id=correlation_id)

        http_metrics, _ = setup_metrics()
        method = request.method
        path = request.url.path
        client_ip = request.client.host if request.client else "unknown"

        http_metrics.requests_in_progress.labels(method=method, endpoint=path).inc()
        start_time = time.perf_counter()

        logger.info("request_started", method=method, path=path, client_ip=client_ip)

        try:
            response = await call_next(request)
        except Exception as e:
            duration = time.perf_counter() - start_time
            logger.error(
                "request_failed",
                method=method,
                path=path,
                error=str(e),
                duration=f"{duration:.3f}s",
                exc_info=True
            )
            raise
        finally:
            http_metrics.requests_in_progress.labels(method=method, endpoint=path).dec()

        duration = time.perf_counter() - start_time
        endpoint = _endpoint_label(request)

        http_metrics.requests_total.labels(
            method=method,
            endpoint=endpoint,
            status=response.status_code
        ).inc()
        http_metrics.request_duration.labels(method=method, endpoint=endpoint).observe(duration)

        logger.info(
            "request_completed",
            method=method,
            path=path,
            status_code=response.status_code,
            duration=f"{duration:.3f}s"
        )

        response.headers[CORRELATION_HEADER] = correlation_id
        return response
