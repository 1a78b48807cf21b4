"""HTTP middleware: request logging/metrics and security headers."""

from bookstore_api.middleware.request_logging import RequestLoggingMiddleware
from bookstore_api.middleware.security_headers import SecurityHeadersMiddleware

__all__ = ["RequestLoggingMiddleware", "SecurityHeadersMiddleware"]
