"""Security response headers."""

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from bookstore_api.config import get_settings


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Middleware to add security headers to responses."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        settings = get_settings()

        if settings.security_headers_enabled:
            response.headers["X-Content-Type-Options"] = "nosniff"
            response.headers["X-Frame-Options"] = "DENY"
            response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

            if settings.security_require_https:
                response.headers["Strict-Transport-Security"] = (
                    f"max-age={settings.security_hsts_max_age}; includeSubDomains"
                )

        return response
