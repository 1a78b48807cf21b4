"""
ASGI entry point of the bookstore admin API.

Logging, Prometheus collectors and the sign-in limiter are set up when this
module is imported; the lifespan only opens the MongoDB client and makes
sure the collection indexes exist. Run with ``uvicorn bookstore_api.main:app``
or ``python -m bookstore_api.main``.
"""

import structlog
import uvicorn
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Dict, Any

from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from prometheus_client import CONTENT_TYPE_LATEST
from slowapi.errors import RateLimitExceeded

from bookstore_api.config import get_settings, Settings
from bookstore_api.database import (
    close_mongo_client, ensure_indexes, get_database, init_mongo_client, ping
)
from bookstore_api.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware
from bookstore_api.rate_limit import limiter
from bookstore_api.routers import admin, auth, books, dashboard, orders, profile
from shared.logging import configure_logging
from shared.metrics import get_metrics_handler, setup_metrics

logger = structlog.get_logger(__name__)

settings: Settings = get_settings()

configure_logging(
    log_level=settings.log_level,
    json_logs=settings.log_format == "json",
    service_name=settings.app_name,
    environment=settings.environment,
)
setup_metrics()

ROUTERS = (auth, profile, books, orders, dashboard, admin)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Open MongoDB for the lifetime of the process."""
    logger.info("application_starting", version=settings.app_version, environment=settings.environment)

    await init_mongo_client()
    try:
        await ensure_indexes(get_database())
        logger.info(
            "application_started",
            database=settings.mongodb_database,
            rate_limit=settings.rate_limit_signin if settings.rate_limit_enabled else "off",
        )
        yield
    finally:
        await close_mongo_client()
        logger.info("application_stopped")


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description=(
        "Bookstore administration API: catalog management with bulk CSV "
        "import, purchase tracking and sales analytics for the admin dashboard."
    ),
    lifespan=lifespan,
    debug=settings.debug,
)
app.state.limiter = limiter

# Added last runs first: security headers wrap everything, CORS sits innermost.
if settings.cors_enabled:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )
app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(SecurityHeadersMiddleware)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = jsonable_encoder(exc.errors())
    logger.warning("request_invalid", path=request.url.path, errors=errors)
    return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content={"detail": errors})


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code >= 500:
        logger.error("request_failed", path=request.url.path, status_code=exc.status_code, detail=exc.detail)
    elif exc.status_code != status.HTTP_404_NOT_FOUND:
        logger.info("request_rejected", path=request.url.path, status_code=exc.status_code, detail=exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RateLimitExceeded)
async def rate_limit_exception_handler(request: Request, exc: RateLimitExceeded):
    client_ip = request.client.host if request.client else "unknown"
    logger.warning("rate_limit_exceeded", path=request.url.path, client_ip=client_ip, limit=str(exc.detail))
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={"detail": f"Rate limit exceeded: {exc.detail}"},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """Log the failure and answer a generic 500 without internals."""
    logger.error("unhandled_exception", path=request.url.path, error=str(exc), exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


@app.get("/health", tags=["Health"])
async def health_check() -> Dict[str, Any]:
    """Liveness probe; never touches MongoDB."""
    return {
        "status": "healthy",
        "service": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }


@app.get("/ready", tags=["Health"])
async def readiness_check() -> JSONResponse:
    """Readiness probe: 503 until MongoDB answers a ping."""
    database_up = await ping()
    if not database_up:
        logger.warning("readiness_database_unreachable")

    return JSONResponse(
        status_code=status.HTTP_200_OK if database_up else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "ready" if database_up else "not_ready",
            "service": settings.app_name,
            "version": settings.app_version,
            "checks": {"database": "healthy" if database_up else "unhealthy"},
        },
    )


if settings.metrics_enabled:
    render_metrics = get_metrics_handler()

    @app.get(settings.metrics_endpoint, tags=["Monitoring"], response_class=PlainTextResponse)
    async def metrics() -> Response:
        return Response(content=render_metrics(), media_type=CONTENT_TYPE_LATEST)


for module in ROUTERS:
    app.include_router(module.router, prefix=settings.api_prefix)


if __name__ == "__main__":
    uvicorn.run(
        "bookstore_api.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
