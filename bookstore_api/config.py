"""
Settings for the bookstore admin API.

Every field can be overridden with a ``BOOKSTORE_API_``-prefixed
environment variable (``BOOKSTORE_API_MONGODB_URL``,
``BOOKSTORE_API_RATE_LIMIT_ENABLED`` ...) or from a local ``.env`` file.
Environment variables take precedence over ``.env``, which takes
precedence over the defaults below.
"""

from functools import lru_cache
from typing import List

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_ALLOWED = {
    "log_level": ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"),
    "environment": ("development", "staging", "production"),
    "jwt_algorithm": ("HS256", "HS384", "HS512"),
    "log_format": ("json", "text"),
    "auth_cookie_samesite": ("lax", "strict", "none"),
}


def _one_of(field: str, value: str) -> str:
    allowed = _ALLOWED[field]
    normalized = value.upper() if allowed[0].isupper() else value.lower()
    if normalized not in allowed:
        raise ValueError(f"{field} must be one of {list(allowed)}, got: {value}")
    return normalized


class Settings(BaseSettings):
    """Process-wide configuration, read once per process (see ``get_settings``)."""

    # --- service -------------------------------------------------------------

    app_name: str = Field(default="Bookstore Admin API", description="Title shown in the OpenAPI docs")
    app_version: str = Field(default="1.0.0", description="Reported by /health and the OpenAPI docs")
    api_prefix: str = Field(default="/api", description="Mount point of every business router")
    debug: bool = Field(default=False, description="Console logs and uvicorn auto-reload")
    environment: str = Field(default="development", description="development|staging|production")
    host: str = Field(default="0.0.0.0", description="uvicorn bind address")
    port: int = Field(default=8000, gt=0, lt=65536, description="uvicorn bind port")

    # --- MongoDB -------------------------------------------------------------

    mongodb_url: str = Field(default="mongodb://localhost:27017", description="Connection string")
    mongodb_database: str = Field(default="bookstore", description="Database holding every collection")
    mongodb_server_selection_timeout_ms: int = Field(
        default=5000, gt=0, description="Wait for a reachable server before failing (ms)"
    )
    mongodb_app_name: str = Field(default="bookstore-admin-api", description="appName sent in the handshake")

    # --- tokens and the session cookie ---------------------------------------

    jwt_secret_key: str = Field(
        default="change-this-secret-key-in-production-minimum-32-characters",
        min_length=32,
        description="HMAC key for access tokens; override outside development",
    )
    jwt_algorithm: str = Field(default="HS256", description="HS256|HS384|HS512")
    jwt_access_token_expire_minutes: int = Field(
        default=60 * 24 * 7, gt=0, le=60 * 24 * 30, description="Token lifetime, seven days by default"
    )
    auth_cookie_name: str = Field(default="token", description="HTTP-only cookie set on sign-in")
    auth_cookie_secure: bool = Field(default=False, description="Force the Secure flag outside production")
    auth_cookie_samesite: str = Field(default="lax", description="lax|strict|none")

    # --- passwords -----------------------------------------------------------

    password_bcrypt_rounds: int = Field(default=12, ge=4, le=14, description="bcrypt cost factor")
    password_min_length: int = Field(default=8, ge=8, le=128, description="Shortest password accepted at signup")

    # --- HTTP surface ----------------------------------------------------------

    cors_enabled: bool = Field(default=True)
    cors_origins: List[str] = Field(default=["http://localhost:3000"], description="Dashboard UI origins")
    cors_allow_credentials: bool = Field(default=True)
    cors_allow_methods: List[str] = Field(default=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"])
    cors_allow_headers: List[str] = Field(default=["*"])

    rate_limit_enabled: bool = Field(default=True, description="Toggle the slowapi limiter")
    rate_limit_signin: str = Field(default="10/minute", description="Sign-in attempts per client IP")

    security_require_https: bool = Field(default=False, description="Send HSTS on every response")
    security_headers_enabled: bool = Field(default=True, description="X-Frame-Options, nosniff and friends")
    security_hsts_max_age: int = Field(default=31536000, description="HSTS max-age in seconds")

    # --- observability ---------------------------------------------------------

    audit_enabled: bool = Field(default=True, description="Write sign-in, catalog and order actions to audit_logs")
    metrics_enabled: bool = Field(default=True, description="Expose Prometheus metrics")
    metrics_endpoint: str = Field(default="/metrics")
    log_level: str = Field(default="INFO", description="DEBUG|INFO|WARNING|ERROR|CRITICAL")
    log_format: str = Field(default="json", description="json|text")

    # --- catalog and listing -----------------------------------------------------

    pagination_default_limit: int = Field(default=10, gt=0, le=1000, description="Page size when none is given")
    pagination_max_limit: int = Field(default=100, gt=0, le=1000, description="Largest page size served")
    csv_upload_max_bytes: int = Field(default=5 * 1024 * 1024, gt=0, description="Bulk import upload cap")
    default_cover_image: str = Field(default="/images/product/product-01.jpg")
    default_avatar: str = Field(default="/images/user/user-01.jpg")

    # --- dashboard targets -------------------------------------------------------

    analytics_min_monthly_target: int = Field(default=10000, ge=0, description="Lowest monthly revenue target")
    analytics_target_growth: float = Field(default=1.15, gt=0, description="Growth over last month's revenue")
    analytics_catalog_target_share: float = Field(
        default=0.5, gt=0, le=1, description="Share of unsold stock value used when last month sold nothing"
    )
    analytics_statistics_target_multiplier: float = Field(default=1.2, gt=0)
    analytics_recent_orders_limit: int = Field(default=5, gt=0, le=50, description="Rows in the recent orders widget")

    model_config = SettingsConfigDict(
        env_prefix="BOOKSTORE_API_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        validate_default=True,
    )

    @field_validator(*_ALLOWED)
    @classmethod
    def validate_choice(cls, v: str, info: ValidationInfo) -> str:
        return _one_of(info.field_name, v)

    @field_validator("cors_origins")
    @classmethod
    def validate_cors_origins(cls, v: List[str]) -> List[str]:
        """An empty origin list means any origin."""
        return v or ["*"]

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def cookie_secure(self) -> bool:
        """The auth cookie is always Secure in production."""
        return self.auth_cookie_secure or self.is_production

    @property
    def access_token_expire_seconds(self) -> int:
        return self.jwt_access_token_expire_minutes * 60


@lru_cache()
def get_settings() -> Settings:
    """
    Settings for this process, built on first use.

    Tests that change environment variables call ``clear_settings_cache``
    so the next call rebuilds them.
    """
    return Settings()


def clear_settings_cache():
    get_settings.cache_clear()
