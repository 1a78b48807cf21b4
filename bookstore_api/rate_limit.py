"""
Per-client rate limiting (slowapi).

The limiter is module level so routers can decorate endpoints at import
time; ``main`` attaches it to ``app.state`` and registers the 429 handler.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from bookstore_api.config import get_settings


def signin_limit() -> str:
    return get_settings().rate_limit_signin


limiter = Limiter(
    key_func=get_remote_address,
    enabled=get_settings().rate_limit_enabled,
)
