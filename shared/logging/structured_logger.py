"""structlog setup shared by the API process and the seed script.

Every entry carries the bound request context (correlation id, user id),
an ISO-8601 UTC timestamp and the ``app``/``environment`` pair set at
startup. Output is one JSON object per line unless ``json_logs`` is off.
"""

import logging
import sys
from typing import Any, Optional

import structlog
from structlog.types import EventDict, Processor

_app_context = {"app": "bookstore-admin-api", "environment": "development"}

# Chatty third-party loggers and the lowest level they may emit at.
_QUIET_LOGGERS = {
    "pymongo": logging.INFO,
    "passlib": logging.WARNING,
}


def add_app_context(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Stamp ``app`` and ``environment`` unless the caller set them."""
    for key, value in _app_context.items():
        event_dict.setdefault(key, value)
    return event_dict


def _renderer(json_logs: bool) -> Processor:
    if json_logs:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())


def configure_logging(
    log_level: str = "INFO",
    json_logs: bool = True,
    service_name: Optional[str] = None,
    environment: Optional[str] = None,
) -> None:
    """Route structlog through stdlib logging on stdout.

    Safe to call more than once; the last call wins.

    Args:
        log_level: Root level name, e.g. ``"DEBUG"`` or ``"WARNING"``
        json_logs: Render JSON lines instead of the coloured console format
        service_name: Value for the ``app`` field
        environment: Value for the ``environment`` field
    """
    if service_name:
        _app_context["app"] = service_name
    if environment:
        _app_context["environment"] = environment

    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            add_app_context,
            _renderer(json_logs),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level, force=True)

    for name, floor in _QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(max(floor, level))


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Attach fields to every entry logged from the current task."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
