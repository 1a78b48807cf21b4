"""Structured logging module using structlog."""

from .structured_logger import bind_context, clear_context, configure_logging, get_logger

__all__ = ["get_logger", "configure_logging", "bind_context", "clear_context"]
