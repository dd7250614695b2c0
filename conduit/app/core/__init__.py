"""Core utilities for the gateway application."""

from conduit.app.core.config import Settings, settings
from conduit.app.core.context import get_current_request_id, set_current_request_id
from conduit.app.core.logging import get_log_context, get_logger, setup_logging

__all__ = [
    "Settings",
    "settings",
    "get_current_request_id",
    "set_current_request_id",
    "get_log_context",
    "get_logger",
    "setup_logging",
]
