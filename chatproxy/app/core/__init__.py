"""Core utilities for chatproxy."""

from chatproxy.app.core.config import Settings, settings
from chatproxy.app.core.http_client import init_http_client
from chatproxy.app.core.logging import get_log_context, get_logger, setup_logging

__all__ = [
    "Settings",
    "settings",
    "init_http_client",
    "get_logger",
    "get_log_context",
    "setup_logging",
]
