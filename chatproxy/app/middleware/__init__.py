"""Middleware package for chatproxy."""

from chatproxy.app.middleware.request_id import RequestIdMiddleware, get_request_id
from chatproxy.app.middleware.security_headers import SecurityHeadersMiddleware

__all__ = [
    "RequestIdMiddleware",
    "SecurityHeadersMiddleware",
    "get_request_id",
]
