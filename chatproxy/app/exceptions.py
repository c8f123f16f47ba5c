"""Custom exceptions for chatproxy."""


class ChatProxyError(Exception):
    """Base class for chatproxy exceptions with HTTP status code.

    All custom exceptions should inherit from this class and define
    their specific status_code for consistent HTTP response handling.
    """
    status_code: int = 500

    def __init__(self, message: str = "chatproxy error"):
        self.message = message
        super().__init__(message)


class UpstreamError(ChatProxyError):
    """Raised when the completion provider cannot produce a usable answer.

    The message is for server-side logs only; clients get a generic error.
    Maps to HTTP 500 Internal Server Error.
    """
    status_code = 500

    def __init__(self, message: str = "Upstream completion failed", upstream_status: int | None = None):
        self.upstream_status = upstream_status
        super().__init__(message)


class MalformedCompletionError(UpstreamError):
    """Raised when a completion response does not have the expected shape."""

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"Malformed completion response: {detail}")
