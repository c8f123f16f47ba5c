"""Services package for chatproxy.

This package provides:
- Per-client sliding-window rate limiting
- Bounded LRU response caching
- The chat orchestrator that sequences both around the upstream call
"""

from chatproxy.app.services.orchestrator import (
    ChatErrorKind,
    ChatOrchestrator,
    ChatResult,
)
from chatproxy.app.services.rate_limiter import RateLimiter, RateLimitResult
from chatproxy.app.services.response_cache import (
    CacheEntry,
    CacheStats,
    ResponseCache,
    normalize_key,
)

__all__ = [
    # Rate limiting
    "RateLimiter",
    "RateLimitResult",
    # Response cache
    "CacheEntry",
    "CacheStats",
    "ResponseCache",
    "normalize_key",
    # Orchestrator
    "ChatErrorKind",
    "ChatOrchestrator",
    "ChatResult",
]
