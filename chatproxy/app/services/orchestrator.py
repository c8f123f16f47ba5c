"""Chat request protocol around the upstream completion call.

For every request the orchestrator runs, in order:

1. admission through the rate limiter,
2. message length validation,
3. reserved command dispatch (model info),
4. response cache lookup,
5. the upstream completion call on a miss,
6. caching and returning the completion.

Each terminal branch produces a ChatResult value; the three failure kinds
never escape as exceptions. Only step 5 touches the network, and its
failures are reported as-is, never retried.
"""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, Optional

import httpx

from chatproxy.app.core.logging import get_log_context, get_logger
from chatproxy.app.exceptions import UpstreamError
from chatproxy.app.providers.base import BaseProvider, extract_completion_text
from chatproxy.app.services.rate_limiter import RateLimiter, RateLimitResult
from chatproxy.app.services.response_cache import ResponseCache, normalize_key

logger = get_logger(__name__)


class ChatErrorKind(str, Enum):
    """Every way a chat request can fail."""

    RATE_LIMITED = "rate_limited"
    VALIDATION_FAILED = "validation_failed"
    UPSTREAM_FAILURE = "upstream_failure"

    @property
    def status_code(self) -> int:
        return _STATUS_CODES[self]


_STATUS_CODES = {
    ChatErrorKind.RATE_LIMITED: 429,
    ChatErrorKind.VALIDATION_FAILED: 400,
    ChatErrorKind.UPSTREAM_FAILURE: 500,
}


@dataclass(frozen=True)
class ChatResult:
    """Outcome of one chat request.

    Exactly one of ``response``, ``model`` or ``error`` is set.
    """
    response: Optional[str] = None
    model: Optional[str] = None
    error: Optional[ChatErrorKind] = None
    message: Optional[str] = None
    cached: bool = False
    rate_limit: Optional[RateLimitResult] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def status_code(self) -> int:
        return 200 if self.error is None else self.error.status_code

    def to_body(self) -> Dict[str, str]:
        """JSON body for the HTTP response."""
        if self.error is not None:
            return {"error": self.message or self.error.value}
        if self.model is not None:
            return {"model": self.model}
        return {"response": self.response or ""}


class ChatOrchestrator:
    """Sequences rate limiting, caching and the upstream call.

    Holds references to the shared limiter, cache and provider; owns no
    mutable state of its own.
    """

    def __init__(
        self,
        rate_limiter: RateLimiter,
        cache: ResponseCache,
        provider: BaseProvider,
        model_name: str,
        system_prompt: str,
        max_message_length: int = 4000,
        model_info_commands: Iterable[str] = ("!modelinfo",),
    ):
        self.rate_limiter = rate_limiter
        self.cache = cache
        self.provider = provider
        self.model_name = model_name
        self.system_prompt = system_prompt
        self.max_message_length = max_message_length
        self.model_info_commands = frozenset(model_info_commands)

    def build_payload(self, message: str) -> Dict[str, Any]:
        """Completion request for ``message`` with the formatting instruction."""
        return {
            "model": self.model_name,
            "messages": [
                {"role": "system", "content": self.system_prompt},
                {"role": "user", "content": message},
            ],
        }

    async def handle(
        self,
        client_key: str,
        message: str,
        request_id: Optional[str] = None,
    ) -> ChatResult:
        """Run the chat protocol for one request."""
        admission = self.rate_limiter.check(client_key)
        if not admission.allowed:
            logger.info(
                "Request rate limited",
                extra=get_log_context(
                    request_id=request_id,
                    client_key=client_key,
                    retry_after=admission.retry_after,
                ),
            )
            return ChatResult(
                error=ChatErrorKind.RATE_LIMITED,
                message="Rate limit exceeded",
                rate_limit=admission,
            )

        # Limit counts UTF-8 bytes, not characters
        if len(message.encode("utf-8", "surrogatepass")) > self.max_message_length:
            return ChatResult(
                error=ChatErrorKind.VALIDATION_FAILED,
                message=f"Message too long (max {self.max_message_length} chars)",
                rate_limit=admission,
            )

        if message in self.model_info_commands:
            return ChatResult(model=self.model_name, rate_limit=admission)

        key = normalize_key(message)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug(
                "Cache hit",
                extra=get_log_context(request_id=request_id, cache="hit"),
            )
            return ChatResult(response=cached, cached=True, rate_limit=admission)

        try:
            data = await self.provider.chat_completion(self.build_payload(message))
            text = extract_completion_text(data)
        except asyncio.CancelledError:
            logger.info(
                "Upstream call cancelled, nothing cached",
                extra=get_log_context(request_id=request_id, cache="miss"),
            )
            raise
        except httpx.TimeoutException as e:
            return self._upstream_failure("Upstream call timed out", e, request_id, admission)
        except (httpx.HTTPError, UpstreamError) as e:
            return self._upstream_failure("Failed to call LLM API", e, request_id, admission)

        self.cache.set(key, text)
        return ChatResult(response=text, rate_limit=admission)

    def _upstream_failure(
        self,
        log_message: str,
        error: Exception,
        request_id: Optional[str],
        admission: RateLimitResult,
    ) -> ChatResult:
        logger.warning(
            log_message,
            extra=get_log_context(
                request_id=request_id,
                cache="miss",
                error=str(error),
                error_type=type(error).__name__,
            ),
        )
        return ChatResult(
            error=ChatErrorKind.UPSTREAM_FAILURE,
            message="LLM API error",
            rate_limit=admission,
        )
