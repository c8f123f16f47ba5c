from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

import httpx

from chatproxy.app.exceptions import MalformedCompletionError


def extract_completion_text(data: Any) -> str:
    """Pull the completion text out of a chat completion response.

    The text must live at ``choices[0].message.content`` and be a string;
    anything else is a malformed response.

    Raises:
        MalformedCompletionError: If the response does not have that shape
    """
    if not isinstance(data, dict):
        raise MalformedCompletionError("response body is not a JSON object")
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices:
        raise MalformedCompletionError("missing or empty 'choices' array")
    first = choices[0]
    message = first.get("message") if isinstance(first, dict) else None
    if not isinstance(message, dict):
        raise MalformedCompletionError("'choices[0].message' is not an object")
    content = message.get("content")
    if not isinstance(content, str):
        raise MalformedCompletionError("'choices[0].message.content' is not a string")
    return content


class BaseProvider(ABC):
    """Base class for completion providers.

    Subclasses can accept an external httpx.AsyncClient for connection pooling,
    or create their own per request if none has been attached.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 60.0
    ):
        """Initialize the provider.

        Args:
            base_url: The API base URL
            api_key: The API key for authentication, empty for none
            http_client: Optional shared HTTP client for connection pooling
            timeout: Request timeout in seconds for per-request clients
        """
        self._http_client = http_client
        self.base_url = base_url.rstrip('/')
        self.api_key = api_key
        self.timeout = timeout
        self.headers = self._build_headers()

    @property
    def http_client(self) -> Optional[httpx.AsyncClient]:
        """Get the HTTP client, if one was provided."""
        return self._http_client

    def attach_http_client(self, client: Optional[httpx.AsyncClient]) -> None:
        """Use ``client`` for all subsequent requests (None to detach)."""
        self._http_client = client

    def _build_headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    @asynccontextmanager
    async def _client_context(self) -> AsyncGenerator[httpx.AsyncClient, None]:
        """Yield the shared client, or a per-request client that is closed afterwards."""
        if self._http_client is not None:
            yield self._http_client
            return
        client = httpx.AsyncClient(timeout=self.timeout)
        try:
            yield client
        finally:
            await client.aclose()

    def _get_endpoint_url(self, endpoint: str) -> str:
        """Build full URL for an API endpoint (e.g., "/chat/completions")."""
        return f"{self.base_url}{endpoint}"

    @abstractmethod
    async def chat_completion(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Send a non-streaming chat completion request.

        Args:
            payload: The request payload containing model and messages

        Returns:
            The decoded JSON response from the API
        """
        pass

    @abstractmethod
    async def health_check(self, timeout: float = 2.0) -> bool:
        """Check if the provider is reachable.

        Args:
            timeout: Request timeout in seconds (default: 2.0)

        Returns:
            True if the provider is healthy, False otherwise
        """
        pass
