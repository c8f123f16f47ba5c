"""OpenAI-compatible completion provider.

Works with the OpenAI API and any endpoint exposing the same
``/chat/completions`` contract (DeepSeek, OpenRouter, local servers).
"""

from typing import Any, Dict

import httpx

from chatproxy.app.exceptions import MalformedCompletionError, UpstreamError
from chatproxy.app.providers.base import BaseProvider


class OpenAICompatibleProvider(BaseProvider):
    """Provider for OpenAI-compatible chat completion endpoints.

    If an http_client is attached it is used for all requests (connection
    reuse); otherwise a short-lived client is created per request.
    """

    async def chat_completion(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Send a non-streaming chat completion request.

        Raises:
            UpstreamError: If the API answers with a non-success status or
                the configured base URL is not a valid URL
            MalformedCompletionError: If the body is not valid JSON
            httpx.HTTPError: On transport failures and timeouts
        """
        url = self._get_endpoint_url("/chat/completions")

        async with self._client_context() as client:
            try:
                resp = await client.post(url, headers=self.headers, json=payload)
            except httpx.InvalidURL as e:
                raise UpstreamError(f"Invalid upstream URL {url!r}: {e}") from e
            if not resp.is_success:
                raise UpstreamError(
                    f"Upstream returned HTTP {resp.status_code}",
                    upstream_status=resp.status_code,
                )
            try:
                return resp.json()
            except ValueError as e:
                raise MalformedCompletionError(f"invalid JSON body ({e})") from e

    async def health_check(self, timeout: float = 2.0) -> bool:
        """Check reachability by listing models with a short timeout."""
        try:
            url = self._get_endpoint_url("/models")
            async with self._client_context() as client:
                resp = await client.get(url, headers=self.headers, timeout=timeout)
                return resp.status_code == 200
        except Exception:
            return False
