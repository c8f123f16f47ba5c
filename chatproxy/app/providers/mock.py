"""Mock provider for development and testing.

This provider answers chat completions without making external API calls.
Enable it for local runs by setting the environment variable:
    USE_MOCK_PROVIDER=true
"""

import asyncio
import time
import uuid
from typing import Any, Dict, Optional

from chatproxy.app.exceptions import UpstreamError
from chatproxy.app.providers.base import BaseProvider


class MockProvider(BaseProvider):
    """Provider returning OpenAI-shaped responses built from the prompt.

    Features:
    - Deterministic content: the same prompt always yields the same text
    - Optional fixed delay to exercise concurrency
    - Configurable failure mode for error-path testing
    - Call counter for asserting how often upstream was reached
    """

    def __init__(
        self,
        model: str = "mock-model",
        delay: float = 0.0,
        fail: bool = False,
        content: Optional[str] = None,
    ):
        """Initialize the mock provider.

        Args:
            model: Model name echoed in responses
            delay: Seconds to sleep before answering
            fail: Raise UpstreamError instead of answering
            content: Fixed completion text; derived from the prompt when None
        """
        super().__init__("http://mock.provider")
        self.model = model
        self.delay = delay
        self.fail = fail
        self.content = content
        self.calls = 0

    def _generate_content(self, user_message: str) -> str:
        if self.content is not None:
            return self.content
        return f"# Mock answer\n\n- You asked: **{user_message}**"

    def _generate_response(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        last_message = ""
        for msg in reversed(payload.get("messages", [])):
            if msg.get("role") == "user":
                last_message = msg.get("content", "")
                break

        return {
            "id": f"chatcmpl-{uuid.uuid4().hex[:24]}",
            "object": "chat.completion",
            "created": int(time.time()),
            "model": payload.get("model", self.model),
            "choices": [{
                "index": 0,
                "message": {
                    "role": "assistant",
                    "content": self._generate_content(last_message),
                },
                "finish_reason": "stop",
            }],
        }

    async def chat_completion(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise UpstreamError("Simulated provider failure", upstream_status=503)
        return self._generate_response(payload)

    async def health_check(self, timeout: float = 2.0) -> bool:
        return not self.fail
