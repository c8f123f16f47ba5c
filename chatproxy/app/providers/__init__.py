"""Completion providers for chatproxy.

This package provides:
- Base provider interface (BaseProvider) and response extraction
- OpenAI-compatible HTTP provider (OpenAICompatibleProvider)
- Network-free provider for development and tests (MockProvider)
"""

from chatproxy.app.core.config import Settings
from chatproxy.app.providers.base import BaseProvider, extract_completion_text
from chatproxy.app.providers.mock import MockProvider
from chatproxy.app.providers.openai import OpenAICompatibleProvider


def create_provider(config: Settings) -> BaseProvider:
    """Build the provider selected by ``config``."""
    if config.use_mock_provider:
        return MockProvider(model=config.llm_model_name)
    return OpenAICompatibleProvider(
        base_url=config.llm_base_url,
        api_key=config.llm_api_key,
        timeout=config.httpx_read_timeout,
    )


__all__ = [
    "BaseProvider",
    "MockProvider",
    "OpenAICompatibleProvider",
    "create_provider",
    "extract_completion_text",
]
