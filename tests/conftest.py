"""Shared fixtures for chatproxy tests."""

import pytest

from chatproxy.app.core.config import Settings
from chatproxy.app.providers.mock import MockProvider
from chatproxy.app.services.orchestrator import ChatOrchestrator
from chatproxy.app.services.rate_limiter import RateLimiter
from chatproxy.app.services.response_cache import ResponseCache


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def test_settings(tmp_path):
    """Settings isolated from the environment's .env file."""
    return Settings(
        _env_file=None,
        llm_base_url="https://llm.test/v1",
        llm_model_name="test-model",
        rate_limit_max_requests=3,
        rate_limit_window_seconds=60,
        cache_capacity=8,
        max_message_length=50,
        example_response_path=tmp_path / "example.md",
    )


@pytest.fixture
def provider():
    return MockProvider(model="test-model", content="# Answer")


@pytest.fixture
def orchestrator_factory(clock):
    """Build an orchestrator around a fresh limiter and cache."""

    def factory(
        provider,
        max_requests: int = 5,
        capacity: int = 10,
        max_message_length: int = 100,
    ) -> ChatOrchestrator:
        return ChatOrchestrator(
            rate_limiter=RateLimiter(max_requests=max_requests, window_seconds=60, clock=clock),
            cache=ResponseCache(capacity=capacity, clock=clock),
            provider=provider,
            model_name="test-model",
            system_prompt="Answer in markdown.",
            max_message_length=max_message_length,
        )

    return factory
