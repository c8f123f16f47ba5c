from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful assistant. Please provide structured responses using "
    "markdown formatting. Use headers (# for main points), bullet points (- for "
    "lists), bold (**text**) for emphasis, and code blocks (```code```) for code "
    "examples. Organize your responses with clear sections and concise "
    "explanations."
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be configured via environment variables or .env file.
    """

    app_name: str = "chatproxy"

    # Debug mode - enables detailed error responses
    debug: bool = False

    # Server bind address for the console entry point
    host: str = "0.0.0.0"
    port: int = 8080

    # Upstream completion endpoint (OpenAI-compatible)
    llm_base_url: str = "https://api.openai.com/v1"
    llm_api_key: str = ""
    llm_model_name: str = "gpt-4o-mini"
    llm_system_prompt: str = DEFAULT_SYSTEM_PROMPT

    # Serve canned completions without touching the network
    use_mock_provider: bool = False

    # HTTP client connection pool settings
    httpx_connect_timeout: float = 10.0  # Time to establish connection
    httpx_read_timeout: float = 60.0  # Time to read response data
    httpx_write_timeout: float = 10.0  # Time to send request data
    httpx_pool_timeout: float = 5.0  # Time to acquire connection from pool
    httpx_keepalive_expiry: float = 30.0
    httpx_max_connections: int = 100
    httpx_max_keepalive_connections: int = 20

    # Rate limiting settings
    rate_limit_max_requests: int = 10  # Admissions per window, per client
    rate_limit_window_seconds: float = 60.0
    rate_limit_shards: int = 16
    rate_limit_sweep_interval: int = 1024
    trust_forwarded_for: bool = True  # Key clients by first X-Forwarded-For hop

    # Response cache settings
    cache_capacity: int = 1000
    cache_ttl_seconds: float = 0.0  # 0 disables expiry

    # Chat input settings
    max_message_length: int = 4000  # UTF-8 bytes
    model_info_commands: list[str] = ["!modelinfo"]

    example_response_path: Path = Path("static/examples/structured_response_example.md")

    # Logging settings
    log_level: str = "INFO"
    log_format: str = "text"  # text | structured | json

    @field_validator(
        "rate_limit_max_requests",
        "rate_limit_shards",
        "rate_limit_sweep_interval",
        "cache_capacity",
        "max_message_length",
    )
    @classmethod
    def validate_positive_int(cls, v: int) -> int:
        """Validate counts and capacities are at least 1."""
        if v < 1:
            raise ValueError("value must be at least 1")
        return v

    @field_validator(
        "rate_limit_window_seconds",
        "httpx_connect_timeout",
        "httpx_read_timeout",
        "httpx_write_timeout",
        "httpx_pool_timeout",
    )
    @classmethod
    def validate_positive_float(cls, v: float) -> float:
        """Validate durations are positive."""
        if v <= 0:
            raise ValueError("duration values must be positive")
        return v

    @field_validator("cache_ttl_seconds")
    @classmethod
    def validate_ttl(cls, v: float) -> float:
        if v < 0:
            raise ValueError("cache_ttl_seconds must not be negative")
        return v

    @field_validator("llm_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("model_info_commands")
    @classmethod
    def validate_commands(cls, v: list[str]) -> list[str]:
        commands = [c for c in v if c]
        if not commands:
            raise ValueError("model_info_commands must contain at least one command")
        return commands

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        v = v.lower()
        if v not in ("text", "structured", "json"):
            raise ValueError("log_format must be one of: text, structured, json")
        return v

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


# Global settings instance
settings = Settings()
