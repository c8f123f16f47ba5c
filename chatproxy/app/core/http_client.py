"""Shared HTTP client management for connection pooling.

The client is opened in the application lifespan and handed to the upstream
provider so every completion request reuses the same connection pool.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import httpx

from chatproxy.app.core.config import Settings, settings as default_settings


def build_timeout(config: Settings) -> httpx.Timeout:
    """Granular timeouts for upstream calls.

    - connect: Time to establish socket connection
    - read: Time to read response data (completions can be slow)
    - write: Time to send request data
    - pool: Time to acquire connection from pool
    """
    return httpx.Timeout(
        connect=config.httpx_connect_timeout,
        read=config.httpx_read_timeout,
        write=config.httpx_write_timeout,
        pool=config.httpx_pool_timeout,
    )


def build_limits(config: Settings) -> httpx.Limits:
    return httpx.Limits(
        max_connections=config.httpx_max_connections,
        max_keepalive_connections=config.httpx_max_keepalive_connections,
        keepalive_expiry=config.httpx_keepalive_expiry,
    )


@asynccontextmanager
async def init_http_client(
    config: Optional[Settings] = None,
) -> AsyncGenerator[httpx.AsyncClient, None]:
    """Open the shared HTTP client and close it on exit.

    Used from the FastAPI lifespan:

        async with init_http_client(settings) as client:
            provider.attach_http_client(client)
            yield
    """
    config = config or default_settings
    client = httpx.AsyncClient(timeout=build_timeout(config), limits=build_limits(config))
    try:
        yield client
    finally:
        await client.aclose()
