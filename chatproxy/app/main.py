from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncGenerator, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from chatproxy.app.api import chat_router, example_router, pages_router
from chatproxy.app.core.config import Settings, settings as default_settings
from chatproxy.app.core.http_client import init_http_client
from chatproxy.app.core.logging import get_logger, setup_logging
from chatproxy.app.middleware.request_id import RequestIdMiddleware, get_request_id
from chatproxy.app.middleware.security_headers import SecurityHeadersMiddleware
from chatproxy.app.providers import BaseProvider, create_provider
from chatproxy.app.services.orchestrator import ChatOrchestrator
from chatproxy.app.services.rate_limiter import RateLimiter
from chatproxy.app.services.response_cache import ResponseCache


def create_app(
    settings: Optional[Settings] = None,
    provider: Optional[BaseProvider] = None,
    rate_limiter: Optional[RateLimiter] = None,
    cache: Optional[ResponseCache] = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    The rate limiter, response cache and provider are created here (unless
    supplied) and live on ``app.state`` for the lifetime of the process.

    Returns:
        Configured FastAPI application instance
    """
    settings = settings or default_settings
    setup_logging(settings)
    logger = get_logger(__name__)

    if provider is None:
        provider = create_provider(settings)
    if rate_limiter is None:
        rate_limiter = RateLimiter(
            max_requests=settings.rate_limit_max_requests,
            window_seconds=settings.rate_limit_window_seconds,
            shards=settings.rate_limit_shards,
            sweep_interval=settings.rate_limit_sweep_interval,
        )
    if cache is None:
        cache = ResponseCache(
            capacity=settings.cache_capacity,
            ttl_seconds=settings.cache_ttl_seconds,
        )
    orchestrator = ChatOrchestrator(
        rate_limiter=rate_limiter,
        cache=cache,
        provider=provider,
        model_name=settings.llm_model_name,
        system_prompt=settings.llm_system_prompt,
        max_message_length=settings.max_message_length,
        model_info_commands=settings.model_info_commands,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Open the shared HTTP client on startup and close it on shutdown."""
        async with init_http_client(settings) as http_client:
            provider.attach_http_client(http_client)
            logger.info(
                "Application startup complete",
                extra={
                    "model": settings.llm_model_name,
                    "provider": type(provider).__name__,
                    "rate_limit": f"{settings.rate_limit_max_requests}/{settings.rate_limit_window_seconds}s",
                    "cache_capacity": settings.cache_capacity,
                },
            )
            try:
                yield
            finally:
                provider.attach_http_client(None)
        logger.info("Application shutdown complete")

    app = FastAPI(
        title=settings.app_name,
        description="Chat API in front of an LLM completion endpoint, with response caching and per-client rate limiting",
        version="0.1.0",
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
    )
    app.state.settings = settings
    app.state.rate_limiter = rate_limiter
    app.state.cache = cache
    app.state.orchestrator = orchestrator

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestIdMiddleware)

    app.include_router(chat_router)
    app.include_router(example_router)
    app.include_router(pages_router)

    @app.get("/health")
    async def health() -> dict[str, Any]:
        """Health check with cache and rate limiter status."""
        stats = cache.stats()
        return {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "components": {
                "cache": {
                    "size": stats.size,
                    "capacity": stats.capacity,
                    "hits": stats.hits,
                    "misses": stats.misses,
                    "evictions": stats.evictions,
                },
                "rate_limiter": {
                    "tracked_clients": rate_limiter.client_count,
                    "max_requests": rate_limiter.max_requests,
                    "window_seconds": rate_limiter.window_seconds,
                },
            },
        }

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Global exception handler for unhandled exceptions.

        Never returns a traceback to the client; the full details are logged
        server-side.
        """
        request_id = get_request_id(request)
        logger.exception(
            f"Unhandled exception [request_id={request_id}]",
            extra={
                "request_id": request_id,
                "exception_type": type(exc).__name__,
            },
        )
        content: dict[str, Any] = {"error": "Internal server error", "request_id": request_id}
        if settings.debug:
            content["exception_type"] = type(exc).__name__
        return JSONResponse(status_code=500, content=content)

    return app


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    uvicorn.run("chatproxy.app.main:app", host=default_settings.host, port=default_settings.port)


# Create the application instance
app = create_app()
