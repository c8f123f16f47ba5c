"""Chat API endpoints."""

import hashlib

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from chatproxy.app.core.config import Settings
from chatproxy.app.middleware.request_id import get_request_id
from chatproxy.app.services.orchestrator import ChatOrchestrator, ChatResult

router = APIRouter()


class ChatRequest(BaseModel):
    """Request body for /api/chat."""
    message: str


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_orchestrator(request: Request) -> ChatOrchestrator:
    return request.app.state.orchestrator


def _forwarded_for(header: str) -> str:
    """First ``for=`` value of an RFC 7239 ``Forwarded`` header, unquoted."""
    for element in header.split(","):
        for pair in element.split(";"):
            name, _, value = pair.partition("=")
            if name.strip().lower() == "for":
                return value.strip().strip('"')
    return ""


def get_client_key(request: Request, trust_forwarded_for: bool = True) -> str:
    """Get rate limit key for the request.

    Uses the first ``Forwarded: for=`` node, then the first X-Forwarded-For
    hop when proxy headers are trusted, otherwise the socket peer address.
    The address is hashed with SHA-256 so raw addresses are never kept in
    limiter state or logs.

    Returns:
        Rate limit key string (hashed, no address exposed)
    """
    client_ip = ""
    if trust_forwarded_for:
        forwarded = request.headers.get("Forwarded")
        if forwarded:
            client_ip = _forwarded_for(forwarded)
        if not client_ip:
            forwarded_for = request.headers.get("X-Forwarded-For")
            if forwarded_for:
                client_ip = forwarded_for.split(",")[0].strip()
    if not client_ip:
        client_ip = request.client.host if request.client else "unknown"

    # Use 32 hex chars (128 bits) for collision resistance
    ip_hash = hashlib.sha256(client_ip.encode()).hexdigest()[:32]
    return f"ratelimit:ip:{ip_hash}"


def _rate_limit_headers(result: ChatResult) -> dict[str, str]:
    headers: dict[str, str] = {}
    limit = result.rate_limit
    if limit is None:
        return headers
    headers["X-RateLimit-Limit"] = str(limit.limit)
    headers["X-RateLimit-Remaining"] = str(limit.remaining)
    headers["X-RateLimit-Reset"] = str(limit.reset_time)
    if not limit.allowed:
        headers["Retry-After"] = str(limit.retry_after or 1)
    return headers


@router.post("/api/chat")
async def chat(
    payload: ChatRequest,
    request: Request,
    orchestrator: ChatOrchestrator = Depends(get_orchestrator),
    config: Settings = Depends(get_settings),
) -> JSONResponse:
    """Answer one chat message, from cache when possible."""
    client_key = get_client_key(request, config.trust_forwarded_for)
    result = await orchestrator.handle(
        client_key, payload.message, request_id=get_request_id(request)
    )

    headers = _rate_limit_headers(result)
    if result.ok and result.response is not None:
        headers["X-Cache"] = "HIT" if result.cached else "MISS"

    return JSONResponse(
        status_code=result.status_code,
        content=result.to_body(),
        headers=headers,
    )
