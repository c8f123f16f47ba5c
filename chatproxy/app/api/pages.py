"""HTML pages: service index and interactive API docs."""

from html import escape

from fastapi import APIRouter, Depends, Request
from fastapi.openapi.docs import get_swagger_ui_html
from fastapi.responses import HTMLResponse

from chatproxy.app.api.chat import get_settings
from chatproxy.app.core.config import Settings

router = APIRouter(include_in_schema=False)

INDEX_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>{title}</title>
</head>
<body>
  <h1>{title}</h1>
  <p>Model: <code>{llm_model}</code></p>
  <p>Endpoint: <code>{llm_base_url}</code></p>
  <p>Send <code>POST /api/chat</code> with <code>{{"message": "..."}}</code>.
     See the <a href="/api/docs">API docs</a>.</p>
</body>
</html>
"""


@router.get("/", response_class=HTMLResponse)
async def index(config: Settings = Depends(get_settings)) -> HTMLResponse:
    """Landing page showing the configured model and upstream endpoint."""
    return HTMLResponse(
        INDEX_TEMPLATE.format(
            title=escape(config.app_name),
            llm_model=escape(config.llm_model_name),
            llm_base_url=escape(config.llm_base_url),
        )
    )


@router.get("/api/docs", response_class=HTMLResponse)
async def api_docs(request: Request) -> HTMLResponse:
    return get_swagger_ui_html(
        openapi_url=request.app.openapi_url,
        title=f"{request.app.title} - API docs",
    )
