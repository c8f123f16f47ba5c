"""HTTP routes for chatproxy."""

from chatproxy.app.api.chat import router as chat_router
from chatproxy.app.api.example import router as example_router
from chatproxy.app.api.pages import router as pages_router

__all__ = ["chat_router", "example_router", "pages_router"]
