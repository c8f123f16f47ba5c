"""Example response endpoint."""

from fastapi import APIRouter, Depends

from chatproxy.app.api.chat import get_settings
from chatproxy.app.core.config import Settings
from chatproxy.app.core.logging import get_logger

router = APIRouter()
logger = get_logger(__name__)


@router.get("/example")
async def example(config: Settings = Depends(get_settings)) -> dict[str, str]:
    """Return the bundled sample of a structured answer, or "" if missing."""
    try:
        content = config.example_response_path.read_text(encoding="utf-8")
    except OSError as e:
        logger.debug(f"Example response unavailable: {e}")
        content = ""
    return {"response": content}
