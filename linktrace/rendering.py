"""Tracking page rendering.

The page returned by ``GET /track/{id}`` shows a loading indicator, collects
whatever browser signals the runtime allows (each one isolated so a failing
signal only nulls its own field), posts them once to the click-update
endpoint, and optionally offers a consented device-location step that
re-posts the full payload with the coordinates added.
"""

from pathlib import Path

from fastapi import Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from linktrace.config import Settings

__all__ = ["templates", "render_tracking_page"]

TEMPLATES_DIR = Path(__file__).parent / "templates"

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))


def render_tracking_page(request: Request, link_id: str, click_id: str, settings: Settings) -> HTMLResponse:
    return templates.TemplateResponse(
        request,
        "track.html",
        {
            "link_id": link_id,
            "click_id": click_id,
            "callback_path": settings.CLICK_UPDATE_PATH,
            "geolocation_prompt": settings.GEOLOCATION_PROMPT_ENABLED,
        },
        headers={"Cache-Control": "no-store"},
    )
