"""FastAPI route definitions for the link tracking API.

This module is the delivery surface over the link store and the correlation
engine: it issues tracking links, turns visits into click records, serves the
tracking page and accepts the page's telemetry callback.

API Endpoint Overview
=====================
::
    GET  /health
        └─ HealthResponse (200)

    POST /api/links
        └─ LinkCreateResponse (201)

    GET  /api/links
        └─ list[LinkResponse] (200), newest first

    GET  /api/links/:id
        └─ LinkResponse (200) or 404

    GET  /track/:id
        └─ tracking page (200, text/html) or 404 (text/plain)

    POST /api/click-update
        └─ ClickUpdateResponse (200), always

Request Flow Diagram — Visit
============================
::
    ┌─────────────┐
    │ GET /track/ │
    │ :id         │
    └──────┬──────┘
           ▼
    ┌─────────────┐      missing
    │ register_   │ ─────────────► 404 "Link not found"
    │ visit()     │
    └──────┬──────┘
           ▼
    ┌─────────────┐      ┌──────────────┐
    │ Click       │ ───► │ geo lookup   │  background, not awaited
    │ appended    │      │ task         │
    └──────┬──────┘      └──────────────┘
           ▼
    ┌─────────────┐
    │ Render page │ ───► browser POSTs /api/click-update
    └─────────────┘

Key Behaviours
===============
- ``/api/click-update`` never returns an error status: unknown ids and
  malformed bodies both answer ``{"ok": false}``.
- Tracking URLs use ``PUBLIC_BASE_URL`` when set, otherwise the scheme
  (``X-Forwarded-Proto`` aware) and Host of the creating request.
- All enrichment happens off the request path; the visit only waits for the
  click to be appended.
"""

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import HTMLResponse, PlainTextResponse
from pydantic import ValidationError

from linktrace.correlation import VisitContext
from linktrace.dependencies import RequestContext, get_request_context
from linktrace.enums import HealthStatus
from linktrace.errors import LinkIdExhaustedError, LinkNotFoundError
from linktrace.rendering import render_tracking_page
from linktrace.schemas import (
    ClickUpdate,
    ClickUpdateResponse,
    HealthResponse,
    LinkCreateResponse,
    LinkResponse,
)

__all__ = ["router"]

router = APIRouter()


def _public_base_url(request: Request, ctx: RequestContext) -> str:
    if ctx.settings.PUBLIC_BASE_URL:
        return ctx.settings.PUBLIC_BASE_URL
    scheme = request.headers.get("x-forwarded-proto") or request.url.scheme or "http"
    host = request.headers.get("host") or ctx.settings.DEFAULT_HOST
    return f"{scheme.split(',')[0].strip()}://{host}"


@router.get("/health", response_model=HealthResponse, tags=["health"])
async def health_check(ctx: RequestContext = Depends(get_request_context)) -> HealthResponse:
    links, clicks = ctx.store.stats()
    ctx.logger.debug(f"Health check: {links} links, {clicks} clicks")
    return HealthResponse(status=HealthStatus.HEALTHY, links=links, clicks=clicks)


@router.post("/api/links", response_model=LinkCreateResponse, status_code=201, tags=["links"])
async def create_link(
    request: Request,
    ctx: RequestContext = Depends(get_request_context),
) -> LinkCreateResponse:
    ctx.add_tag("link_creation")
    try:
        link = ctx.store.create_link(_public_base_url(request, ctx))
    except LinkIdExhaustedError as exc:
        ctx.logger.error(f"Link creation failed: {exc}", extra={"operation": "create_link"})
        raise HTTPException(status_code=500, detail="Failed to generate link id") from exc

    ctx.logger.info(
        f"Link created: {link.id}",
        extra={"operation": "create_link", "link_id": link.id, "duration_ms": ctx.get_duration()},
    )
    return LinkCreateResponse(success=True, link=LinkResponse.model_validate(link))


@router.get("/api/links", response_model=list[LinkResponse], tags=["links"])
async def list_links(ctx: RequestContext = Depends(get_request_context)) -> list[LinkResponse]:
    return [LinkResponse.model_validate(link) for link in ctx.store.list_links()]


@router.get("/api/links/{link_id}", response_model=LinkResponse, tags=["links"])
async def get_link(link_id: str, ctx: RequestContext = Depends(get_request_context)) -> LinkResponse:
    try:
        link = ctx.store.get_link(link_id)
    except LinkNotFoundError as exc:
        ctx.logger.warning(f"Link not found: {link_id}")
        raise HTTPException(status_code=404, detail="Link not found") from exc
    return LinkResponse.model_validate(link)


@router.get("/track/{link_id}", response_class=HTMLResponse, tags=["tracking"])
async def track_visit(
    link_id: str,
    request: Request,
    ctx: RequestContext = Depends(get_request_context),
):
    ctx.add_tag("visit")
    visit = VisitContext(
        headers=request.headers,
        peer=request.client.host if request.client else None,
    )
    try:
        result = await ctx.engine.register_visit(link_id, visit)
    except LinkNotFoundError:
        ctx.logger.warning(
            f"Visit for unknown link: {link_id}",
            extra={"operation": "track", "link_id": link_id, "error": "not_found"},
        )
        return PlainTextResponse("Link not found", status_code=404)

    ctx.logger.info(
        f"Visit tracked: {link_id}/{result.click_id}",
        extra={
            "operation": "track",
            "link_id": link_id,
            "click_id": result.click_id,
            "duration_ms": ctx.get_duration(),
        },
    )
    return render_tracking_page(request, link_id, result.click_id, ctx.settings)


@router.post("/api/click-update", response_model=ClickUpdateResponse, tags=["tracking"])
async def click_update(
    request: Request,
    ctx: RequestContext = Depends(get_request_context),
) -> ClickUpdateResponse:
    try:
        update = ClickUpdate.model_validate(await request.json())
    except (ValueError, ValidationError) as exc:
        ctx.logger.info(f"Malformed click update ignored: {exc.__class__.__name__}")
        return ClickUpdateResponse(ok=False)

    ok = await ctx.engine.merge_client_payload(update.link_id, update.click_id, update.payload)
    return ClickUpdateResponse(ok=ok)
