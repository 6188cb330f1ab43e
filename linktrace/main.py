"""FastAPI application entry point for the link tracking service.

This module configures and initializes the FastAPI application with middleware,
lifecycle management, and route registration.

Application Lifecycle Diagram
===========================
::
    ┌─────────────┐
    │  uvicorn    │
    │  startup    │
    └──────┬──────┘
           ▼
    ┌──────────────┐
    │ Create FastAPI│
    │ app instance  │
    └──────┬───────┘
           ▼
    ┌─────────────┐
    │ Add CORS    │
    │ middleware  │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Include     │
    │ routes      │
    └──────┬──────┘
           ▼
    ┌─────────────────┐
    │ lifespan()      │
    │ startup:        │
    │ store, resolver,│
    │ engine          │
    └──────┬──────────┘
           ▼
    ┌─────────────┐
    │ Serve HTTP  │
    │ requests    │
    └──────┬──────┘
           ▼
    ┌─────────────────┐
    │ lifespan()      │
    │ shutdown:       │
    │ drop pending geo│
    │ close resolver  │
    └─────────────────┘

How to Use
===========
**Step 1 — Run with uvicorn**::
    uvicorn linktrace.main:app --host 0.0.0.0 --port 8000 --reload

**Step 2 — Issue a link**::
    curl -X POST http://localhost:8000/api/links

**Step 3 — Inspect its clicks**::
    curl http://localhost:8000/api/links/<id>

Key Behaviours
===============
- All state is in memory; restarting the process forgets every link.
- CORS is enabled for ``CORS_ALLOW_ORIGINS`` (all origins by default).
- Prometheus metrics are exposed at /metrics.
- Geo lookups still pending at shutdown are cancelled and dropped.
"""

__all__ = ["app"]

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator

from linktrace.config import get_settings
from linktrace.dependencies import _service_manager
from linktrace.routes import router

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # Startup
    await _service_manager.initialize()
    yield
    # Shutdown
    await _service_manager.cleanup()


app = FastAPI(
    title=settings.APP_NAME,
    version="1.0.0",
    description="Tracking links that correlate server, client and geo data per visit",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

Instrumentator(
    should_group_status_codes=True,
    should_ignore_untemplated=False,
    should_respect_env_var=False,
).instrument(app).expose(app)

app.include_router(router)
