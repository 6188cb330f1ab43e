"""Configuration management for the link tracking service.

This module provides centralized configuration management using Pydantic BaseSettings
with environment variable support and caching for performance.

Flow Diagram — get_settings()
=============================
::
    ┌─────────────┐
    │  Call get_  │
    │  settings() │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Check cache  │
    │ (lru_cache)  │
    └──────┬──────┘
    HIT?  │
    ┌─────┴─────┐
    │ NO         │ YES
    ▼            ▼
┌─────────┐  ┌─────────┐
│ Create  │  │ Return  │
│ Settings│  │ cached  │
│ instance│  │ value   │
└─────────┘  └─────────┘

How to Use
===========
**Step 1 — Import**::
    from linktrace.config import get_settings

**Step 2 — Get settings**::
    settings = get_settings()
    timeout = settings.GEO_LOOKUP_TIMEOUT_SECONDS

**Step 3 — Override via environment**::
    GEO_LOOKUP_ENABLED=false uvicorn linktrace.main:app

Key Behaviours
===============
- Settings are cached after first access for performance.
- Environment variables (and a local ``.env`` file) override defaults.
- ``PUBLIC_BASE_URL`` is optional; when unset, tracking URLs are derived
  from the Host header of the request that created the link.

Classes:
    Settings:  Pydantic model for all configuration values.

"""

__all__ = ["Settings", "get_settings"]

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    APP_NAME: str = "linktrace"
    APP_ENV: str = "development"
    LOG_LEVEL: str = "INFO"

    # Scheme + host used when building tracking URLs, e.g. "https://t.example.com".
    # Empty means "derive from the incoming request".
    PUBLIC_BASE_URL: str = ""
    DEFAULT_HOST: str = "localhost:8000"

    # Link identifiers
    LINK_ID_LENGTH: int = 10
    LINK_ID_MAX_ATTEMPTS: int = 5

    # Geo enrichment
    GEO_LOOKUP_ENABLED: bool = True
    GEO_LOOKUP_URL: str = "http://ip-api.com/json/{ip}"
    GEO_LOOKUP_TIMEOUT_SECONDS: float = 5.0

    # Tracking page
    GEOLOCATION_PROMPT_ENABLED: bool = True
    CLICK_UPDATE_PATH: str = "/api/click-update"

    CORS_ALLOW_ORIGINS: list[str] = ["*"]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
