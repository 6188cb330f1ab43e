"""Shared pytest fixtures for store, engine and API tests."""

from typing import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from linktrace.config import Settings
from linktrace.correlation import CorrelationEngine
from linktrace.dependencies import _service_manager
from linktrace.main import app
from linktrace.models import GeoInfo
from linktrace.store import LinkStore


@pytest.fixture
def settings() -> Settings:
    return Settings(PUBLIC_BASE_URL="", GEO_LOOKUP_ENABLED=True, GEO_LOOKUP_TIMEOUT_SECONDS=1.0)


@pytest.fixture
def sample_geo() -> GeoInfo:
    return GeoInfo(
        ip="8.8.8.8",
        country="United States",
        country_code="US",
        region="California",
        city="Mountain View",
        latitude=37.386,
        longitude=-122.0838,
        timezone="America/Los_Angeles",
        isp="Google LLC",
        org="Google Public DNS",
        asn="AS15169 Google LLC",
    )


@pytest.fixture
def geo_resolver(sample_geo: GeoInfo) -> MagicMock:
    """Geo resolver double that answers every lookup with ``sample_geo``."""
    resolver = MagicMock()
    resolver.lookup = AsyncMock(return_value=sample_geo)
    return resolver


@pytest.fixture
def store() -> LinkStore:
    return LinkStore()


@pytest.fixture
def engine(store: LinkStore, geo_resolver: MagicMock) -> CorrelationEngine:
    return CorrelationEngine(store, geo_resolver, geo_timeout=1.0)


@pytest_asyncio.fixture(scope="function")
async def client(settings: Settings, store: LinkStore, geo_resolver: MagicMock) -> AsyncGenerator[AsyncClient, None]:
    await _service_manager.cleanup()
    await _service_manager.initialize(settings=settings, store=store, geo_resolver=geo_resolver)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    await _service_manager.cleanup()


@pytest.fixture
def service_engine(client: AsyncClient) -> CorrelationEngine:
    """The engine the running app uses (valid inside tests using ``client``)."""
    return _service_manager.engine
