"""Health endpoint tests."""

import pytest
from httpx import AsyncClient
from linktrace.enums import HealthStatus


@pytest.mark.asyncio
async def test_health_check(client: AsyncClient) -> None:
    response = await client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == HealthStatus.HEALTHY.value
    assert data["links"] == 0
    assert data["clicks"] == 0


@pytest.mark.asyncio
async def test_health_counts_links_and_clicks(client: AsyncClient) -> None:
    link_id = (await client.post("/api/links")).json()["link"]["id"]
    await client.get(f"/track/{link_id}")
    await client.get(f"/track/{link_id}")

    data = (await client.get("/health")).json()
    assert data["links"] == 1
    assert data["clicks"] == 2
