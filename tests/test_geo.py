"""Geo resolver tests against a mocked HTTP transport."""

import httpx
import pytest

from linktrace.geo import GeoResolver, parse_geo_response

URL_TEMPLATE = "http://geo.test/json/{ip}"

IP_API_SUCCESS = {
    "status": "success",
    "country": "United States",
    "countryCode": "US",
    "region": "VA",
    "regionName": "Virginia",
    "city": "Ashburn",
    "zip": "20149",
    "lat": 39.03,
    "lon": -77.5,
    "timezone": "America/New_York",
    "isp": "Google LLC",
    "org": "Google Public DNS",
    "as": "AS15169 Google LLC",
    "query": "8.8.8.8",
}


def _resolver(handler) -> GeoResolver:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return GeoResolver(URL_TEMPLATE, client=client)


def test_parse_geo_response_success() -> None:
    geo = parse_geo_response("8.8.8.8", IP_API_SUCCESS)
    assert geo is not None
    assert geo.ip == "8.8.8.8"
    assert geo.country == "United States"
    assert geo.country_code == "US"
    assert geo.region == "Virginia"
    assert geo.city == "Ashburn"
    assert geo.latitude == 39.03
    assert geo.longitude == -77.5
    assert geo.timezone == "America/New_York"
    assert geo.asn == "AS15169 Google LLC"


@pytest.mark.parametrize(
    "body",
    [
        {"status": "fail", "message": "private range", "query": "10.0.0.1"},
        {"country": "United States"},
        ["not", "an", "object"],
        None,
    ],
)
def test_parse_geo_response_rejects_unusable_bodies(body) -> None:
    assert parse_geo_response("8.8.8.8", body) is None


def test_parse_geo_response_ignores_bad_coordinates() -> None:
    geo = parse_geo_response("8.8.8.8", {**IP_API_SUCCESS, "lat": "north", "lon": True})
    assert geo.latitude is None
    assert geo.longitude is None


def test_url_template_requires_placeholder() -> None:
    with pytest.raises(ValueError):
        GeoResolver("http://geo.test/json/")


@pytest.mark.asyncio
async def test_lookup_success() -> None:
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(str(request.url))
        return httpx.Response(200, json=IP_API_SUCCESS)

    async with _resolver(handler) as resolver:
        geo = await resolver.lookup("8.8.8.8")

    assert seen == ["http://geo.test/json/8.8.8.8"]
    assert geo.city == "Ashburn"


@pytest.mark.asyncio
async def test_lookup_provider_failure_status() -> None:
    async with _resolver(lambda request: httpx.Response(200, json={"status": "fail"})) as resolver:
        assert await resolver.lookup("8.8.8.8") is None


@pytest.mark.asyncio
async def test_lookup_http_error_status() -> None:
    async with _resolver(lambda request: httpx.Response(503, text="busy")) as resolver:
        assert await resolver.lookup("8.8.8.8") is None


@pytest.mark.asyncio
async def test_lookup_malformed_body() -> None:
    async with _resolver(lambda request: httpx.Response(200, text="<html>oops</html>")) as resolver:
        assert await resolver.lookup("8.8.8.8") is None


@pytest.mark.asyncio
async def test_lookup_transport_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with _resolver(handler) as resolver:
        assert await resolver.lookup("8.8.8.8") is None


@pytest.mark.asyncio
async def test_lookup_timeout() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    async with _resolver(handler) as resolver:
        assert await resolver.lookup("8.8.8.8") is None
