"""Async geolocation resolver backed by an HTTP JSON provider.

The provider is treated as slow and unreliable. Every failure mode collapses
to ``None``:

- transport errors and client-side timeouts,
- non-2xx responses,
- bodies that are not JSON objects,
- provider replies whose ``status`` is not ``"success"``.

The default provider is ip-api.com; ``GEO_LOOKUP_URL`` must contain an
``{ip}`` placeholder and return the same JSON shape.

The resolver does not filter addresses itself. The correlation engine checks
``is_lookup_eligible()`` before calling ``lookup()``.
"""

import logging
import time
from typing import Any, Optional

import httpx
from prometheus_client import Histogram

from linktrace.models import GeoInfo

__all__ = ["GeoResolver", "parse_geo_response"]

logger = logging.getLogger(__name__)

GEO_LOOKUP_DURATION = Histogram(
    "linktrace_geo_lookup_duration_seconds",
    "Time spent waiting on the geolocation provider",
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)


def _text(data: dict[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    if value is None or value == "":
        return None
    return str(value)


def _number(data: dict[str, Any], key: str) -> Optional[float]:
    value = data.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def parse_geo_response(ip: str, data: Any) -> Optional[GeoInfo]:
    """Translate an ip-api.com style body into ``GeoInfo``, or ``None`` if unusable."""
    if not isinstance(data, dict) or data.get("status") != "success":
        return None
    return GeoInfo(
        ip=_text(data, "query") or ip,
        country=_text(data, "country"),
        country_code=_text(data, "countryCode"),
        region=_text(data, "regionName"),
        city=_text(data, "city"),
        latitude=_number(data, "lat"),
        longitude=_number(data, "lon"),
        timezone=_text(data, "timezone"),
        isp=_text(data, "isp"),
        org=_text(data, "org"),
        asn=_text(data, "as"),
    )


class GeoResolver:
    """Thin wrapper around ``httpx.AsyncClient`` for one geolocation provider."""

    def __init__(
        self,
        url_template: str,
        timeout: float = 5.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        if "{ip}" not in url_template:
            raise ValueError("url_template must contain an '{ip}' placeholder")
        self._url_template = url_template
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def lookup(self, ip: str) -> Optional[GeoInfo]:
        url = self._url_template.format(ip=ip)
        start_time = time.perf_counter()
        try:
            response = await self._client.get(url)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as exc:
            logger.warning(f"Geo provider returned {exc.response.status_code} for {ip}")
            return None
        except httpx.HTTPError as exc:
            logger.warning(f"Geo provider request failed for {ip}: {exc!r}")
            return None
        except ValueError:
            logger.warning(f"Geo provider returned a malformed body for {ip}")
            return None
        finally:
            GEO_LOOKUP_DURATION.observe(time.perf_counter() - start_time)

        geo = parse_geo_response(ip, data)
        if geo is None:
            logger.debug(f"Geo provider had no data for {ip}: {data!r}")
        return geo

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "GeoResolver":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()
