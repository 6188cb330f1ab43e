"""In-memory domain models for tracking links and their clicks.

Links and clicks live only in process memory inside ``LinkStore``; nothing in
this module touches a database.

Data Model Layout
=================
::
    Link
    ├─ id (opaque token, unique, immutable)
    ├─ url (tracking URL, immutable)
    ├─ created (UTC datetime, immutable)
    └─ clicks (append-only, visit order)
         └─ Click
            ├─ id, timestamp                      (immutable)
            ├─ ip, user_agent, browser, os,
            │  device, engine, referer, language,
            │  encoding, do_not_track, timezone   (server fragment, immutable)
            ├─ country                            (server fragment, geo may backfill)
            ├─ geo: GeoInfo | None                (geo fragment)
            └─ client: dict | None                (client fragment)

Key Behaviours
===============
- A Click is owned by exactly one Link and is never referenced elsewhere.
- ``geo`` and ``client`` start as ``None`` and are replaced wholesale on
  merge; there is no field-by-field reconciliation.
- ``country`` is only written by the geo merge when it is still ``None``.

Classes:
    GeoInfo:  Geolocation fragment returned by the geo resolver.
    Click:  One recorded visit to a Link.
    Link:  An issued tracking URL plus its visit history.
"""

import copy
import datetime
from dataclasses import dataclass, field
from typing import Any, Optional

__all__ = ["GeoInfo", "Click", "Link", "UNKNOWN"]

UNKNOWN = "Unknown"


@dataclass
class GeoInfo:
    ip: str
    country: Optional[str] = None
    country_code: Optional[str] = None
    region: Optional[str] = None
    city: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    timezone: Optional[str] = None
    isp: Optional[str] = None
    org: Optional[str] = None
    asn: Optional[str] = None


@dataclass
class Click:
    id: str
    timestamp: datetime.datetime
    ip: str = UNKNOWN
    user_agent: str = UNKNOWN
    browser: str = UNKNOWN
    os: str = UNKNOWN
    device: str = UNKNOWN
    engine: str = UNKNOWN
    referer: str = "Direct"
    language: str = UNKNOWN
    encoding: str = UNKNOWN
    do_not_track: bool = False
    timezone: str = UNKNOWN
    country: Optional[str] = None
    geo: Optional[GeoInfo] = None
    client: Optional[dict[str, Any]] = None

    def apply_geo(self, geo: GeoInfo) -> None:
        """Set the geo fragment and backfill ``country`` if the edge didn't supply one."""
        self.geo = copy.deepcopy(geo)
        if self.country is None and geo.country_code:
            self.country = geo.country_code

    def apply_client(self, payload: dict[str, Any]) -> None:
        self.client = copy.deepcopy(payload)


@dataclass
class Link:
    id: str
    url: str
    created: datetime.datetime
    clicks: list[Click] = field(default_factory=list)

    def __repr__(self) -> str:
        return f"<Link(id='{self.id}', clicks={len(self.clicks)})>"
