"""Pydantic schemas for request/response validation in the link tracker.

This module defines the wire format of the API. All field names are emitted
in camelCase; the client telemetry fragment is passed through verbatim.

Schema Hierarchy
=================
::
    LinkCreateResponse (Output)
    ├─ success: bool
    └─ link: LinkResponse

    LinkResponse (Output)
    ├─ id: str
    ├─ url: str
    ├─ created: datetime
    └─ clicks: list[ClickResponse]

    ClickResponse (Output)
    ├─ id, timestamp
    ├─ ip, userAgent, browser, os, device, engine
    ├─ referer, language, encoding, doNotTrack, timezone, country
    ├─ geo: GeoInfoResponse | None
    └─ client: dict | None

    ClickUpdate (Input)
    ├─ linkId: str
    ├─ clickId: str
    └─ ...any other keys (the client payload)

    ClickUpdateResponse (Output)
    └─ ok: bool

    HealthResponse (Output)
    ├─ status: HealthStatus
    ├─ links: int
    └─ clicks: int

How to Use
===========
**Step 1 — Serialize a link from the store**::
    link = store.get_link(link_id)
    return LinkResponse.model_validate(link)

**Step 2 — Split a callback body into key and payload**::
    update = ClickUpdate.model_validate(body)
    await engine.merge_client_payload(update.link_id, update.click_id, update.payload)

Key Behaviours
===============
- Output models read straight from the domain dataclasses (from_attributes).
- ``ClickUpdate`` keeps unknown keys; ``payload`` is everything except the
  two correlation keys.
- All datetime fields are timezone-aware UTC.

Classes:
    GeoInfoResponse:  Geo fragment.
    ClickResponse:  One click with all fragments.
    LinkResponse:  Link with its click history.
    LinkCreateResponse:  Envelope returned by POST /api/links.
    ClickUpdate:  Input schema for the client callback.
    ClickUpdateResponse:  Output of the client callback.
    HealthResponse:  Output schema for health checks.
"""

import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from linktrace.enums import HealthStatus

__all__ = [
    "GeoInfoResponse",
    "ClickResponse",
    "LinkResponse",
    "LinkCreateResponse",
    "ClickUpdate",
    "ClickUpdateResponse",
    "HealthResponse",
]

_camel_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class GeoInfoResponse(BaseModel):
    ip: str
    country: str | None = None
    country_code: str | None = None
    region: str | None = None
    city: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    timezone: str | None = None
    isp: str | None = None
    org: str | None = None
    asn: str | None = None

    model_config = _camel_config


class ClickResponse(BaseModel):
    id: str
    timestamp: datetime.datetime
    ip: str
    user_agent: str
    browser: str
    os: str
    device: str
    engine: str
    referer: str
    language: str
    encoding: str
    do_not_track: bool
    timezone: str
    country: str | None = None
    geo: GeoInfoResponse | None = None
    client: dict[str, Any] | None = None

    model_config = _camel_config


class LinkResponse(BaseModel):
    id: str
    url: str
    created: datetime.datetime
    clicks: list[ClickResponse] = Field(default_factory=list)

    model_config = _camel_config


class LinkCreateResponse(BaseModel):
    success: bool = True
    link: LinkResponse


class ClickUpdate(BaseModel):
    """Client telemetry callback body: the correlation key plus arbitrary fields."""

    link_id: str = Field(..., min_length=1)
    click_id: str = Field(..., min_length=1)

    model_config = ConfigDict(alias_generator=to_camel, extra="allow")

    @property
    def payload(self) -> dict[str, Any]:
        return dict(self.model_extra or {})


class ClickUpdateResponse(BaseModel):
    ok: bool


class HealthResponse(BaseModel):
    status: HealthStatus
    links: int
    clicks: int
