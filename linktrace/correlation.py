"""Click-record correlation engine.

A Click is assembled from three fragments that arrive independently:

- the **server fragment**, built synchronously from the visit request,
- the **geo fragment**, produced by a detached background lookup,
- the **client fragment**, posted back by the tracking page.

Each fragment is addressed by the correlation key ``(link_id, click_id)``
and merged through ``LinkStore.update_click``, which serializes writers per
click. Nothing orders the geo merge relative to the client merge, and either
may never happen.

Click Lifecycle
===============
::
                      ┌──────────────┐
     GET /track/{id} ─►│   CREATED    │  server fragment, geo=None, client=None
                      └──────┬───────┘
              ┌──────────────┴──────────────┐
              ▼                             ▼
    ┌──────────────────┐          ┌──────────────────┐
    │ merge_geo()      │          │ merge_client_    │
    │ (background task)│          │ payload()        │
    │ geo := GeoInfo   │          │ client := payload│
    │ country ?= code  │          │ (replace, LWW)   │
    └──────────────────┘          └──────────────────┘
      optional, once                optional, LWW on repeat

Visit Flow
==========
::
    register_visit(link_id, visit)
      │
      ├─ link missing? ──► LinkNotFoundError (store untouched)
      ├─ extract IP (X-Forwarded-For → X-Real-IP → peer → "Unknown")
      ├─ classify(User-Agent)
      ├─ append Click                       ◄── done before returning
      ├─ spawn merge_geo(...) task          ◄── not awaited
      └─ return VisitResult(link_id, click_id)

Key Behaviours
===============
- Enrichment failures never propagate: a missing link/click, a resolver
  error or a timeout all end as a logged no-op.
- Private, loopback and link-local addresses never reach the resolver.
- Both merges replace their fragment wholesale; calling either twice keeps
  the latest value.
- ``close()`` cancels lookups still in flight; their results are dropped.
"""

import asyncio
import datetime
import logging
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol

from prometheus_client import Counter

from linktrace.classifier import classify
from linktrace.enums import GeoOutcome, MergeOutcome
from linktrace.errors import LinkNotFoundError, NotFoundError
from linktrace.ip_utils import extract_client_ip, is_lookup_eligible
from linktrace.models import UNKNOWN, Click, GeoInfo
from linktrace.store import LinkStore

__all__ = [
    "GeoLookup",
    "VisitContext",
    "VisitResult",
    "CorrelationEngine",
    "build_click",
]

logger = logging.getLogger(__name__)

DEFAULT_GEO_TIMEOUT_SECONDS = 5.0

# ============================================================================
# PROMETHEUS METRICS
# ============================================================================

VISITS_TOTAL = Counter(
    "linktrace_visits_total",
    "Tracking link visits",
    ["status"],
)
CLIENT_MERGES_TOTAL = Counter(
    "linktrace_client_merges_total",
    "Client telemetry merges",
    ["outcome"],
)
GEO_MERGES_TOTAL = Counter(
    "linktrace_geo_merges_total",
    "Background geo merges",
    ["outcome"],
)


# ============================================================================
# DATA STRUCTURES
# ============================================================================


class GeoLookup(Protocol):
    async def lookup(self, ip: str) -> Optional[GeoInfo]: ...


@dataclass
class VisitContext:
    """Request metadata the engine needs to build the server fragment.

    Attributes:
        headers: Request headers; lookups use lower-case names.
        peer: Transport-layer peer address, if the server reported one.
        timestamp: Visit time; defaults to now (UTC).
    """

    headers: Mapping[str, str] = field(default_factory=dict)
    peer: Optional[str] = None
    timestamp: datetime.datetime = field(
        default_factory=lambda: datetime.datetime.now(datetime.timezone.utc)
    )


@dataclass(frozen=True)
class VisitResult:
    link_id: str
    click_id: str


def _first_token(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    token = value.split(",")[0].split(";")[0].strip()
    return token or None


def build_click(click_id: str, visit: VisitContext) -> Click:
    """Build a Click carrying only the server-observed fragment."""
    headers = visit.headers
    user_agent = headers.get("user-agent") or UNKNOWN
    ua_info = classify(user_agent)

    return Click(
        id=click_id,
        timestamp=visit.timestamp,
        ip=extract_client_ip(headers, visit.peer),
        user_agent=user_agent,
        browser=ua_info.browser,
        os=ua_info.os,
        device=ua_info.device,
        engine=ua_info.engine,
        referer=headers.get("referer") or headers.get("referrer") or "Direct",
        language=_first_token(headers.get("accept-language")) or UNKNOWN,
        encoding=headers.get("accept-encoding") or UNKNOWN,
        do_not_track=headers.get("dnt") == "1",
        timezone=headers.get("x-timezone") or UNKNOWN,
        country=headers.get("cf-ipcountry") or None,
    )


# ============================================================================
# CORE ENGINE
# ============================================================================


class CorrelationEngine:
    """Creates clicks on visit and merges late-arriving fragments into them.

    Example:
        >>> engine = CorrelationEngine(store, geo_resolver)
        >>> result = await engine.register_visit(link.id, VisitContext(headers=headers, peer=peer))
        >>> await engine.merge_client_payload(link.id, result.click_id, {"screen": "1920x1080"})
        True
    """

    def __init__(
        self,
        store: LinkStore,
        geo_resolver: Optional[GeoLookup] = None,
        geo_timeout: float = DEFAULT_GEO_TIMEOUT_SECONDS,
        geo_enabled: bool = True,
    ) -> None:
        self._store = store
        self._geo_resolver = geo_resolver
        self._geo_timeout = geo_timeout
        self._geo_enabled = geo_enabled and geo_resolver is not None
        self._tasks: set[asyncio.Task] = set()

    @property
    def store(self) -> LinkStore:
        return self._store

    @property
    def pending_geo_tasks(self) -> frozenset[asyncio.Task]:
        return frozenset(self._tasks)

    # ========================================================================
    # VISITS
    # ========================================================================

    async def register_visit(self, link_id: str, visit: VisitContext) -> VisitResult:
        """Record a visit and kick off background geo enrichment.

        Raises:
            LinkNotFoundError: If ``link_id`` does not resolve. The store is
                not modified in that case.
        """
        if not self._store.has_link(link_id):
            VISITS_TOTAL.labels(status="not_found").inc()
            raise LinkNotFoundError(link_id)

        click = build_click(str(uuid.uuid4()), visit)
        try:
            await self._store.append_click(link_id, click)
        except LinkNotFoundError:
            VISITS_TOTAL.labels(status="not_found").inc()
            raise

        VISITS_TOTAL.labels(status="registered").inc()
        logger.info(
            f"Visit registered: {link_id}/{click.id}",
            extra={"link_id": link_id, "click_id": click.id, "browser": click.browser, "os": click.os},
        )

        self._spawn_geo_merge(link_id, click.id, click.ip)
        return VisitResult(link_id=link_id, click_id=click.id)

    def _spawn_geo_merge(self, link_id: str, click_id: str, ip: str) -> None:
        task = asyncio.get_running_loop().create_task(
            self.merge_geo(link_id, click_id, ip),
            name=f"geo-merge:{link_id}/{click_id}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    # ========================================================================
    # GEO FRAGMENT
    # ========================================================================

    async def merge_geo(self, link_id: str, click_id: str, ip: str) -> GeoOutcome:
        """Resolve ``ip`` and merge the result into the click, never raising."""
        outcome = await self._merge_geo(link_id, click_id, ip)
        GEO_MERGES_TOTAL.labels(outcome=outcome).inc()
        logger.debug(f"Geo merge {outcome}: {link_id}/{click_id} ip={ip}")
        return outcome

    async def _merge_geo(self, link_id: str, click_id: str, ip: str) -> GeoOutcome:
        if not self._geo_enabled or not is_lookup_eligible(ip):
            return GeoOutcome.SKIPPED

        try:
            self._store.find_click(link_id, click_id)
        except NotFoundError:
            return GeoOutcome.NOT_FOUND

        try:
            geo = await asyncio.wait_for(self._geo_resolver.lookup(ip), timeout=self._geo_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Geo lookup timed out after {self._geo_timeout}s for {ip}")
            return GeoOutcome.TIMEOUT
        except Exception as exc:
            logger.error(f"Geo lookup failed for {ip}: {exc!r}")
            return GeoOutcome.FAILED

        if geo is None:
            return GeoOutcome.EMPTY

        try:
            await self._store.update_click(link_id, click_id, lambda click: click.apply_geo(geo))
        except NotFoundError:
            return GeoOutcome.NOT_FOUND
        return GeoOutcome.RESOLVED

    # ========================================================================
    # CLIENT FRAGMENT
    # ========================================================================

    async def merge_client_payload(self, link_id: str, click_id: str, payload: Mapping[str, Any]) -> bool:
        """Replace the click's client fragment with ``payload``.

        Returns:
            bool: ``True`` if the click was found and updated, ``False`` otherwise.
        """
        try:
            await self._store.update_click(link_id, click_id, lambda click: click.apply_client(dict(payload)))
        except NotFoundError:
            CLIENT_MERGES_TOTAL.labels(outcome=MergeOutcome.NOT_FOUND).inc()
            logger.info(f"Client payload for unknown click ignored: {link_id}/{click_id}")
            return False

        CLIENT_MERGES_TOTAL.labels(outcome=MergeOutcome.APPLIED).inc()
        logger.debug(f"Client payload merged: {link_id}/{click_id} ({len(payload)} fields)")
        return True

    # ========================================================================
    # LIFECYCLE
    # ========================================================================

    async def wait_for_geo(self) -> None:
        """Wait until every geo merge spawned so far has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def close(self) -> None:
        """Cancel pending geo lookups; their results are dropped."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info(f"Dropped {len(tasks)} pending geo lookups on shutdown")
        self._tasks.clear()
