"""In-memory link store — the single source of truth for links and clicks.

Every Link and Click mutation goes through ``LinkStore``. Readers get deep
copies, so no other component ever holds a writable view of a record.

Locking Layout
==============
::
    LinkStore
    ├─ _links: {link_id: Link}
    ├─ _link_locks: {link_id: asyncio.Lock}            append_click()
    └─ _click_locks: {(link_id, click_id): asyncio.Lock} update_click()

    append_click(A, c1) ──┐
    append_click(A, c2) ──┴─► serialized on lock(A) → clicks keep visit order

    update_click(A, c1, set geo)    ──┐
    update_click(A, c1, set client) ──┴─► serialized on lock(A, c1)
    update_click(A, c2, ...)        ────► independent of c1

How to Use
===========
**Step 1 — Create a link**::
    store = LinkStore()
    link = store.create_link("https://t.example.com")

**Step 2 — Record a visit**::
    await store.append_click(link.id, Click(id=click_id, timestamp=now))

**Step 3 — Enrich it later**::
    await store.update_click(link.id, click_id, lambda c: c.apply_client(payload))

Key Behaviours
===============
- Link ids come from nanoid; a colliding id is regenerated up to
  ``LINK_ID_MAX_ATTEMPTS`` times before ``LinkIdExhaustedError``.
- ``list_links()`` orders by ``created`` descending, newest insertion first
  on ties.
- Links are never deleted; clicks are append-only.
"""

import asyncio
import copy
import datetime
import logging
from collections.abc import Callable
from typing import Optional

from nanoid import generate

from linktrace.errors import ClickNotFoundError, LinkIdExhaustedError, LinkNotFoundError
from linktrace.models import Click, Link

__all__ = ["LinkStore", "LINK_ID_ALPHABET", "generate_link_id", "build_tracking_url"]

logger = logging.getLogger(__name__)

LINK_ID_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"
DEFAULT_LINK_ID_LENGTH = 10
DEFAULT_MAX_ATTEMPTS = 5


def generate_link_id(length: int = DEFAULT_LINK_ID_LENGTH) -> str:
    assert isinstance(length, int) and length > 0, f"length must be positive int, got {length!r}"
    return generate(LINK_ID_ALPHABET, length)


def build_tracking_url(base_url: str, link_id: str) -> str:
    return f"{base_url.rstrip('/')}/track/{link_id}"


def _utc_now() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class LinkStore:
    def __init__(
        self,
        id_length: int = DEFAULT_LINK_ID_LENGTH,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        id_generator: Optional[Callable[[], str]] = None,
        clock: Callable[[], datetime.datetime] = _utc_now,
    ) -> None:
        self._id_generator = id_generator or (lambda: generate_link_id(id_length))
        self._max_attempts = max_attempts
        self._clock = clock
        self._links: dict[str, Link] = {}
        self._sequence: dict[str, int] = {}
        self._link_locks: dict[str, asyncio.Lock] = {}
        self._click_locks: dict[tuple[str, str], asyncio.Lock] = {}

    # ========================================================================
    # LINKS
    # ========================================================================

    def create_link(self, base_url: str) -> Link:
        """Create and register a new Link with a fresh id.

        Raises:
            LinkIdExhaustedError: If every generated id collided.
        """
        for attempt in range(1, self._max_attempts + 1):
            link_id = self._id_generator()
            if link_id in self._links:
                logger.warning(f"Link id collision on attempt {attempt}: {link_id}")
                continue
            link = Link(id=link_id, url=build_tracking_url(base_url, link_id), created=self._clock())
            self._links[link_id] = link
            self._sequence[link_id] = len(self._sequence)
            self._link_locks[link_id] = asyncio.Lock()
            logger.debug(f"Link created: {link_id}")
            return copy.deepcopy(link)
        raise LinkIdExhaustedError(self._max_attempts)

    def list_links(self) -> list[Link]:
        ordered = sorted(
            self._links.values(),
            key=lambda link: (link.created, self._sequence[link.id]),
            reverse=True,
        )
        return [copy.deepcopy(link) for link in ordered]

    def get_link(self, link_id: str) -> Link:
        return copy.deepcopy(self._require_link(link_id))

    def has_link(self, link_id: str) -> bool:
        return link_id in self._links

    # ========================================================================
    # CLICKS
    # ========================================================================

    async def append_click(self, link_id: str, click: Click) -> None:
        """Append ``click`` to the link's history, preserving visit order.

        Raises:
            LinkNotFoundError: If ``link_id`` does not resolve.
            ValueError: If a click with the same id already exists on the link.
        """
        self._require_link(link_id)
        async with self._link_locks[link_id]:
            link = self._require_link(link_id)
            if (link_id, click.id) in self._click_locks:
                raise ValueError(f"Click id already recorded for link {link_id}: {click.id}")
            self._click_locks[(link_id, click.id)] = asyncio.Lock()
            link.clicks.append(copy.deepcopy(click))

    def find_click(self, link_id: str, click_id: str) -> Click:
        return copy.deepcopy(self._require_click(link_id, click_id))

    async def update_click(self, link_id: str, click_id: str, mutate: Callable[[Click], None]) -> Click:
        """Run ``mutate`` on the stored click while holding its lock.

        Returns a copy of the click as it stands after the mutation.
        """
        self._require_click(link_id, click_id)
        async with self._click_locks[(link_id, click_id)]:
            click = self._require_click(link_id, click_id)
            mutate(click)
            return copy.deepcopy(click)

    def stats(self) -> tuple[int, int]:
        """Return ``(link_count, click_count)``."""
        return len(self._links), len(self._click_locks)

    # ========================================================================
    # INTERNAL LOOKUPS
    # ========================================================================

    def _require_link(self, link_id: str) -> Link:
        link = self._links.get(link_id)
        if link is None:
            raise LinkNotFoundError(link_id)
        return link

    def _require_click(self, link_id: str, click_id: str) -> Click:
        link = self._require_link(link_id)
        if (link_id, click_id) not in self._click_locks:
            raise ClickNotFoundError(link_id, click_id)
        for click in link.clicks:
            if click.id == click_id:
                return click
        raise ClickNotFoundError(link_id, click_id)
