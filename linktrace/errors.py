"""Typed errors raised by the link store and correlation engine.

Routes translate the not-found errors into 404 responses for the read
endpoints. The merge paths catch them and degrade to a no-op.
"""

__all__ = [
    "TrackerError",
    "NotFoundError",
    "LinkNotFoundError",
    "ClickNotFoundError",
    "LinkIdExhaustedError",
]


class TrackerError(Exception):
    """Base class for all linktrace errors."""


class NotFoundError(TrackerError, LookupError):
    pass


class LinkNotFoundError(NotFoundError):
    def __init__(self, link_id: str) -> None:
        super().__init__(f"Link not found: {link_id}")
        self.link_id = link_id


class ClickNotFoundError(NotFoundError):
    def __init__(self, link_id: str, click_id: str) -> None:
        super().__init__(f"Click not found: {link_id}/{click_id}")
        self.link_id = link_id
        self.click_id = click_id


class LinkIdExhaustedError(TrackerError):
    """No fresh link id could be generated within the configured attempts."""

    def __init__(self, attempts: int) -> None:
        super().__init__(f"Failed to generate a unique link id after {attempts} attempts")
        self.attempts = attempts
