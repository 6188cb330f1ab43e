"""Shared enums for the link tracking service.

This module defines all status and outcome enums used across the codebase.
Using enums instead of string literals provides type safety and prevents typos.
"""

from enum import StrEnum

__all__ = ["HealthStatus", "GeoOutcome", "MergeOutcome"]


class HealthStatus(StrEnum):
    """Health check status values."""

    HEALTHY = "healthy"


class GeoOutcome(StrEnum):
    """Result of one background geo merge, used for logging and metric labels."""

    RESOLVED = "resolved"
    SKIPPED = "skipped"
    EMPTY = "empty"
    TIMEOUT = "timeout"
    FAILED = "failed"
    NOT_FOUND = "not_found"


class MergeOutcome(StrEnum):
    """Result of a client-payload merge."""

    APPLIED = "applied"
    NOT_FOUND = "not_found"
