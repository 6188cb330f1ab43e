"""
Client IP resolution and geo-lookup eligibility.

``extract_client_ip`` works on a plain header mapping so it is testable
without a request object; ``get_client_ip`` adapts it to a FastAPI ``Request``.
"""

from __future__ import annotations

import ipaddress
from collections.abc import Mapping
from typing import Optional

from fastapi import Request

from linktrace.models import UNKNOWN

__all__ = ["extract_client_ip", "get_client_ip", "is_lookup_eligible"]


def extract_client_ip(headers: Mapping[str, str], peer: Optional[str]) -> str:
    """Resolve the visitor IP from proxy headers and the transport peer.

    Priority order:

    1. ``X-Forwarded-For`` — first entry, trimmed
    2. ``X-Real-IP``
    3. the transport-layer peer address
    4. ``"Unknown"``

    Args:
        headers: Request headers. Lookups use lower-case names.
        peer: Peer address reported by the server, if any.

    Returns:
        The resolved IP string, or ``"Unknown"``.
    """
    forwarded: str | None = headers.get("x-forwarded-for")
    if forwarded:
        first: str = forwarded.split(",")[0].strip()
        if first:
            return first

    real_ip: str | None = headers.get("x-real-ip")
    if real_ip and real_ip.strip():
        return real_ip.strip()

    return peer or UNKNOWN


def get_client_ip(request: Request) -> str:
    return extract_client_ip(request.headers, request.client.host if request.client else None)


def is_lookup_eligible(ip: str | None) -> bool:
    """Return True if *ip* is a public address worth sending to the geo resolver.

    Rejects the ``"Unknown"`` sentinel, unparseable strings and every
    private, loopback, link-local, multicast, reserved or unspecified address.
    IPv4-mapped IPv6 addresses are judged by their IPv4 form.
    """
    if not ip or ip == UNKNOWN:
        return False
    try:
        address = ipaddress.ip_address(ip.strip())
    except ValueError:
        return False

    if isinstance(address, ipaddress.IPv6Address) and address.ipv4_mapped is not None:
        address = address.ipv4_mapped

    return not (
        address.is_private
        or address.is_loopback
        or address.is_link_local
        or address.is_multicast
        or address.is_reserved
        or address.is_unspecified
    )
