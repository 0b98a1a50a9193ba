"""Client identifier derivation for per-client request accounting."""

from __future__ import annotations

from fastapi import Request

FORWARDED_FOR_HEADER = "X-Forwarded-For"
UNKNOWN_CLIENT = "unknown"


def get_client_identifier(request: Request, *, trust_forwarded_for: bool = True) -> str:
    """Derive an opaque client identifier for the request.

    The first entry of ``X-Forwarded-For`` is the originating client when the
    service runs behind a proxy or load balancer. Without it, the transport
    peer address is used.

    Args:
        request: Incoming request.
        trust_forwarded_for: Whether the forwarded header may be used.

    Returns:
        Client identifier, or ``"unknown"`` when nothing is available.

    Examples:
        ``X-Forwarded-For: 9.9.9.9, 10.0.0.1`` -> ``"9.9.9.9"``
    """
    if trust_forwarded_for:
        forwarded_for = request.headers.get(FORWARDED_FOR_HEADER)
        if forwarded_for:
            first_hop = forwarded_for.split(",")[0].strip()
            if first_hop:
                return first_hop

    if request.client and request.client.host:
        return request.client.host

    return UNKNOWN_CLIENT
