"""HTTP middleware for request correlation and response hardening.

- ``request_id_middleware`` accepts an incoming X-Request-ID header or
  generates a UUID, exposes it to logs via contextvars and echoes it back
  together with the request duration.
- ``security_headers_middleware`` attaches standard browser security headers
  to every response, including the generic 500 for unhandled errors.

Usage:
    app.middleware("http")(request_id_middleware)
"""

from __future__ import annotations

import time
import uuid

from fastapi import Request, Response

from campus_api.core.exception_handlers import general_exception_handler
from campus_api.core.logging import clear_request_id, set_request_id

SECURITY_HEADERS: dict[str, str] = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Content-Security-Policy": "default-src 'self'",
    "Permissions-Policy": "geolocation=(), microphone=(), camera=()",
}

HSTS_HEADER = "Strict-Transport-Security"
HSTS_VALUE = "max-age=31536000; includeSubDomains"


async def request_id_middleware(request: Request, call_next) -> Response:
    """HTTP middleware for request ID generation and propagation.

    If the client provides the configured request-id header (default
    ``X-Request-ID``) that value is used, otherwise a new UUID is generated.
    The id is stored in contextvars for the duration of the request so every
    log record can be correlated.

    Args:
        request: The incoming HTTP request object.
        call_next: The next middleware/route handler in the stack.

    Returns:
        Response: The downstream response with request id and duration headers.
    """

    header_name = request.app.state.settings.log.request_id_header
    request_id = request.headers.get(header_name) or str(uuid.uuid4())
    set_request_id(request_id)
    start = time.perf_counter()
    try:
        response: Response = await call_next(request)
    finally:
        clear_request_id()

    duration_ms = (time.perf_counter() - start) * 1000
    response.headers[header_name] = request_id
    response.headers.setdefault("X-Request-Duration-ms", f"{duration_ms:.2f}")
    return response


def apply_security_headers(request: Request, response: Response) -> None:
    """Set the security headers on ``response``.

    HSTS is skipped for localhost so local HTTP development keeps working.
    """

    for name, value in SECURITY_HEADERS.items():
        response.headers[name] = value

    host = request.url.hostname or ""
    if "localhost" not in host.lower():
        response.headers[HSTS_HEADER] = HSTS_VALUE


async def security_headers_middleware(request: Request, call_next) -> Response:
    """HTTP middleware adding security headers to every response.

    Unhandled downstream errors become the generic 500 here, so that response
    is hardened and carries the request id as well.
    """

    try:
        response: Response = await call_next(request)
    except Exception as exc:
        response = await general_exception_handler(request, exc)
    if request.app.state.settings.app.security_headers_enabled:
        apply_security_headers(request, response)
    return response
