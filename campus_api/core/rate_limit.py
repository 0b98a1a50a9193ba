"""Admission limiting for the authentication endpoints.

This module wires the limiter adapter into the HTTP layer:

- ``build_admission_limiter`` constructs the limiter from settings; the app
  factory owns the instance and stores it on ``app.state``.
- ``rate_limit_middleware`` runs the admission protocol before routing.
- ``run_periodic_sweep`` drops fully expired keys in the background.

Only requests whose lower-cased path exactly matches a protected endpoint are
counted. Every admitted request counts, whatever its downstream outcome.
"""

from __future__ import annotations

import asyncio
import logging
import math
import time
from typing import Callable

from fastapi import Request, Response

from campus_api.adapters.rate_limit.base import (
    AbstractAdmissionLimiter,
    AdmissionDecision,
    ClientKey,
    RateLimitPolicy,
)
from campus_api.adapters.rate_limit.in_memory import InMemorySlidingWindowLimiter
from campus_api.core.client_identity import get_client_identifier
from campus_api.core.config import AppSettings
from campus_api.core.errors import ErrorKind
from campus_api.core.exception_handlers import error_response
from campus_api.core.logging import hash_identifier

logger = logging.getLogger(__name__)


def build_admission_limiter(
    app_settings: AppSettings, *, clock: Callable[[], float] = time.monotonic
) -> InMemorySlidingWindowLimiter:
    """Construct the limiter for the configured protected endpoints.

    Registration endpoints get their own (looser, longer) policy; every other
    protected endpoint uses the default one.

    Args:
        app_settings: Resolved application settings.
        clock: Time source handed to the limiter.

    Returns:
        InMemorySlidingWindowLimiter: New limiter with empty state.
    """

    register_policy = RateLimitPolicy(
        max_requests=app_settings.rate_limit_register_requests,
        window_seconds=app_settings.rate_limit_register_window_seconds,
    )
    endpoint_policies = {
        path: register_policy
        for path in app_settings.protected_endpoints
        if "register" in path
    }

    return InMemorySlidingWindowLimiter(
        limit=app_settings.rate_limit_requests,
        window_seconds=app_settings.rate_limit_window_seconds,
        endpoint_policies=endpoint_policies,
        clock=clock,
    )


def _try_admit(limiter: AbstractAdmissionLimiter, key: ClientKey) -> AdmissionDecision | None:
    """Run the atomic admission check, failing open on limiter errors.

    Returns:
        The limiter's decision, or None when the limiter raised.
    """
    try:
        return limiter.try_acquire(key)
    except Exception:
        logger.exception(
            "rate_limit.limiter_error",
            extra={
                "endpoint": key.endpoint,
                "client_hash": hash_identifier(key.client_id),
            },
        )
        return None


def build_rate_limited_response(retry_after_seconds: float | None) -> Response:
    """Build the 429 response, with a whole-second Retry-After hint when known."""

    headers: dict[str, str] = {}
    if retry_after_seconds is not None:
        headers["Retry-After"] = str(math.ceil(retry_after_seconds))

    return error_response(ErrorKind.RATE_LIMITED, headers=headers or None)


async def rate_limit_middleware(request: Request, call_next) -> Response:
    """HTTP middleware enforcing admission limits on protected endpoints.

    Protocol:
        1. Requests outside the protected set pass through untouched.
        2. The client identifier and lower-cased path form the bucket key.
        3. A blocked key gets HTTP 429 without consuming budget.
        4. An admitted key is recorded and handed to the next handler.

    Args:
        request: The incoming HTTP request object.
        call_next: The next middleware/route handler in the stack.

    Returns:
        Response: 429 when throttled, otherwise the downstream response.
    """

    app_settings: AppSettings = request.app.state.settings.app
    path = request.url.path.lower()

    if not app_settings.rate_limit_enabled or path not in request.app.state.protected_endpoints:
        return await call_next(request)

    limiter: AbstractAdmissionLimiter = request.app.state.admission_limiter
    client_id = get_client_identifier(
        request, trust_forwarded_for=app_settings.trust_forwarded_for
    )
    key = ClientKey(client_id=client_id, endpoint=path)
    client_hash = hash_identifier(client_id)

    decision = _try_admit(limiter, key)
    if decision is None or decision.allowed:
        if decision is not None:
            logger.info(
                "rate_limit.allowed",
                extra={
                    "endpoint": path,
                    "client_hash": client_hash,
                    "limit": decision.limit,
                    "remaining": decision.remaining,
                },
            )
        return await call_next(request)

    logger.warning(
        "rate_limit.exceeded",
        extra={
            "endpoint": path,
            "client_hash": client_hash,
            "limit": decision.limit,
            "retry_after_s": decision.retry_after_seconds,
        },
    )
    return build_rate_limited_response(decision.retry_after_seconds)


async def run_periodic_sweep(
    limiter: AbstractAdmissionLimiter, interval_seconds: float
) -> None:
    """Sweep fully expired keys every ``interval_seconds`` until cancelled.

    A failing sweep is logged and retried on the next tick.
    """

    logger.info("rate_limit.sweeper_started", extra={"interval_s": interval_seconds})
    try:
        while True:
            await asyncio.sleep(interval_seconds)
            try:
                removed = limiter.sweep()
            except Exception:
                logger.exception("rate_limit.sweep_failed")
                continue
            logger.debug("rate_limit.sweep", extra={"removed_keys": removed})
    finally:
        logger.info("rate_limit.sweeper_stopped")
