"""Application factory for the FastAPI app.

Centralizes app construction (settings, limiter, middleware, handlers,
routers) so tests can build isolated instances with their own state.
"""

from __future__ import annotations

import asyncio
import contextlib
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from campus_api import __version__
from campus_api.adapters.rate_limit.base import AbstractAdmissionLimiter
from campus_api.api.routes import health_router
from campus_api.core.config import Settings, settings as default_settings
from campus_api.core.exception_handlers import setup_exception_handlers
from campus_api.core.logging import configure_logging
from campus_api.core.middleware import request_id_middleware, security_headers_middleware
from campus_api.core.rate_limit import (
    build_admission_limiter,
    rate_limit_middleware,
    run_periodic_sweep,
)


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Run the limiter sweeper for the lifetime of the app."""
    sweeper = asyncio.create_task(
        run_periodic_sweep(
            app.state.admission_limiter,
            app.state.settings.app.rate_limit_sweep_interval_seconds,
        )
    )
    try:
        yield
    finally:
        sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sweeper


def create_app(
    app_settings: Settings | None = None,
    *,
    limiter: AbstractAdmissionLimiter | None = None,
    configure_logs: bool = True,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        app_settings: Settings to use; defaults to the environment-derived ones.
        limiter: Admission limiter to use; built from settings when omitted.
        configure_logs: Whether to (re)configure the root logger.

    Returns:
        Configured FastAPI app with middleware, handlers and routers.
    """
    cfg = app_settings or default_settings

    # Logging first so subsequent init logs are formatted as desired
    if configure_logs:
        configure_logging(cfg.log)

    app = FastAPI(
        title="Campus Club API",
        description=(
            "Request pipeline for the campus club and event management API. "
            "Throttles login and registration attempts per client and adds "
            "security headers and request correlation to every response."
        ),
        version=__version__,
        lifespan=_lifespan,
    )

    app.state.settings = cfg
    app.state.protected_endpoints = cfg.app.protected_endpoints
    app.state.admission_limiter = limiter or build_admission_limiter(cfg.app)

    # Middleware: the last one registered runs outermost, so the request id
    # and security headers also cover throttled responses.
    app.middleware("http")(rate_limit_middleware)
    app.middleware("http")(security_headers_middleware)
    app.middleware("http")(request_id_middleware)

    setup_exception_handlers(app)

    app.include_router(health_router)

    return app
