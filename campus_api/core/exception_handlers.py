"""Global exception handlers for consistent error responses.

Errors are translated by category: every ``AppError`` carries an
``ErrorKind`` and ``ERROR_RESPONSES`` maps the kind to an HTTP status and a
client-facing message. All bodies use the ``ApiResponse`` envelope.

Design:
- AppError -> status looked up by kind (400, 404, ...)
- Request validation -> 400
- HTTPException -> its own status, enveloped
- Unexpected Exception -> generic 500 (safety net, nothing leaked)
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from campus_api.core.errors import AppError, ErrorKind
from campus_api.core.logging import get_request_id
from campus_api.schemas.responses import ApiResponse

logger = logging.getLogger(__name__)


ERROR_RESPONSES: dict[ErrorKind, tuple[int, str]] = {
    ErrorKind.VALIDATION: (400, "Invalid request parameters"),
    ErrorKind.INVALID_OPERATION: (400, "Invalid operation"),
    ErrorKind.NOT_FOUND: (404, "Resource not found"),
    ErrorKind.RATE_LIMITED: (429, "Too many requests. Please try again later."),
    ErrorKind.INTERNAL: (500, "An internal server error occurred"),
}


def error_response(
    kind: ErrorKind,
    errors: list[str] | None = None,
    *,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Build the enveloped JSON error response for an error kind.

    Args:
        kind: Error category.
        errors: Detail messages for the client.
        headers: Extra response headers (e.g., Retry-After).

    Returns:
        JSONResponse with the status code mapped from ``kind``.
    """
    status_code, message = ERROR_RESPONSES[kind]
    body = ApiResponse.error_response(message, errors)
    return JSONResponse(status_code=status_code, content=body.to_content(), headers=headers)


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle domain application errors by their kind."""
    status_code, _ = ERROR_RESPONSES[exc.kind]

    logger.warning(
        "app_error_handled",
        extra={
            "error_kind": exc.kind.value,
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "has_details": bool(exc.details),
            "request_path": request.url.path,
            "request_id": get_request_id(),
        },
    )

    return error_response(exc.kind, [exc.message])


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Map FastAPI request validation failures onto the validation kind."""
    errors = [
        f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg', '')}"
        for err in exc.errors()
    ]

    logger.info(
        "request_validation_failed",
        extra={
            "error_count": len(errors),
            "request_path": request.url.path,
            "request_id": get_request_id(),
        },
    )

    return error_response(ErrorKind.VALIDATION, errors)


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Wrap framework HTTP errors (404 for unknown routes, 405, ...) in the envelope."""
    body = ApiResponse.error_response(str(exc.detail))
    return JSONResponse(
        status_code=exc.status_code,
        content=body.to_content(),
        headers=getattr(exc, "headers", None),
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors (safety net).

    Logs the failure for debugging while returning a generic message. No
    exception text or stack trace reaches the client.
    """
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
            "request_id": get_request_id(),
        },
    )

    return error_response(ErrorKind.INTERNAL, ["Please try again later"])


def setup_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI app.

    Args:
        app: FastAPI application instance.
    """
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(RequestValidationError)(request_validation_handler)
    app.exception_handler(StarletteHTTPException)(http_exception_handler)
    app.exception_handler(Exception)(general_exception_handler)
