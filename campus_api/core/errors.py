"""Application-level exception types.

Every error carries an explicit ``ErrorKind``. The HTTP layer switches on the
kind (see ``exception_handlers``) instead of on the exception class hierarchy.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, NotRequired, TypedDict


class ErrorKind(str, Enum):
    """Category of a failure as seen by API clients."""

    VALIDATION = "validation"
    INVALID_OPERATION = "invalid_operation"
    NOT_FOUND = "not_found"
    RATE_LIMITED = "rate_limited"
    INTERNAL = "internal"


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability."""

    code: str
    message: str
    hint: str
    field: str
    endpoint: str
    retry_after: float
    request_id: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    kind: ClassVar[ErrorKind] = ErrorKind.INTERNAL

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when input/config validation fails."""

    kind = ErrorKind.VALIDATION


class InvalidOperationAppError(AppError):
    """Raised when an operation is not valid in the current state."""

    kind = ErrorKind.INVALID_OPERATION


class NotFoundAppError(AppError):
    """Raised when a requested resource does not exist."""

    kind = ErrorKind.NOT_FOUND
