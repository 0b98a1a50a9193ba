"""Admission limiter interfaces.

The HTTP layer depends on this abstraction (not the concrete implementation)
so the in-memory store can later be swapped for a shared one (e.g., Redis).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class ClientKey:
    """Identity of one rate-limit bucket.

    Attributes:
        client_id: Opaque client identifier (usually an IP address).
        endpoint: Request path; normalized to lower case on construction.
    """

    client_id: str
    endpoint: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "endpoint", self.endpoint.lower())


@dataclass(frozen=True)
class RateLimitPolicy:
    """Threshold and sliding window applied to a bucket."""

    max_requests: int
    window_seconds: float

    def __post_init__(self) -> None:
        if self.max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        if self.window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")


@dataclass(frozen=True)
class AdmissionDecision:
    """Result of an atomic check-and-record.

    Attributes:
        allowed: Whether the request was admitted (and recorded).
        limit: Max admitted requests per window for the key.
        remaining: Requests still admissible in the current window.
        retry_after_seconds: Time until the oldest in-window record expires,
            set only when blocked.
    """

    allowed: bool
    limit: int
    remaining: int
    retry_after_seconds: float | None


class AbstractAdmissionLimiter(ABC):
    """Interface for admission limiters."""

    @abstractmethod
    def is_blocked(self, key: ClientKey) -> bool:
        """Return True if the key already used its budget in the current window."""
        raise NotImplementedError

    @abstractmethod
    def retry_after(self, key: ClientKey) -> float | None:
        """Seconds until the key is admitted again, or None if not blocked."""
        raise NotImplementedError

    @abstractmethod
    def record(self, key: ClientKey) -> None:
        """Record one admitted request. Does not enforce the limit."""
        raise NotImplementedError

    @abstractmethod
    def try_acquire(self, key: ClientKey) -> AdmissionDecision:
        """Check and record in one atomic step."""
        raise NotImplementedError

    @abstractmethod
    def clear(self, key: ClientKey) -> None:
        """Forget all records for the key."""
        raise NotImplementedError

    @abstractmethod
    def sweep(self) -> int:
        """Drop keys with no in-window records. Returns the number removed."""
        raise NotImplementedError
