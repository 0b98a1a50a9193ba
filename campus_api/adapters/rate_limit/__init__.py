"""Admission limiting adapters.

The pipeline talks to ``AbstractAdmissionLimiter`` only, so the in-memory
store can be replaced by a shared backend without touching the HTTP layer.
"""

from campus_api.adapters.rate_limit.base import (
    AbstractAdmissionLimiter,
    AdmissionDecision,
    ClientKey,
    RateLimitPolicy,
)
from campus_api.adapters.rate_limit.in_memory import InMemorySlidingWindowLimiter

__all__ = [
    "AbstractAdmissionLimiter",
    "AdmissionDecision",
    "ClientKey",
    "InMemorySlidingWindowLimiter",
    "RateLimitPolicy",
]
