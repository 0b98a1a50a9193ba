"""In-memory sliding-window admission limiter.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: a map lock guards bucket creation/removal and each bucket has
  its own lock, so unrelated clients never contend.
"""

from __future__ import annotations

import threading
import time
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Callable, Iterator, Mapping

from campus_api.adapters.rate_limit.base import (
    AbstractAdmissionLimiter,
    AdmissionDecision,
    ClientKey,
    RateLimitPolicy,
)


@dataclass
class _Bucket:
    policy: RateLimitPolicy
    timestamps: deque[float] = field(default_factory=deque)
    lock: threading.Lock = field(default_factory=threading.Lock)
    # Set once the bucket is dropped from the map; writers must re-fetch.
    detached: bool = False

    def prune(self, now: float) -> None:
        cutoff = now - self.policy.window_seconds
        while self.timestamps and self.timestamps[0] <= cutoff:
            self.timestamps.popleft()

    def retry_after(self, now: float) -> float | None:
        overflow = len(self.timestamps) - self.policy.max_requests
        if overflow < 0:
            return None
        # The window reopens when the record that keeps the count at the
        # threshold expires; with exact enforcement that is the oldest one.
        pivot = self.timestamps[overflow]
        return max(0.0, self.policy.window_seconds - (now - pivot))


class InMemorySlidingWindowLimiter(AbstractAdmissionLimiter):
    """Admission limiter counting request timestamps in a sliding window.

    Each ``ClientKey`` owns a deque of admission timestamps. On every access,
    timestamps aged ``window_seconds`` or more are pruned before the count is
    compared against the key's threshold.

    Important:
        This limiter is per-process only. If the API runs with multiple workers
        (e.g., multiple Uvicorn/Gunicorn workers), each worker will enforce its
        own independent limits.
    """

    def __init__(
        self,
        *,
        limit: int,
        window_seconds: float,
        endpoint_policies: Mapping[str, RateLimitPolicy] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the limiter.

        Args:
            limit: Default maximum number of admitted requests per window.
            window_seconds: Default sliding window size in seconds.
            endpoint_policies: Per-endpoint overrides keyed by path
                (case-insensitive).
            clock: Time source returning seconds; must not go backwards.

        Raises:
            ValueError: If limit or window_seconds are invalid.
        """
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")

        self._default_policy = RateLimitPolicy(
            max_requests=limit, window_seconds=window_seconds
        )
        self._policies = {
            path.lower(): policy for path, policy in (endpoint_policies or {}).items()
        }
        self._clock = clock
        self._map_lock = threading.Lock()
        self._buckets: dict[ClientKey, _Bucket] = {}

    def policy_for(self, endpoint: str) -> RateLimitPolicy:
        """Return the policy applied to requests on ``endpoint``."""
        return self._policies.get(endpoint.lower(), self._default_policy)

    def tracked_keys(self) -> int:
        """Number of keys currently held in memory."""
        with self._map_lock:
            return len(self._buckets)

    def _get_or_create(self, key: ClientKey) -> _Bucket:
        with self._map_lock:
            bucket = self._buckets.get(key)
            if bucket is None:
                bucket = _Bucket(policy=self.policy_for(key.endpoint))
                self._buckets[key] = bucket
            return bucket

    @contextmanager
    def _writable_bucket(self, key: ClientKey) -> Iterator[_Bucket]:
        """Yield the key's live bucket with its lock held, creating it if needed."""
        while True:
            bucket = self._get_or_create(key)
            with bucket.lock:
                if not bucket.detached:
                    yield bucket
                    return
            # Swept or cleared between lookup and lock; fetch again.

    @contextmanager
    def _existing_bucket(self, key: ClientKey) -> Iterator[_Bucket | None]:
        """Yield the key's live bucket with its lock held, or None if untracked."""
        while True:
            with self._map_lock:
                bucket = self._buckets.get(key)

            if bucket is None:
                yield None
                return

            with bucket.lock:
                if not bucket.detached:
                    yield bucket
                    return

    def is_blocked(self, key: ClientKey) -> bool:
        with self._existing_bucket(key) as bucket:
            if bucket is None:
                return False
            bucket.prune(self._clock())
            return len(bucket.timestamps) >= bucket.policy.max_requests

    def retry_after(self, key: ClientKey) -> float | None:
        with self._existing_bucket(key) as bucket:
            if bucket is None:
                return None
            now = self._clock()
            bucket.prune(now)
            return bucket.retry_after(now)

    def record(self, key: ClientKey) -> None:
        with self._writable_bucket(key) as bucket:
            now = self._clock()
            bucket.prune(now)
            bucket.timestamps.append(now)

    def try_acquire(self, key: ClientKey) -> AdmissionDecision:
        """Admit and record the request if the key has budget left.

        Pruning, comparison and append happen under the key's lock, so
        concurrent callers can never push the in-window count past the limit.

        Args:
            key: Bucket identity for the request.

        Returns:
            AdmissionDecision describing whether the request was admitted.
        """
        with self._writable_bucket(key) as bucket:
            now = self._clock()
            bucket.prune(now)
            limit = bucket.policy.max_requests

            if len(bucket.timestamps) < limit:
                bucket.timestamps.append(now)
                return AdmissionDecision(
                    allowed=True,
                    limit=limit,
                    remaining=limit - len(bucket.timestamps),
                    retry_after_seconds=None,
                )

            return AdmissionDecision(
                allowed=False,
                limit=limit,
                remaining=0,
                retry_after_seconds=bucket.retry_after(now),
            )

    def clear(self, key: ClientKey) -> None:
        with self._map_lock:
            bucket = self._buckets.pop(key, None)
            if bucket is not None:
                with bucket.lock:
                    bucket.detached = True

    def sweep(self) -> int:
        now = self._clock()
        removed = 0
        with self._map_lock:
            for key, bucket in list(self._buckets.items()):
                with bucket.lock:
                    bucket.prune(now)
                    if bucket.timestamps:
                        continue
                    bucket.detached = True
                del self._buckets[key]
                removed += 1
        return removed
