"""
Per-client rate limiting.

Fixed-window counters: each client key gets ``limit`` calls per window,
counted from the first call of the window. Windows do not slide, so a client
can burst up to twice the limit across a window boundary.
"""

import logging
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 100
DEFAULT_WINDOW_SECONDS = 60.0
DEFAULT_MAX_KEYS = 10000


@dataclass
class RateLimitEntry:
    """Counter state for one client key."""
    client_key: str
    count: int
    window_start: float


@dataclass
class RateLimitDecision:
    """Result of a rate-limit check."""
    allowed: bool
    count: int
    limit: int
    retry_after: float = 0.0

    @property
    def remaining(self) -> int:
        return max(self.limit - self.count, 0)


class RateLimiter(ABC):
    """
    Interface for rate limiters.

    ``check_and_increment`` must be atomic per key so that concurrent calls
    from the same client cannot both slip under the limit. Alternative
    backing stores (e.g. a shared cache for multi-instance deployments)
    implement this same method.
    """

    @abstractmethod
    def check_and_increment(self, client_key: str) -> RateLimitDecision:
        """Count a call for ``client_key`` and decide whether it may proceed."""
        raise NotImplementedError

    def reset(self) -> None:
        """Forget all counters."""

    def stats(self) -> dict:
        return {}


class InMemoryRateLimiter(RateLimiter):
    """
    Process-local fixed-window limiter.

    Usage:
        limiter = InMemoryRateLimiter(limit=100, window_seconds=60)

        if not limiter.check_and_increment("10.0.0.1").allowed:
            ...  # reject with 429
    """

    def __init__(
        self,
        limit: int = DEFAULT_LIMIT,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        max_keys: int = DEFAULT_MAX_KEYS,
        clock: Callable[[], float] = time.monotonic,
    ):
        if limit < 1:
            raise ValueError("limit must be at least 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")

        self.limit = limit
        self.window_seconds = window_seconds
        self.max_keys = max_keys
        self._clock = clock

        self._entries: Dict[str, RateLimitEntry] = {}
        self._lock = threading.Lock()

    def check_and_increment(self, client_key: str) -> RateLimitDecision:
        with self._lock:
            now = self._clock()
            entry = self._entries.get(client_key)

            if entry is None or now - entry.window_start > self.window_seconds:
                # New client or expired window: start over rather than merge
                entry = RateLimitEntry(client_key=client_key, count=1, window_start=now)
                self._entries[client_key] = entry
                self._maybe_evict(now)
                return RateLimitDecision(allowed=True, count=1, limit=self.limit)

            if entry.count >= self.limit:
                retry_after = max(entry.window_start + self.window_seconds - now, 0.0)
                return RateLimitDecision(
                    allowed=False,
                    count=entry.count,
                    limit=self.limit,
                    retry_after=retry_after,
                )

            entry.count += 1
            return RateLimitDecision(allowed=True, count=entry.count, limit=self.limit)

    def _maybe_evict(self, now: float) -> None:
        # Caller holds the lock
        if len(self._entries) <= self.max_keys:
            return

        expired = [
            key for key, entry in self._entries.items()
            if now - entry.window_start > self.window_seconds
        ]
        for key in expired:
            del self._entries[key]

        if expired:
            logger.debug(f"Evicted {len(expired)} expired rate-limit entries")

    def get_entry(self, client_key: str) -> Optional[RateLimitEntry]:
        """Return a copy of the entry for a key, if tracked."""
        with self._lock:
            entry = self._entries.get(client_key)
            if entry is None:
                return None
            return RateLimitEntry(entry.client_key, entry.count, entry.window_start)

    def reset(self) -> None:
        with self._lock:
            self._entries.clear()

    def stats(self) -> dict:
        with self._lock:
            return {
                "tracked_clients": len(self._entries),
                "limit": self.limit,
                "window_seconds": self.window_seconds,
            }
