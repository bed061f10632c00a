"""Per-client request limiting for the analysis endpoints."""
from __future__ import annotations

import threading
import time
from typing import Callable, Dict, Optional, Tuple

from fastapi import Request

from ..errors import RateLimitExceededError


class RateLimiter:
    """
    Token-bucket limiter keyed by client address.

    Each client may spend *limit* requests per *window* seconds; tokens
    refill continuously.  Never blocks: callers are told how long to wait.
    """

    def __init__(
        self,
        limit: int,
        window_seconds: float = 60.0,
        clock: Optional[Callable[[], float]] = None,
        max_clients: int = 10_000,
    ) -> None:
        self.limit = max(int(limit), 1)
        self.window_seconds = float(max(window_seconds, 0.001))
        self._rate = self.limit / self.window_seconds
        self._clock = clock or time.monotonic
        self._buckets: Dict[str, Tuple[float, float]] = {}  # key -> (tokens, last_refill)
        self._lock = threading.Lock()
        self._max_clients = max_clients

    def try_acquire(self, key: str) -> Tuple[bool, float]:
        """Spend one token for *key*.  Returns ``(allowed, retry_after_seconds)``."""
        now = self._clock()
        with self._lock:
            tokens, last = self._buckets.get(key, (float(self.limit), now))
            tokens = min(float(self.limit), tokens + max(0.0, now - last) * self._rate)
            if tokens >= 1.0:
                self._buckets[key] = (tokens - 1.0, now)
                allowed, retry_after = True, 0.0
            else:
                self._buckets[key] = (tokens, now)
                allowed, retry_after = False, (1.0 - tokens) / self._rate
            if len(self._buckets) > self._max_clients:
                self._evict_full(now)
        return allowed, retry_after

    def _evict_full(self, now: float) -> None:
        """Drop buckets that have refilled completely; they carry no state."""
        for key, (tokens, last) in list(self._buckets.items()):
            if tokens + (now - last) * self._rate >= self.limit:
                del self._buckets[key]

    def reset(self) -> None:
        with self._lock:
            self._buckets.clear()


def _client_key(request: Request) -> str:
    return request.client.host if request.client else "anonymous"


def _enforce(limiter: RateLimiter, request: Request) -> None:
    allowed, retry_after = limiter.try_acquire(_client_key(request))
    if not allowed:
        raise RateLimitExceededError(
            "Too many requests, please try again later.", retry_after=retry_after
        )


async def limit_analysis(request: Request) -> None:
    """Shared ceiling for submission and cancellation."""
    _enforce(request.app.state.services.analysis_limiter, request)


async def limit_status(request: Request) -> None:
    """Separate, higher ceiling for status polling."""
    _enforce(request.app.state.services.status_limiter, request)
