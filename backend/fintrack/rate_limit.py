# backend/fintrack/rate_limit.py
"""Per-minute request limits, sliding window, kept in process memory."""

import math
import threading
import time
from collections import deque
from typing import Callable

from fastapi import Request

from backend.fintrack.config import get_settings
from backend.fintrack.exceptions import RateLimitExceededError

WINDOW_SECONDS = 60.0


class RateLimiter:
    def __init__(self, limit_getter: Callable[[], int], window: float = WINDOW_SECONDS, clock=time.monotonic):
        self._limit_getter = limit_getter
        self._window = window
        self._clock = clock
        self._hits: dict[str, deque] = {}
        self._lock = threading.Lock()
        self._last_sweep = clock()

    def __len__(self) -> int:
        return len(self._hits)

    def hit(self, key: str) -> None:
        limit = self._limit_getter()
        now = self._clock()
        with self._lock:
            self._sweep(now)
            hits = self._hits.setdefault(key, deque())
            self._prune(hits, now)
            if len(hits) >= limit:
                retry_after = max(1, math.ceil(self._window - (now - hits[0])))
                raise RateLimitExceededError(retry_after)
            hits.append(now)

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()
            self._last_sweep = self._clock()

    def _prune(self, hits: deque, now: float) -> None:
        while hits and now - hits[0] >= self._window:
            hits.popleft()

    def _sweep(self, now: float) -> None:
        # Once per window, forget keys whose newest hit has aged out
        if now - self._last_sweep < self._window:
            return
        self._last_sweep = now
        stale = [key for key, hits in self._hits.items() if not hits or now - hits[-1] >= self._window]
        for key in stale:
            del self._hits[key]


api_limiter = RateLimiter(lambda: get_settings().rate_limit_per_minute)
auth_limiter = RateLimiter(lambda: get_settings().auth_rate_limit_per_minute)
failed_auth_limiter = RateLimiter(lambda: get_settings().auth_rate_limit_per_minute)


def client_key(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def limit_by_client(request: Request) -> None:
    auth_limiter.hit(f"ip:{client_key(request)}:{request.url.path}")


def record_failed_authentication(request: Request) -> None:
    """Count a rejected bearer token; raises 429 once the client is over its limit."""
    failed_auth_limiter.hit(f"ip:{client_key(request)}")
