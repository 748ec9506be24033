"""Fixed-window rate limiting for the wizard's upstream-calling actions."""

from __future__ import annotations

import threading
import time

from fastapi import HTTPException, Request


class RateLimiter:
    """Allows at most ``limit`` events per key inside each window."""

    def __init__(self, clock=time.monotonic) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._windows: dict[str, tuple[int, float]] = {}

    def allow(self, key: str, limit: int, window_seconds: float = 60.0) -> bool:
        if limit <= 0:
            return True
        now = self._clock()
        with self._lock:
            count, started = self._windows.get(key, (0, now))
            if now - started >= window_seconds:
                count, started = 0, now
            if count >= limit:
                return False
            self._windows[key] = (count + 1, started)
            return True

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()


def enforce_rate_limit(request: Request, scope: str) -> None:
    """Reject the request with 429 once the caller exhausts its per-minute budget."""

    limiter: RateLimiter | None = getattr(request.app.state, "rate_limiter", None)
    limit: int = getattr(request.app.state, "rate_limit_per_minute", 0)
    if limiter is None or limit <= 0:
        return

    # Keyed on the caller address; session flow ids are minted per request for cookieless clients.
    client = getattr(request, "client", None)
    identity = getattr(client, "host", None) or "anonymous"
    if not limiter.allow(f"{scope}:{identity}", limit):
        raise HTTPException(status_code=429, detail="Too many requests")
