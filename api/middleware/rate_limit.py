"""In-memory fixed-window rate limiter."""

import math
import time
from threading import Lock
from typing import Dict, Optional, Tuple

import structlog
from flask import Flask, g, request

from config.errors import TooManyRequestsError

logger = structlog.get_logger()

EXEMPT_PATHS = ("/api/health",)
LIMITER_EXTENSION_KEY = "rate_limiter"


class RateLimiter:
    """Counts requests per key in fixed windows of ``window_seconds``."""

    def __init__(self, limit: int, window_seconds: float):
        self.limit = limit
        self.window_seconds = window_seconds
        self._windows: Dict[str, Tuple[float, int]] = {}
        self._lock = Lock()
        self._last_cleanup: Optional[float] = None

    def hit(self, key: str, now: float = None) -> Tuple[bool, int, float]:
        """Record one request.

        Expired windows of other keys are dropped at most once per window.

        Returns:
            (allowed, remaining, seconds until the window resets)
        """
        now = time.time() if now is None else now
        with self._lock:
            if self._last_cleanup is None:
                self._last_cleanup = now
            elif now - self._last_cleanup >= self.window_seconds:
                self._drop_stale(now)
            start, count = self._windows.get(key, (now, 0))
            if now - start >= self.window_seconds:
                start, count = now, 0
            count += 1
            self._windows[key] = (start, count)

        reset_in = max(self.window_seconds - (now - start), 0)
        return count <= self.limit, max(self.limit - count, 0), reset_in

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()

    def cleanup(self, now: float = None) -> None:
        """Drop expired windows."""
        now = time.time() if now is None else now
        with self._lock:
            self._drop_stale(now)

    def _drop_stale(self, now: float) -> None:
        # caller holds the lock
        stale = [k for k, (start, _) in self._windows.items() if now - start >= self.window_seconds]
        for k in stale:
            del self._windows[k]
        self._last_cleanup = now
        if stale:
            logger.debug("rate_limit_windows_dropped", count=len(stale))

    def __len__(self) -> int:
        return len(self._windows)


def client_key() -> str:
    return request.headers.get("X-API-Key") or request.remote_addr or "unknown-user"


def init_rate_limit(app: Flask, limiter: RateLimiter) -> None:
    """Apply ``limiter`` to every request except the health check."""
    app.extensions[LIMITER_EXTENSION_KEY] = limiter

    @app.before_request
    def enforce_rate_limit():
        if request.path in EXEMPT_PATHS:
            return None
        allowed, remaining, reset_in = limiter.hit(client_key())
        g.rate_limit_headers = {
            "RateLimit-Limit": str(limiter.limit),
            "RateLimit-Remaining": str(remaining),
            "RateLimit-Reset": str(math.ceil(reset_in)),
        }
        if not allowed:
            logger.warning("rate_limit_exceeded", path=request.path)
            raise TooManyRequestsError(
                "Too many requests, please try again later",
                details={"retry_after_seconds": math.ceil(reset_in)},
            )
        return None

    @app.after_request
    def add_rate_limit_headers(response):
        for name, value in getattr(g, "rate_limit_headers", {}).items():
            response.headers[name] = value
        return response
