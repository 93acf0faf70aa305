"""In-memory sliding-window rate limiter.

Keyed by authenticated user when the auth middleware has run, else by
client IP.  Suitable for a single instance; a multi-instance deployment
needs a shared counter store.
"""

from __future__ import annotations

import time
from collections import defaultdict, deque
from typing import Any

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from cyclesync.config import Settings, get_settings


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Per-caller sliding window rate limiter."""

    def __init__(self, app: Any, settings: Settings | None = None) -> None:
        super().__init__(app)
        s = settings or get_settings()
        self._max_requests = s.rate_limit_per_minute
        self._window_seconds = 60
        # caller key -> request timestamps, oldest first
        self._requests: dict[str, deque[float]] = defaultdict(deque)

    def _caller_key(self, request: Request) -> str:
        auth = getattr(request.state, "auth", None)
        if auth is not None and auth.user_id is not None:
            return f"user:{auth.user_id}"
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            return f"ip:{forwarded.split(',')[0].strip()}"
        return f"ip:{request.client.host if request.client else 'unknown'}"

    def _prune(self, key: str, now: float) -> deque[float]:
        window = self._requests[key]
        cutoff = now - self._window_seconds
        while window and window[0] <= cutoff:
            window.popleft()
        return window

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        key = self._caller_key(request)
        now = time.monotonic()
        window = self._prune(key, now)

        if len(window) >= self._max_requests:
            retry_after = int(self._window_seconds - (now - window[0]))
            return Response(
                content='{"error":"rate_limited","detail":"Rate limit exceeded"}',
                status_code=429,
                media_type="application/json",
                headers={"Retry-After": str(max(retry_after, 1))},
            )

        window.append(now)
        response = await call_next(request)

        remaining = self._max_requests - len(window)
        response.headers["X-RateLimit-Limit"] = str(self._max_requests)
        response.headers["X-RateLimit-Remaining"] = str(max(remaining, 0))
        return response
