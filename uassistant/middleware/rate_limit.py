"""
In-process rate limiting middleware.

Sliding-window limiter keyed by the client socket address. ``X-Forwarded-For``
is only honoured when the app is configured to trust its reverse proxy.
``/health`` is always exempt.
"""

import time
from collections import deque
from typing import Deque, Dict, Iterable, Optional, Tuple

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

EXEMPT_PATHS = frozenset({"/health"})


class RateLimitExceeded(Exception):
    """Rate limit has been exceeded."""
    def __init__(self, limit: int, window_seconds: int, retry_after: int):
        self.limit = limit
        self.window_seconds = window_seconds
        self.retry_after = retry_after
        super().__init__(f"Rate limit exceeded: {limit} requests per {window_seconds}s")


class SlidingWindowLimiter:
    """
    Sliding window rate limiter held in process memory.

    Request timestamps are kept per key; a request is admitted when fewer
    than ``limit`` timestamps fall inside the trailing window. Keys with no
    hits left in the window are dropped, at most once per window for idle keys.
    """

    def __init__(self, limit: int, window_seconds: int):
        self.limit = limit
        self.window_seconds = window_seconds
        self._hits: Dict[str, Deque[float]] = {}
        self._last_sweep = 0.0

    def __len__(self) -> int:
        return len(self._hits)

    def _sweep(self, window_start: float) -> None:
        stale = [key for key, hits in self._hits.items() if not hits or hits[-1] <= window_start]
        for key in stale:
            del self._hits[key]

    def check(self, key: str, now: Optional[float] = None) -> None:
        """Record a hit for ``key``.

        Raises:
            RateLimitExceeded: when the key is over its limit.
        """
        now = time.monotonic() if now is None else now
        window_start = now - self.window_seconds

        if now - self._last_sweep >= self.window_seconds:
            self._sweep(window_start)
            self._last_sweep = now

        hits = self._hits.get(key)
        if hits is not None:
            while hits and hits[0] <= window_start:
                hits.popleft()
            if not hits:
                del self._hits[key]
                hits = None

        if hits is not None and len(hits) >= self.limit:
            retry_after = max(1, int(hits[0] + self.window_seconds - now) + 1)
            raise RateLimitExceeded(self.limit, self.window_seconds, retry_after)

        if hits is None:
            hits = self._hits[key] = deque()
        hits.append(now)

    def remaining(self, key: str) -> int:
        return max(0, self.limit - len(self._hits.get(key, ())))


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Reject requests above the configured rate with 429."""

    def __init__(
        self,
        app,
        limit: int = 30,
        window_seconds: int = 60,
        exempt_paths: Iterable[str] = EXEMPT_PATHS,
        trust_forwarded: bool = False,
    ):
        super().__init__(app)
        self.limiter = SlidingWindowLimiter(limit, window_seconds)
        self.exempt_paths = frozenset(exempt_paths)
        self.trust_forwarded = trust_forwarded

    def _client_key(self, request: Request) -> str:
        if self.trust_forwarded:
            forwarded = request.headers.get("x-forwarded-for", "").split(",")[0].strip()
            if forwarded:
                return forwarded
        return request.client.host if request.client else "unknown"

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in self.exempt_paths or request.method == "OPTIONS":
            return await call_next(request)

        key = self._client_key(request)
        try:
            self.limiter.check(key)
        except RateLimitExceeded as exc:
            headers: Tuple[Tuple[str, str], ...] = (
                ("Retry-After", str(exc.retry_after)),
                ("X-RateLimit-Limit", str(exc.limit)),
            )
            return JSONResponse(
                status_code=429,
                content={"error": "RATE_LIMITED", "retryAfter": exc.retry_after},
                headers=dict(headers),
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(self.limiter.limit)
        response.headers["X-RateLimit-Remaining"] = str(self.limiter.remaining(key))
        return response
