"""Per-client fixed-window rate limiting middleware.

The client key is the socket peer address. Behind a trusted reverse proxy
(`RATE_LIMIT_TRUST_FORWARDED`), the first address of `X-Forwarded-For` is used instead. Each
client may issue `RATE_LIMIT_MAX_REQUESTS` requests per window of `RATE_LIMIT_WINDOW_S` seconds
(defaults: 50 requests / 15 minutes). Expired windows are pruned as requests arrive.

On block, returns 429 with the standard error envelope and a `Retry-After` header, and increments
the Prom counter `rate_limit_blocks_total{reason}` with reason `window`.
"""

from __future__ import annotations

import math
import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from hdchart.apigw.errors import extract_trace_id, rate_limited
from hdchart.app.metrics import RATE_LIMIT_BLOCKS
from hdchart.core.settings import Settings, get_settings

EXEMPT_PREFIXES = ("/metrics", "/health")


class _Limiter:
    def __init__(self, max_requests: int, window_s: float) -> None:
        self.max_requests = max(1, int(max_requests))
        self.window_s = max(1.0, float(window_s))
        # client -> (window_start_monotonic, count)
        self._buckets: dict[str, tuple[float, int]] = {}
        self._next_prune = 0.0

    def allow(self, client: str, now: float | None = None) -> tuple[bool, float]:
        """Retourne `(autorisé, secondes restantes dans la fenêtre)`."""
        now = time.monotonic() if now is None else now
        self._prune(now)
        start, count = self._buckets.get(client, (now, 0))
        if now - start >= self.window_s:
            start, count = now, 0
        remaining = self.window_s - (now - start)
        if count >= self.max_requests:
            self._buckets[client] = (start, count)
            return False, remaining
        self._buckets[client] = (start, count + 1)
        return True, remaining

    def _prune(self, now: float) -> None:
        """Supprime les fenêtres expirées, au plus une fois par fenêtre."""
        if now < self._next_prune:
            return
        self._next_prune = now + self.window_s
        expired = [c for c, (start, _) in self._buckets.items() if now - start >= self.window_s]
        for client in expired:
            del self._buckets[client]

    def __len__(self) -> int:
        return len(self._buckets)


def client_key(request: Request, trust_forwarded: bool = False) -> str:
    if trust_forwarded:
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, settings: Settings | None = None) -> None:  # type: ignore[no-untyped-def]
        super().__init__(app)
        self.settings = settings or get_settings()
        self.limiter = _Limiter(
            self.settings.RATE_LIMIT_MAX_REQUESTS, self.settings.RATE_LIMIT_WINDOW_S
        )

    async def dispatch(self, request: Request, call_next) -> Response:  # type: ignore[no-untyped-def]
        if not self.settings.RATE_LIMIT_ENABLED:
            return await call_next(request)
        if request.url.path.startswith(EXEMPT_PREFIXES):
            return await call_next(request)
        client = client_key(request, self.settings.RATE_LIMIT_TRUST_FORWARDED)
        allowed, remaining = self.limiter.allow(client)
        if not allowed:
            RATE_LIMIT_BLOCKS.labels(reason="window").inc()
            return rate_limited(
                "Too many requests from this client, please try again later.",
                extract_trace_id(request),
                retry_after=max(1, math.ceil(remaining)),
            )
        return await call_next(request)
