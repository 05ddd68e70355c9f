"""HTTP middleware: security headers and rate limiting."""

from __future__ import annotations

import logging
import time

from fastapi import status
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp

logger = logging.getLogger(__name__)

CONTENT_SECURITY_POLICY = "; ".join(
    [
        "default-src 'self'",
        "script-src 'self' cdn.jsdelivr.net",
        "style-src 'self' 'unsafe-inline' cdn.jsdelivr.net cdnjs.cloudflare.com fonts.googleapis.com",
        "img-src 'self' data: https:",
        "connect-src 'self'",
        "font-src 'self' cdnjs.cloudflare.com fonts.gstatic.com",
        "frame-src 'self' accounts.google.com github.com",
        "object-src 'none'",
        "media-src 'none'",
    ]
)

SECURITY_HEADERS = {
    "Content-Security-Policy": CONTENT_SECURITY_POLICY,
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "no-referrer",
    "Cross-Origin-Opener-Policy": "same-origin",
}


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add browser security headers to every response."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        return response


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Fixed-window request limit per client address.

    Counters live in this middleware instance and reset when their window
    ends. A limit of 0 disables limiting.
    """

    def __init__(
        self,
        app: ASGIApp,
        max_requests: int = 100,
        window_seconds: int = 15 * 60,
        exempt_paths: tuple[str, ...] = ("/healthz",),
    ):
        super().__init__(app)
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.exempt_paths = exempt_paths
        self._windows: dict[str, tuple[float, int]] = {}

    def _client_key(self, request: Request) -> str:
        return request.client.host if request.client else "unknown"

    def hit(self, key: str, now: float | None = None) -> bool:
        """Count a request and report whether it is within the limit."""
        now = time.monotonic() if now is None else now
        if len(self._windows) > 10_000:
            self._prune(now)

        started, count = self._windows.get(key, (now, 0))
        if now - started >= self.window_seconds:
            started, count = now, 0

        count += 1
        self._windows[key] = (started, count)
        return count <= self.max_requests

    def _prune(self, now: float) -> None:
        stale = [k for k, (started, _) in self._windows.items() if now - started >= self.window_seconds]
        for key in stale:
            del self._windows[key]

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if self.max_requests <= 0 or request.url.path in self.exempt_paths:
            return await call_next(request)

        key = self._client_key(request)
        if not self.hit(key):
            logger.warning(f"Rate limit exceeded for {key}")
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={"error": "Too many requests"},
                headers={"Retry-After": str(self.window_seconds)},
            )

        return await call_next(request)
