"""
HTTP middleware for ThermoChat.

1. RateLimitMiddleware: per-IP sliding-window limit, health checks exempt
2. APIKeyMiddleware: optional bearer-token gate for the whole API
"""

from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable, Iterable
from pathlib import Path

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp, Receive, Scope, Send

logger = logging.getLogger(__name__)

_VERSION_FILE = Path(__file__).resolve().parents[2] / "VERSION"
_VERSION = _VERSION_FILE.read_text().strip() if _VERSION_FILE.exists() else "unknown"

HEALTH_PATHS = frozenset({"/health", "/health/ready", "/health/live"})


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Simple in-memory rate limiter.

    Limits are per-IP.  Exempt health-check paths.  Uses a sliding
    window counter stored in a dict (no external deps).

    Args:
        app: ASGI application.
        requests_per_minute: Maximum requests allowed per IP per minute.
    """

    def __init__(self, app: ASGIApp, *, requests_per_minute: int = 120) -> None:
        super().__init__(app)
        self._limit = requests_per_minute
        self._window = 60.0  # seconds
        self._requests: dict[str, list[float]] = {}

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        path = request.url.path
        if path in HEALTH_PATHS:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        now = time.monotonic()

        cutoff = now - self._window
        timestamps = [t for t in self._requests.get(client_ip, []) if t > cutoff]
        self._requests[client_ip] = timestamps

        # Hard cap on tracked IPs
        if len(self._requests) > 10_000:
            oldest_ips = sorted(
                self._requests.keys(),
                key=lambda ip: self._requests[ip][0] if self._requests[ip] else 0,
            )
            for ip in oldest_ips[: len(oldest_ips) // 2]:
                if ip != client_ip:
                    del self._requests[ip]

        if len(timestamps) >= self._limit:
            logger.warning("Rate limit exceeded for %s on %s", client_ip, path)
            return JSONResponse(
                status_code=429,
                content={"detail": "Rate limit exceeded. Try again later."},
                headers={"Retry-After": str(int(self._window))},
            )

        timestamps.append(now)
        response = await call_next(request)
        response.headers["X-ThermoChat-Version"] = _VERSION
        return response


class APIKeyMiddleware:
    """Optional API key authentication.

    When ``THERMOCHAT_API_KEY`` is set, all non-public endpoints require
    an ``Authorization: Bearer <key>`` header.  If the key is empty, all
    requests are allowed through.
    """

    def __init__(
        self,
        app: ASGIApp,
        *,
        api_key: str,
        public_paths: Iterable[str] = (),
    ) -> None:
        self.app = app
        self._api_key = api_key
        self._public_paths = HEALTH_PATHS | {"/"} | frozenset(public_paths)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if not self._api_key or scope["type"] not in ("http", "websocket"):
            await self.app(scope, receive, send)
            return

        path = scope.get("path", "/")
        if path in self._public_paths:
            await self.app(scope, receive, send)
            return

        headers = dict(scope.get("headers", []))
        auth_header = headers.get(b"authorization", b"").decode("utf-8")
        if auth_header == f"Bearer {self._api_key}":
            await self.app(scope, receive, send)
            return

        response = JSONResponse(
            status_code=401,
            content={"detail": "Invalid or missing API key"},
        )
        await response(scope, receive, send)


__all__ = [
    "HEALTH_PATHS",
    "APIKeyMiddleware",
    "RateLimitMiddleware",
]
