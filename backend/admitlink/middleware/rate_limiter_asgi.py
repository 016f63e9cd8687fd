# backend/admitlink/middleware/rate_limiter_asgi.py
"""
Pure ASGI rate limit middleware for the REST surface.

Every HTTP request under ``/api`` counts against the caller's IP. Requests
over the limit get a 429 with ``Retry-After``; allowed responses carry the
``X-RateLimit-*`` headers. The ``/ws`` gateway and ``/health`` are not limited.
"""

import logging
import time
from typing import Optional

from starlette.datastructures import MutableHeaders
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from ..core.config import settings
from .rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

RATE_LIMITED_MESSAGE = "Too many requests, please try again later."
API_PATH_PREFIX = "/api"


class RateLimitMiddlewareASGI:
    """Fixed limit per client IP over a sliding window."""

    def __init__(
        self,
        app: ASGIApp,
        rate_limiter: Optional[RateLimiter] = None,
        limit: Optional[int] = None,
        window_seconds: Optional[int] = None,
    ) -> None:
        self.app = app
        self.rate_limiter = rate_limiter or RateLimiter()
        self.limit = limit if limit is not None else settings.rate_limit_max
        self.window_seconds = (
            window_seconds if window_seconds is not None else settings.rate_limit_window_seconds
        )

    @staticmethod
    def _extract_client_ip(scope: Scope) -> str:
        headers = scope.get("headers") or []
        for header_name in ("cf-connecting-ip", "x-forwarded-for"):
            for key, value in headers:
                if key.decode().lower() == header_name:
                    candidate: str = value.decode().split(",")[0].strip()
                    if candidate:
                        return candidate
        client_info = scope.get("client")
        if isinstance(client_info, (tuple, list)) and client_info:
            host = client_info[0]
            if isinstance(host, str) and host:
                return host
        return "unknown"

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        path = scope.get("path", "")
        method = scope.get("method", "GET")
        if not (path == API_PATH_PREFIX or path.startswith(API_PATH_PREFIX + "/")):
            await self.app(scope, receive, send)
            return

        # Always allow CORS preflight requests
        if method == "OPTIONS":
            await self.app(scope, receive, send)
            return

        client_ip = self._extract_client_ip(scope)
        allowed, requests_made, retry_after = await self.rate_limiter.check_rate_limit(
            identifier=client_ip,
            limit=self.limit,
            window_seconds=self.window_seconds,
            window_name="api",
        )

        if not allowed:
            logger.warning(
                "[RATE_LIMIT] 429",
                extra={
                    "path": path,
                    "method": method,
                    "key": client_ip,
                    "count_before": requests_made,
                    "limit": self.limit,
                    "retry_after": retry_after,
                },
            )
            response = JSONResponse(
                status_code=429,
                content={
                    "message": RATE_LIMITED_MESSAGE,
                    "code": "RATE_LIMIT_EXCEEDED",
                    "retry_after": retry_after,
                },
                headers={
                    "Retry-After": str(retry_after),
                    "X-RateLimit-Limit": str(self.limit),
                    "X-RateLimit-Remaining": "0",
                    "X-RateLimit-Reset": str(int(time.time()) + retry_after),
                },
            )
            await response(scope, receive, send)
            return

        remaining = max(0, self.limit - requests_made)

        async def send_wrapper(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = MutableHeaders(scope=message)
                headers["X-RateLimit-Limit"] = str(self.limit)
                headers["X-RateLimit-Remaining"] = str(remaining)
                headers["X-RateLimit-Reset"] = str(int(time.time()) + self.window_seconds)
            await send(message)

        await self.app(scope, receive, send_wrapper)
