"""
Rate Limit Middleware

Simple in-memory rate limiting using sliding window.
"""

import time
from collections import defaultdict
from typing import Callable, Dict, Optional

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from matchmaker.config import Settings, get_settings


MATCHMAKING_ACTIONS = ("/matchmaking/join", "/matchmaking/leave")

EXEMPT_PATHS = ["/", "/docs", "/redoc", "/openapi.json"]


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Rate limiting middleware using sliding window algorithm.

    Every client IP gets a general budget per window. Queue join/leave
    calls are additionally held to a tighter per-minute budget.
    Health checks are never limited.

    State is per process; several HTTP replicas each keep their own window.
    """

    def __init__(self, app, settings: Optional[Settings] = None):
        super().__init__(app)
        self.settings = settings or get_settings()
        # Store: {key: [timestamp, ...]}
        self.requests: Dict[str, list] = defaultdict(list)

    def _client_ip(self, request: Request) -> str:
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            return forwarded.split(",")[0].strip()
        return request.client.host if request.client else "unknown"

    def _limits_for(self, request: Request) -> list:
        """
        Get (key, limit, window) tuples that apply to the request.
        """
        client_ip = self._client_ip(request)
        limits = [
            (
                f"ip:{client_ip}",
                self.settings.rate_limit_max_requests,
                self.settings.rate_limit_window_seconds,
            )
        ]

        if request.method == "POST" and request.url.path.endswith(MATCHMAKING_ACTIONS):
            limits.append(
                (
                    f"matchmaking:{client_ip}",
                    self.settings.matchmaking_rate_max_requests,
                    self.settings.matchmaking_rate_window_seconds,
                )
            )
        return limits

    def _is_rate_limited(self, key: str, limit: int, window_size: int, now: float) -> bool:
        """
        Check if the key is rate limited.

        Uses sliding window algorithm.
        """
        window_start = now - window_size

        # Remove old entries
        self.requests[key] = [
            ts for ts in self.requests[key]
            if ts > window_start
        ]

        return len(self.requests[key]) >= limit

    def _rejected(self, window_size: int) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            content={
                "error": "RATE_LIMIT_EXCEEDED",
                "detail": "Rate limit exceeded. Please try again later.",
                "retry_after_seconds": window_size
            },
            headers={"Retry-After": str(window_size)}
        )

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request with rate limiting."""
        path = request.url.path
        if path in EXEMPT_PATHS or path.startswith("/health"):
            return await call_next(request)

        now = time.time()
        limits = self._limits_for(request)

        for key, limit, window_size in limits:
            if self._is_rate_limited(key, limit, window_size, now):
                return self._rejected(window_size)

        for key, _, _ in limits:
            self.requests[key].append(now)

        return await call_next(request)
