"""
Rate limiting middleware for the Jirung API.

Sliding-window counter per client (API key or IP).
"""

import logging
import time
from typing import Dict, List

from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Sliding-window rate limiter."""

    EXEMPT_PATHS = ("/health", "/metrics", "/docs", "/openapi.json")

    def __init__(self, app, requests_per_minute: int = 60, window_seconds: int = 60):
        super().__init__(app)
        self.requests_per_minute = requests_per_minute
        self.window_seconds = window_seconds
        self._requests: Dict[str, List[float]] = {}
        self._last_sweep = time.time()

    async def dispatch(self, request: Request, call_next):
        if request.url.path in self.EXEMPT_PATHS:
            return await call_next(request)

        client_id = self._get_client_id(request)
        now = time.time()

        # Clean old entries
        window_start = now - self.window_seconds
        if now - self._last_sweep >= self.window_seconds:
            self._sweep(window_start)
            self._last_sweep = now
        recent = [t for t in self._requests.get(client_id, []) if t > window_start]

        if len(recent) >= self.requests_per_minute:
            if recent:
                self._requests[client_id] = recent
            else:
                self._requests.pop(client_id, None)
            logger.warning(f"Rate limit exceeded for {client_id}")
            # Exceptions raised here bypass FastAPI's handlers
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={"detail": "Rate limit exceeded. Please try again later."},
                headers={"Retry-After": str(self.window_seconds)},
            )

        recent.append(now)
        self._requests[client_id] = recent
        response = await call_next(request)

        remaining = self.requests_per_minute - len(recent)
        response.headers["X-RateLimit-Limit"] = str(self.requests_per_minute)
        response.headers["X-RateLimit-Remaining"] = str(max(0, remaining))

        return response

    def _get_client_id(self, request: Request) -> str:
        """Identify client by API key, auth token, or IP."""
        api_key = request.headers.get("X-API-Key")
        if api_key:
            return f"key:{api_key[:8]}"

        auth = request.headers.get("Authorization")
        if auth and auth.startswith("Bearer "):
            return f"token:{auth[7:15]}"

        return f"ip:{request.client.host}" if request.client else "ip:unknown"

    def _sweep(self, window_start: float) -> None:
        """Forget clients with no requests inside the window."""
        stale = [
            client_id
            for client_id, stamps in self._requests.items()
            if not stamps or stamps[-1] <= window_start
        ]
        for client_id in stale:
            del self._requests[client_id]
