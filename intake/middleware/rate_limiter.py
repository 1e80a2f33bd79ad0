# intake/middleware/rate_limiter.py
from __future__ import annotations

import time
from typing import Tuple

from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from intake.core.config import settings
from intake.core.exceptions import RateLimitError
from intake.core.logging import get_structlog_logger
from intake.services.consent import extract_client_ip
from intake.services.redis import get_redis_client

logger = get_structlog_logger(__name__)


class RateLimitingMiddleware(BaseHTTPMiddleware):
    """Fixed-window rate limiting per client IP, backed by Redis."""

    def __init__(self, app, requests: int = None, period: int = None):
        super().__init__(app)
        self.redis = None
        self.rate_limit_requests = requests or settings.rate_limit_requests
        self.rate_limit_period = period or settings.rate_limit_period

        self.exempt_paths = [
            "/",
            "/metrics",
            f"{settings.api_prefix}/health",
            f"{settings.api_prefix}/health/live",
            f"{settings.api_prefix}/health/ready",
        ]

    async def dispatch(self, request: Request, call_next):
        if request.url.path in self.exempt_paths or request.method in ("GET", "HEAD", "OPTIONS"):
            return await call_next(request)

        client_id = self._get_client_id(request)

        allowed, remaining, reset_time = await self._check_rate_limit(client_id, request)

        if not allowed:
            retry_after = max(0, reset_time - int(time.time()))
            logger.warning(
                "rate_limit.exceeded",
                client_id=client_id,
                path=request.url.path,
                method=request.method,
                retry_after=retry_after,
            )
            exc = RateLimitError(retry_after=retry_after)
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={"error": exc.public_message},
                headers={"Retry-After": str(retry_after)},
            )

        response = await call_next(request)

        response.headers["X-RateLimit-Limit"] = str(self.rate_limit_requests)
        response.headers["X-RateLimit-Remaining"] = str(remaining)
        response.headers["X-RateLimit-Reset"] = str(reset_time)

        return response

    def _get_client_id(self, request: Request) -> str:
        client_ip = extract_client_ip(request.headers)
        if not client_ip:
            client_ip = request.client.host if request.client else "unknown"
        return f"ip:{client_ip}"

    async def _check_rate_limit(self, client_id: str, request: Request) -> Tuple[bool, int, int]:
        """Return (allowed, remaining, reset_time). Fails open when Redis is unavailable."""
        reset_time = int((time.time() // self.rate_limit_period + 1) * self.rate_limit_period)
        key = f"ratelimit:{client_id}:{int(time.time() // self.rate_limit_period)}"

        try:
            if not self.redis:
                self.redis = await get_redis_client()

            async with self.redis.pipeline(transaction=True) as pipe:
                pipe.incr(key)
                pipe.expire(key, self.rate_limit_period)
                results = await pipe.execute()
                current_count = int(results[0])

        except Exception as e:
            logger.error("rate_limit.error", error=str(e), client_id=client_id[:50])
            return True, self.rate_limit_requests, reset_time

        remaining = max(0, self.rate_limit_requests - current_count)
        allowed = current_count <= self.rate_limit_requests

        return allowed, remaining, reset_time
