"""
Rate limiting middleware for the FastAPI application.

Per-client token buckets held in process memory.
"""
import math
import time
from typing import Callable, Dict, Iterable, Optional

from fastapi import Request, status
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse, Response

from docspace.core.exceptions import create_error_response
from docspace.core.logger import get_logger

logger = get_logger(__name__)


class TokenBucket:
    """Token bucket algorithm implementation for rate limiting."""

    def __init__(self, capacity: int, refill_rate: float):
        """
        Args:
            capacity: Maximum number of tokens in the bucket
            refill_rate: Number of tokens added per second
        """
        self.capacity = capacity
        self.refill_rate = refill_rate
        self.tokens = float(capacity)
        self.last_refill = time.monotonic()

    def _refill(self) -> None:
        now = time.monotonic()
        self.tokens = min(self.capacity, self.tokens + (now - self.last_refill) * self.refill_rate)
        self.last_refill = now

    def consume(self, tokens: int = 1) -> bool:
        """Take ``tokens`` from the bucket if available."""
        self._refill()
        if self.tokens >= tokens:
            self.tokens -= tokens
            return True
        return False

    def retry_after(self, tokens: int = 1) -> int:
        """Seconds until ``tokens`` will be available."""
        missing = max(0.0, tokens - self.tokens)
        return max(1, math.ceil(missing / self.refill_rate))


class RateLimiter:
    """Keeps one bucket per client identifier."""

    def __init__(self, requests_per_minute: int, burst_capacity: int, idle_seconds: int = 300):
        self.refill_rate = requests_per_minute / 60.0
        self.capacity = burst_capacity
        self.idle_seconds = idle_seconds
        self.buckets: Dict[str, TokenBucket] = {}
        self.last_cleanup = time.monotonic()

    def _cleanup(self) -> None:
        now = time.monotonic()
        if now - self.last_cleanup < self.idle_seconds:
            return
        stale = [key for key, bucket in self.buckets.items() if now - bucket.last_refill > self.idle_seconds]
        for key in stale:
            del self.buckets[key]
        self.last_cleanup = now

    def check(self, identifier: str) -> Optional[int]:
        """
        Consume one token for ``identifier``.

        Returns:
            None when allowed, otherwise the number of seconds to wait
        """
        self._cleanup()
        bucket = self.buckets.get(identifier)
        if bucket is None:
            bucket = self.buckets[identifier] = TokenBucket(self.capacity, self.refill_rate)
        if bucket.consume():
            return None
        return bucket.retry_after()


def get_client_identifier(request: Request, trust_forwarded_for: bool = False) -> str:
    """
    Client IP for bucketing.

    The first ``X-Forwarded-For`` hop is only used when the app runs behind
    a proxy that sets it, since clients can send any value.
    """
    forwarded_for = request.headers.get("X-Forwarded-For") if trust_forwarded_for else None
    if forwarded_for:
        return f"ip:{forwarded_for.split(',')[0].strip()}"
    client_ip = request.client.host if request.client else "unknown"
    return f"ip:{client_ip}"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Middleware for applying rate limits to requests."""

    def __init__(
        self,
        app,
        requests_per_minute: int = 120,
        burst_capacity: int = 30,
        excluded_paths: Optional[Iterable[str]] = None,
        trust_forwarded_for: bool = False,
    ):
        super().__init__(app)
        self.trust_forwarded_for = trust_forwarded_for
        self.limiter = RateLimiter(requests_per_minute, burst_capacity)
        self.excluded_paths = set(excluded_paths or [
            "/health", "/metrics", "/docs", "/redoc", "/openapi.json",
            "/api/v1/health/live", "/api/v1/health/detailed",
        ])

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in self.excluded_paths:
            return await call_next(request)

        identifier = get_client_identifier(request, self.trust_forwarded_for)
        retry_after = self.limiter.check(identifier)
        if retry_after is not None:
            logger.warning("Rate limit exceeded", client=identifier, path=request.url.path)
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content=create_error_response(
                    message="Rate limit exceeded",
                    error_code="RATE_LIMIT_EXCEEDED",
                    details={"retry_after": retry_after},
                    request_id=getattr(request.state, "request_id", None),
                ),
                headers={"Retry-After": str(retry_after)},
            )

        return await call_next(request)
