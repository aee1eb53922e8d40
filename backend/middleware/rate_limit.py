"""
In-memory rate limiting for order endpoints.

Stops a misbehaving page (or script) from creating or paying orders in a
tight loop. Each endpoint names a scope; hits are counted per scope and
client IP over a sliding window. Allowed responses carry
X-RateLimit-Limit / X-RateLimit-Remaining, refused ones a Retry-After.
For multi-worker deployments, replace with a shared store.
"""
import logging
import math
import time
from collections import defaultdict, deque
from dataclasses import dataclass
from typing import Callable

from fastapi import Request, Response

from domain.errors import RateLimitError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LimitStatus:
    allowed: bool
    limit: int
    remaining: int
    retry_after: int = 0  # whole seconds until the oldest hit leaves the window


class RateLimiter:
    """Sliding-window counter keyed by an opaque string."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._hits: dict[str, deque[float]] = defaultdict(deque)

    def hit(self, key: str, max_requests: int, window_seconds: int) -> LimitStatus:
        """Record a request for `key` if the window has room for it."""
        now = self._clock()
        hits = self._hits[key]
        while hits and hits[0] <= now - window_seconds:
            hits.popleft()

        if len(hits) >= max_requests:
            retry_after = max(1, math.ceil(hits[0] + window_seconds - now))
            return LimitStatus(False, max_requests, 0, retry_after)

        hits.append(now)
        return LimitStatus(True, max_requests, max_requests - len(hits))

    def reset(self) -> None:
        self._hits.clear()


# Global rate limiter instance
limiter = RateLimiter()


def rate_limit(scope: str, max_requests: int = 10, window_seconds: int = 60):
    """
    FastAPI dependency factory for rate limiting.

    All requests in one scope share a counter per client IP, whatever the
    path parameters.

    Usage:
        @router.post("/orders")
        async def create_order(body: ..., _=Depends(rate_limit("orders:create", 20, 60))):
            ...
    """
    async def _check_rate_limit(request: Request, response: Response):
        client_ip = request.client.host if request.client else "unknown"
        result = limiter.hit(f"{scope}:{client_ip}", max_requests, window_seconds)

        if not result.allowed:
            logger.warning(
                f"Rate limit exceeded: {client_ip} on {scope} "
                f"({max_requests}/{window_seconds}s, retry in {result.retry_after}s)"
            )
            raise RateLimitError(
                f"Rate limit exceeded. Maximum {max_requests} requests "
                f"per {window_seconds} seconds. Try again in {result.retry_after} seconds.",
                retry_after=result.retry_after,
            )

        response.headers["X-RateLimit-Limit"] = str(result.limit)
        response.headers["X-RateLimit-Remaining"] = str(result.remaining)

    return _check_rate_limit
