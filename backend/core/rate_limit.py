"""Rate limiting for destructive routes.

The limiter is an ordinary object held on ``app.state.rate_limiter`` and
looked up per request, so tests and deployments can swap it. Windows live in
a ``limits`` storage that expires them by TTL; the default ``memory://``
storage is per process, point ``RATE_LIMIT_STORAGE_URI`` at Redis when
running more than one instance.
"""

import math
import time

from fastapi import HTTPException, Request, status
from limits import RateLimitItemPerSecond
from limits.storage import storage_from_string
from limits.strategies import MovingWindowRateLimiter

from core.config import settings


class RateLimiter:
    namespace = "shop-api"

    def __init__(
        self,
        max_requests: int = settings.rate_limit_max_requests,
        window_seconds: int = settings.rate_limit_window_seconds,
        storage_uri: str = settings.rate_limit_storage_uri,
    ):
        self.item = RateLimitItemPerSecond(max_requests, window_seconds)
        self.storage = storage_from_string(storage_uri)
        self.strategy = MovingWindowRateLimiter(self.storage)

    def hit(self, key: str) -> bool:
        """Record one request for `key`; False once the window is full."""
        return self.strategy.hit(self.item, self.namespace, key)

    def retry_after(self, key: str) -> int:
        stats = self.strategy.get_window_stats(self.item, self.namespace, key)
        return max(1, int(math.ceil(stats.reset_time - time.time())))

    def reset(self) -> None:
        self.storage.reset()


def client_key(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client:
        return request.client.host
    return "unknown"


async def rate_limit(request: Request) -> None:
    limiter: RateLimiter = request.app.state.rate_limiter
    key = client_key(request)
    if not limiter.hit(key):
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many requests. Please try again later.",
            headers={"Retry-After": str(limiter.retry_after(key))},
        )
