"""Per-user fixed-window rate limiting backed by Redis.

Each (scope, user, minute) gets a counter that expires with its window.
Redis being unreachable fails open; the health check reports it instead.
"""

import time
from typing import Annotated, Callable

import structlog
from fastapi import Depends, HTTPException, Request
from redis.exceptions import RedisError

from app.config import settings
from app.dependencies import CurrentUser

log = structlog.get_logger(__name__)

WINDOW_SECONDS = 60


class RateLimiter:
    def __init__(self, scope: str, limit: Callable[[], int]):
        self.scope = scope
        self._limit = limit

    async def __call__(self, request: Request, user: CurrentUser) -> None:
        window = int(time.time() // WINDOW_SECONDS)
        key = f"ratelimit:{self.scope}:{user.username}:{window}"
        try:
            redis = request.app.state.redis
            count = await redis.incr(key)
            if count == 1:
                await redis.expire(key, WINDOW_SECONDS)
        except (RedisError, AttributeError, OSError):
            log.warning("rate_limiter_unavailable", scope=self.scope, exc_info=True)
            return

        limit = self._limit()
        if count > limit:
            raise HTTPException(
                status_code=429,
                detail=f"rate limit exceeded: {limit} {self.scope} requests per minute",
                headers={"Retry-After": str(WINDOW_SECONDS)},
            )


ReadRateLimit = Annotated[
    None, Depends(RateLimiter("read", lambda: settings.read_rate_limit_per_minute))
]
WriteRateLimit = Annotated[
    None, Depends(RateLimiter("write", lambda: settings.write_rate_limit_per_minute))
]
