"""Per-identity request quotas.

Every resource request counts against the caller's ``crud`` bucket, keyed
by tenant and user. Redis backs the counters when ``REDIS_URL`` is set so
that all workers share one quota; otherwise each process keeps its own.
"""

from datetime import datetime

import redis.asyncio as aioredis

from leavedesk.app.config import Settings
from leavedesk.app.db.context import RequestContext
from leavedesk.app.db.inmemory import InMemoryRateLimiter
from leavedesk.app.db.repositories import RateLimiter, RetryAfter

CRUD_BUCKET = "crud"


def make_rate_limit_key(ctx: RequestContext, bucket: str = CRUD_BUCKET) -> str:
    """Quota key for one identity and bucket, ``tenant:user:bucket``."""
    return f"{ctx.tenant_id}:{ctx.user_id}:{bucket}"


class RedisRateLimiter:
    """Fixed-window counter in Redis.

    Each window gets its own key; the counter and its TTL are read in one
    round trip and the TTL is set by whichever request opens the window.
    """

    def __init__(self, redis_client: aioredis.Redis, max_requests: int, window_seconds: int = 60) -> None:
        self._redis = redis_client
        self._max_requests = max_requests
        self._window_seconds = window_seconds

    def _window_key(self, key: str, now: datetime) -> str:
        window_start = int(now.timestamp()) // self._window_seconds * self._window_seconds
        return f"ratelimit:{key}:{window_start}"

    async def check_quota(self, key: str, now: datetime) -> RetryAfter | None:
        redis_key = self._window_key(key, now)

        pipe = self._redis.pipeline()
        pipe.incr(redis_key)
        pipe.ttl(redis_key)
        count, ttl = await pipe.execute()

        # -1: key exists without expiry, i.e. this request opened the window
        if ttl == -1:
            await self._redis.expire(redis_key, self._window_seconds)
            ttl = self._window_seconds

        if count > self._max_requests:
            return RetryAfter(seconds=max(1, ttl))

        return None


def create_rate_limiter(settings: Settings) -> RateLimiter:
    """Redis limiter when REDIS_URL is configured, in-process otherwise."""
    if settings.redis_url:
        client = aioredis.from_url(settings.redis_url, decode_responses=True)
        return RedisRateLimiter(client, settings.crud_ops_per_min, settings.rate_limit_window_sec)

    return InMemoryRateLimiter(settings.crud_ops_per_min, settings.rate_limit_window_sec)
