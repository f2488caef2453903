"""Tests for rate limiting."""

from datetime import datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from leavedesk.app.config import Settings
from leavedesk.app.db.context import RequestContext
from leavedesk.app.db.inmemory import InMemoryRateLimiter
from leavedesk.app.main import create_app
from leavedesk.app.ratelimit import RedisRateLimiter, create_rate_limiter, make_rate_limit_key


@pytest.mark.asyncio
async def test_rate_limiter_allows_under_quota() -> None:
    """Test rate limiter allows requests under quota."""
    limiter = InMemoryRateLimiter(max_requests=5, window_seconds=60)
    now = datetime.now()

    key = "test:key:bucket"

    for i in range(5):
        retry_after = await limiter.check_quota(key, now + timedelta(seconds=i))
        assert retry_after is None


@pytest.mark.asyncio
async def test_rate_limiter_blocks_over_quota() -> None:
    """Test rate limiter blocks requests over quota."""
    limiter = InMemoryRateLimiter(max_requests=3, window_seconds=60)
    now = datetime.now()

    key = "test:key:bucket"

    for _ in range(3):
        assert await limiter.check_quota(key, now) is None

    # 4th request should be blocked
    retry_after = await limiter.check_quota(key, now + timedelta(seconds=20))
    assert retry_after is not None
    assert retry_after.seconds == 40


@pytest.mark.asyncio
async def test_rate_limiter_resets_after_window() -> None:
    """Test rate limiter resets quota after window expires."""
    limiter = InMemoryRateLimiter(max_requests=2, window_seconds=60)
    now = datetime.now()

    key = "test:key:bucket"

    await limiter.check_quota(key, now)
    await limiter.check_quota(key, now)
    assert await limiter.check_quota(key, now) is not None

    future = now + timedelta(seconds=61)
    assert await limiter.check_quota(key, future) is None


@pytest.mark.asyncio
async def test_rate_limiter_separate_keys() -> None:
    """Test rate limiter tracks separate keys independently."""
    limiter = InMemoryRateLimiter(max_requests=2, window_seconds=60)
    now = datetime.now()

    await limiter.check_quota("tenant:user1:crud", now)
    await limiter.check_quota("tenant:user1:crud", now)

    assert await limiter.check_quota("tenant:user1:crud", now) is not None
    assert await limiter.check_quota("tenant:user2:crud", now) is None


def test_make_rate_limit_key() -> None:
    """Test rate limit key generation."""
    ctx = RequestContext(tenant_id="acme", user_id="u-1", roles=frozenset({"hr"}))

    assert make_rate_limit_key(ctx) == "acme:u-1:crud"
    assert make_rate_limit_key(ctx, "export") == "acme:u-1:export"


@pytest.mark.asyncio
async def test_redis_rate_limiter_blocks_over_quota() -> None:
    """Test the INCR/TTL window against a mocked asyncio client."""
    client = MagicMock()
    client.expire = AsyncMock()
    pipe = client.pipeline.return_value
    pipe.execute = AsyncMock(side_effect=[[1, -1], [2, 55], [3, 42]])
    limiter = RedisRateLimiter(client, max_requests=2, window_seconds=60)
    now = datetime(2026, 3, 2, 9, 0, 30)

    assert await limiter.check_quota("acme:u-1:crud", now) is None
    assert await limiter.check_quota("acme:u-1:crud", now) is None
    retry_after = await limiter.check_quota("acme:u-1:crud", now)

    assert retry_after is not None
    assert retry_after.seconds == 42
    redis_key = pipe.incr.call_args.args[0]
    assert redis_key.startswith("ratelimit:acme:u-1:crud:")
    client.expire.assert_awaited_once_with(redis_key, 60)
    assert pipe.execute.await_count == 3


def test_create_rate_limiter_without_redis_is_in_memory() -> None:
    limiter = create_rate_limiter(Settings(redis_url=None))

    assert isinstance(limiter, InMemoryRateLimiter)


def test_create_rate_limiter_with_redis_uses_asyncio_client() -> None:
    limiter = create_rate_limiter(Settings(redis_url="redis://localhost:6379/0"))

    assert isinstance(limiter, RedisRateLimiter)
    assert type(limiter._redis).__module__.startswith("redis.asyncio")


def test_api_returns_429_with_retry_after() -> None:
    """Test that the per-identity quota is enforced on the routes."""
    app = create_app(Settings(store_backend="memory", crud_ops_per_min=2))
    client = TestClient(app)
    headers = {"Authorization": "Bearer rl-tenant:rl-user:admin"}

    assert client.get("/api/leaves", headers=headers).status_code == 200
    assert client.get("/api/leaves", headers=headers).status_code == 200
    response = client.get("/api/leaves", headers=headers)

    assert response.status_code == 429
    assert response.json()["code"] == "rate_limited"
    assert int(response.headers["Retry-After"]) >= 1

    # Another identity has its own bucket
    other = {"Authorization": "Bearer rl-tenant:rl-other:admin"}
    assert client.get("/api/leaves", headers=other).status_code == 200
