"""
Unit tests for the sliding-window rate limiter.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from app.core.rate_limit import (
    RateLimitExceeded,
    check_rate_limit,
    enforce_rate_limit,
    reset_memory_store,
)


@pytest.fixture(autouse=True)
def clean_store():
    reset_memory_store()
    yield
    reset_memory_store()


@pytest.fixture
def no_redis():
    with patch("app.core.rate_limit.redis_module.redis_client", None):
        yield


def _mock_redis(count: int) -> MagicMock:
    client = MagicMock()
    pipe = MagicMock()
    pipe.execute = AsyncMock(return_value=[0, count, 1, True])
    client.pipeline.return_value = pipe
    return client


class TestMemoryFallback:
    """Tests for the in-process store used without Redis."""

    @pytest.mark.asyncio
    async def test_allows_up_to_limit(self, no_redis):
        results = [await check_rate_limit("k", 3, 60) for _ in range(4)]
        assert results == [True, True, True, False]

    @pytest.mark.asyncio
    async def test_keys_are_independent(self, no_redis):
        assert await check_rate_limit("a", 1, 60)
        assert not await check_rate_limit("a", 1, 60)
        assert await check_rate_limit("b", 1, 60)

    @pytest.mark.asyncio
    async def test_enforce_raises_429(self, no_redis):
        await enforce_rate_limit("login:1.2.3.4:x@y.com", 1, 900)
        with pytest.raises(RateLimitExceeded) as exc_info:
            await enforce_rate_limit("login:1.2.3.4:x@y.com", 1, 900)
        assert exc_info.value.status_code == 429
        assert exc_info.value.headers == {"Retry-After": "900"}
        assert exc_info.value.detail["error"] == "RATE_LIMIT_EXCEEDED"


class TestRedisBackend:
    """Tests for the Redis sorted-set backend."""

    @pytest.mark.asyncio
    async def test_under_limit_allowed(self):
        with patch("app.core.rate_limit.redis_module.redis_client", _mock_redis(2)):
            assert await check_rate_limit("k", 5, 60)

    @pytest.mark.asyncio
    async def test_at_limit_rejected(self):
        with patch("app.core.rate_limit.redis_module.redis_client", _mock_redis(5)):
            assert not await check_rate_limit("k", 5, 60)

    @pytest.mark.asyncio
    async def test_redis_failure_falls_back_to_memory(self):
        client = MagicMock()
        pipe = MagicMock()
        pipe.execute = AsyncMock(side_effect=RedisConnectionError("down"))
        client.pipeline.return_value = pipe
        with patch("app.core.rate_limit.redis_module.redis_client", client):
            assert await check_rate_limit("k", 1, 60)
            assert not await check_rate_limit("k", 1, 60)
