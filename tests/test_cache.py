"""Redirect cache behaviour with a mocked Redis client."""

import datetime
from unittest.mock import AsyncMock

import pytest
import redis.asyncio as redis
from redis.exceptions import ConnectionError as RedisConnectionError

from tinylink.cache import CachedLink, LinkCache
from tinylink.models import Link


@pytest.fixture
def mock_redis() -> AsyncMock:
    """Mock Redis client."""
    client = AsyncMock(spec=redis.Redis)
    client.get = AsyncMock(return_value=None)
    client.setex = AsyncMock(return_value=True)
    client.delete = AsyncMock(return_value=1)
    client.aclose = AsyncMock()
    return client


@pytest.fixture
def sample_link() -> Link:
    return Link(
        id=3,
        code="abc123",
        target_url="https://example.com",
        total_clicks=12,
        last_clicked_at=None,
        created_at=datetime.datetime(2024, 1, 1, tzinfo=datetime.timezone.utc),
    )


@pytest.mark.asyncio
async def test_put_then_get_payload(mock_redis, sample_link) -> None:
    cache = LinkCache(mock_redis, ttl_seconds=3600)

    await cache.put(sample_link)

    key, ttl, payload = mock_redis.setex.await_args.args
    assert key == "link:abc123"
    assert ttl == 3600
    # click counters are not part of the cached payload
    assert "total_clicks" not in payload

    mock_redis.get.return_value = payload
    cached = await cache.get("abc123")
    assert cached == CachedLink(id=3, code="abc123", target_url="https://example.com")


@pytest.mark.asyncio
async def test_get_miss(mock_redis) -> None:
    cache = LinkCache(mock_redis, ttl_seconds=60)
    assert await cache.get("abc123") is None


@pytest.mark.asyncio
async def test_redis_error_reads_as_miss(mock_redis) -> None:
    mock_redis.get.side_effect = RedisConnectionError("connection refused")
    cache = LinkCache(mock_redis, ttl_seconds=60)

    assert await cache.get("abc123") is None


@pytest.mark.asyncio
async def test_corrupt_payload_reads_as_miss(mock_redis) -> None:
    mock_redis.get.return_value = '{"id": "not-a-number"}'
    cache = LinkCache(mock_redis, ttl_seconds=60)

    assert await cache.get("abc123") is None


@pytest.mark.asyncio
async def test_write_and_evict_errors_are_swallowed(mock_redis, sample_link) -> None:
    mock_redis.setex.side_effect = RedisConnectionError("connection refused")
    mock_redis.delete.side_effect = RedisConnectionError("connection refused")
    cache = LinkCache(mock_redis, ttl_seconds=60)

    await cache.put(sample_link)
    await cache.evict("abc123")


@pytest.mark.asyncio
async def test_evict_and_close(mock_redis) -> None:
    cache = LinkCache(mock_redis, ttl_seconds=60)

    await cache.evict("abc123")
    await cache.close()

    mock_redis.delete.assert_awaited_once_with("link:abc123")
    mock_redis.aclose.assert_awaited_once()
