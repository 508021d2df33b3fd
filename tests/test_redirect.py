"""Redirect resolution and detached click accounting."""

import asyncio
from unittest.mock import AsyncMock

import pytest
import redis.asyncio as redis

from tinylink.cache import CachedLink, LinkCache
from tinylink.clicks import ClickRecorder
from tinylink.errors import LinkNotFound, ReservedPath, StorageError
from tinylink.redirect import RedirectHandler


def make_handler(store, cache=None) -> tuple[RedirectHandler, ClickRecorder]:
    recorder = ClickRecorder(store)
    handler = RedirectHandler(store, recorder, cache=cache, reserved_paths=["favicon.ico", "robots.txt"])
    return handler, recorder


@pytest.mark.asyncio
async def test_resolve_returns_target_and_counts_click(memory_store) -> None:
    await memory_store.insert_if_absent("abc123", "https://example.com")
    handler, recorder = make_handler(memory_store)

    assert await handler.resolve("abc123") == "https://example.com"
    await recorder.drain()

    link = memory_store.links["abc123"]
    assert link.total_clicks == 1
    assert link.last_clicked_at is not None


@pytest.mark.asyncio
async def test_resolve_does_not_wait_for_click_update(memory_store) -> None:
    await memory_store.insert_if_absent("abc123", "https://example.com")
    handler, recorder = make_handler(memory_store)

    await handler.resolve("abc123")

    # the update is scheduled but has not run yet
    assert recorder.pending == 1
    assert memory_store.links["abc123"].total_clicks == 0

    await recorder.drain()
    assert recorder.pending == 0
    assert memory_store.links["abc123"].total_clicks == 1


@pytest.mark.asyncio
async def test_repeated_resolve_is_stable_and_counts_every_click(memory_store) -> None:
    await memory_store.insert_if_absent("abc123", "https://example.com")
    handler, recorder = make_handler(memory_store)

    targets = [await handler.resolve("abc123") for _ in range(5)]
    await recorder.drain()

    assert targets == ["https://example.com"] * 5
    assert memory_store.links["abc123"].total_clicks == 5


@pytest.mark.asyncio
async def test_unknown_code_raises_not_found(memory_store) -> None:
    handler, recorder = make_handler(memory_store)

    with pytest.raises(LinkNotFound):
        await handler.resolve("zzzzzz")

    assert recorder.pending == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("path", ["favicon.ico", "robots.txt"])
async def test_reserved_path_skips_store(memory_store, path: str) -> None:
    memory_store.find_by_code = AsyncMock()
    handler, _ = make_handler(memory_store)

    with pytest.raises(ReservedPath):
        await handler.resolve(path)

    memory_store.find_by_code.assert_not_awaited()


@pytest.mark.asyncio
@pytest.mark.parametrize("code", ["short", "muchtoolongcode", "bad-code"])
async def test_malformed_code_skips_store(memory_store, code: str) -> None:
    memory_store.find_by_code = AsyncMock()
    handler, _ = make_handler(memory_store)

    with pytest.raises(LinkNotFound):
        await handler.resolve(code)

    memory_store.find_by_code.assert_not_awaited()


@pytest.mark.asyncio
async def test_click_failure_does_not_affect_redirect(memory_store, caplog) -> None:
    await memory_store.insert_if_absent("abc123", "https://example.com")
    memory_store.fail_increments = True
    handler, recorder = make_handler(memory_store)

    assert await handler.resolve("abc123") == "https://example.com"
    await recorder.drain()

    assert memory_store.links["abc123"].total_clicks == 0
    assert "Failed to update click count" in caplog.text


@pytest.mark.asyncio
async def test_cache_hit_skips_store(memory_store) -> None:
    client = AsyncMock(spec=redis.Redis)
    client.get = AsyncMock(
        return_value=CachedLink(id=7, code="abc123", target_url="https://cached.example.com").model_dump_json()
    )
    memory_store.find_by_code = AsyncMock()
    memory_store.increment_clicks = AsyncMock()
    handler, recorder = make_handler(memory_store, cache=LinkCache(client, ttl_seconds=60))

    assert await handler.resolve("abc123") == "https://cached.example.com"
    await recorder.drain()

    memory_store.find_by_code.assert_not_awaited()
    memory_store.increment_clicks.assert_awaited_once_with(7)


@pytest.mark.asyncio
async def test_cache_miss_reads_store_and_fills_cache(memory_store) -> None:
    await memory_store.insert_if_absent("abc123", "https://example.com")
    client = AsyncMock(spec=redis.Redis)
    client.get = AsyncMock(return_value=None)
    client.setex = AsyncMock(return_value=True)
    handler, recorder = make_handler(memory_store, cache=LinkCache(client, ttl_seconds=60))

    assert await handler.resolve("abc123") == "https://example.com"
    await recorder.drain()

    client.setex.assert_awaited_once()
    key, ttl, payload = client.setex.await_args.args
    assert (key, ttl) == ("link:abc123", 60)
    assert CachedLink.model_validate_json(payload).target_url == "https://example.com"


def dict_backed_redis() -> AsyncMock:
    """Mock Redis client that keeps values in a plain dict."""
    data: dict[str, str] = {}
    client = AsyncMock(spec=redis.Redis)
    client.get = AsyncMock(side_effect=lambda key: data.get(key))
    client.setex = AsyncMock(side_effect=lambda key, ttl, value: data.__setitem__(key, value))
    client.delete = AsyncMock(side_effect=lambda key: int(data.pop(key, None) is not None))
    return client


@pytest.mark.asyncio
async def test_delete_during_lookup_leaves_no_stale_entry(memory_store) -> None:
    await memory_store.insert_if_absent("abc123", "https://old.example.com")
    cache = LinkCache(dict_backed_redis(), ttl_seconds=3600)
    handler, recorder = make_handler(memory_store, cache=cache)

    looked_up = asyncio.Event()
    release = asyncio.Event()
    find_by_code = memory_store.find_by_code

    async def find_then_wait(code: str):
        link = await find_by_code(code)
        if not looked_up.is_set():
            looked_up.set()
            await release.wait()
        return link

    memory_store.find_by_code = find_then_wait
    pending = asyncio.create_task(handler.resolve("abc123"))
    await looked_up.wait()

    # the link is deleted while the first redirect is between lookup and cache fill
    await memory_store.delete_by_code("abc123")
    await cache.evict("abc123")
    release.set()
    assert await pending == "https://old.example.com"

    await memory_store.insert_if_absent("abc123", "https://new.example.com")
    assert await handler.resolve("abc123") == "https://new.example.com"
    await recorder.drain()

    assert memory_store.links["abc123"].total_clicks == 1


@pytest.mark.asyncio
async def test_cache_fill_survives_failed_confirmation(memory_store) -> None:
    link = await memory_store.insert_if_absent("abc123", "https://example.com")
    client = dict_backed_redis()
    handler, recorder = make_handler(memory_store, cache=LinkCache(client, ttl_seconds=60))
    memory_store.find_by_code = AsyncMock(side_effect=[link, StorageError("lookup failed")])

    assert await handler.resolve("abc123") == "https://example.com"
    await recorder.drain()

    client.delete.assert_awaited_once_with("link:abc123")
