"""Redis read-through cache for the redirect path.

Only what a redirect needs is cached: the link id (for click accounting) and
the target URL. Click counters are never cached, so stats always come from
the store.

Flow Diagram — Cached Redirect Lookup
=====================================
::
    ┌─────────────┐
    │ get(code)   │
    └──────┬──────┘
    HIT?   │
    ┌──────┴─────┐
    │ NO         │ YES
    ▼            ▼
┌─────────┐  ┌─────────┐
│ store   │  │ Return  │
│ lookup  │  │ cached  │
│ + put() │  │ payload │
└─────────┘  └─────────┘

How to Use
===========
**Step 1 — Create on startup**::
    cache = LinkCache.from_url(settings.REDIS_URL, settings.CACHE_TTL_SECONDS)

**Step 2 — Read through**::
    cached = await cache.get("abc123")
    if cached is None:
        link = await store.find_by_code("abc123")
        await cache.put(link)

**Step 3 — Evict on delete, close on shutdown**::
    await cache.evict("abc123")
    await cache.close()

Key Behaviours
===============
- Entries expire after ``CACHE_TTL_SECONDS``.
- Redis errors and undecodable payloads are logged and read as a miss;
  the store stays the source of truth.

Classes:
    CachedLink:  JSON payload stored per code.
    LinkCache:  Get / put / evict wrapper around ``redis.asyncio``.
"""

import logging

import redis.asyncio as redis
from pydantic import BaseModel, ValidationError
from redis.exceptions import RedisError

from tinylink.enums import CacheStatus
from tinylink.metrics import CACHE_LOOKUPS_TOTAL
from tinylink.models import Link

__all__ = ["CachedLink", "LinkCache"]

logger = logging.getLogger(__name__)


class CachedLink(BaseModel):
    """Redis cache payload for one short code."""

    id: int
    code: str
    target_url: str

    model_config = {"from_attributes": True}


class LinkCache:
    def __init__(self, client: redis.Redis, ttl_seconds: int, key_prefix: str = "link") -> None:
        self._client = client
        self._ttl_seconds = ttl_seconds
        self._key_prefix = key_prefix

    @classmethod
    def from_url(cls, url: str, ttl_seconds: int) -> "LinkCache":
        client = redis.from_url(url, encoding="utf-8", decode_responses=True)
        return cls(client, ttl_seconds)

    def _key(self, code: str) -> str:
        return f"{self._key_prefix}:{code}"

    async def get(self, code: str) -> CachedLink | None:
        try:
            raw = await self._client.get(self._key(code))
        except RedisError as exc:
            logger.warning(f"Cache read failed for {code}: {exc}")
            raw = None

        if raw:
            try:
                cached = CachedLink.model_validate_json(raw)
            except ValidationError as exc:
                logger.warning(f"Cache deserialization error for {code}: {exc}")
            else:
                CACHE_LOOKUPS_TOTAL.labels(status=CacheStatus.HIT).inc()
                return cached

        CACHE_LOOKUPS_TOTAL.labels(status=CacheStatus.MISS).inc()
        return None

    async def put(self, link: Link) -> None:
        payload = CachedLink.model_validate(link)
        try:
            await self._client.setex(self._key(link.code), self._ttl_seconds, payload.model_dump_json())
        except RedisError as exc:
            logger.warning(f"Cache write failed for {link.code}: {exc}")

    async def evict(self, code: str) -> None:
        try:
            await self._client.delete(self._key(code))
        except RedisError as exc:
            # the entry lives until its TTL; redirects may still hit it
            logger.error(f"Cache eviction failed for {code}: {exc}")

    async def close(self) -> None:
        await self._client.aclose()
