"""
Storage backends for the client cache.
"""

import json
from typing import Optional, Protocol

import redis.asyncio as redis

from shared.logging import get_logger
from ..domain.models import CacheEntry
from ..storage.local_db import LocalDatabase


class CacheBackend(Protocol):
    """Persistence contract used by CacheStore."""

    async def load(self, key: str, site_id: str = "") -> Optional[CacheEntry]:
        ...

    async def save(self, entry: CacheEntry) -> None:
        ...

    async def delete(self, component: Optional[str] = None) -> int:
        ...


class SQLiteCacheBackend:
    """Cache entries kept in the on-device SQLite database."""

    def __init__(self, database: LocalDatabase):
        self.database = database

    async def load(self, key: str, site_id: str = "") -> Optional[CacheEntry]:
        return await self.database.get_cache_entry(key, site_id)

    async def save(self, entry: CacheEntry) -> None:
        await self.database.put_cache_entry(entry)

    async def delete(self, component: Optional[str] = None) -> int:
        return await self.database.delete_cache_entries(component)


class RedisCacheBackend:
    """Cache entries kept in Redis.

    Entries are written without a Redis TTL; expiry stays a read-time
    decision of CacheStore.
    """

    def __init__(self, redis_url: str, namespace: str = "offline"):
        self.redis_url = redis_url
        self.namespace = namespace
        self.logger = get_logger("sync.cache.redis")
        self._redis: Optional[redis.Redis] = None

    async def _get_redis(self) -> redis.Redis:
        """Get Redis connection."""
        if self._redis is None:
            self._redis = redis.from_url(self.redis_url)
        return self._redis

    def _member(self, key: str, site_id: str = "") -> str:
        return f"{site_id}:{key}" if site_id else key

    def _entry_key(self, member: str) -> str:
        return f"{self.namespace}:cache:{member}"

    def _component_key(self, component: str) -> str:
        return f"{self.namespace}:component:{component}"

    def _components_key(self) -> str:
        return f"{self.namespace}:components"

    async def load(self, key: str, site_id: str = "") -> Optional[CacheEntry]:
        redis_client = await self._get_redis()
        raw = await redis_client.get(self._entry_key(self._member(key, site_id)))
        if raw is None:
            return None
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        return CacheEntry.model_validate(json.loads(raw))

    async def save(self, entry: CacheEntry) -> None:
        redis_client = await self._get_redis()
        member = self._member(entry.key, entry.site_id)
        previous = await self.load(entry.key, entry.site_id)
        async with redis_client.pipeline(transaction=True) as pipe:
            if previous is not None and previous.component != entry.component:
                pipe.srem(self._component_key(previous.component), member)
            pipe.set(self._entry_key(member), entry.model_dump_json())
            pipe.sadd(self._component_key(entry.component), member)
            pipe.sadd(self._components_key(), entry.component)
            await pipe.execute()
        self.logger.debug("Cached value", key=entry.key, site_id=entry.site_id, component=entry.component)

    async def delete(self, component: Optional[str] = None) -> int:
        redis_client = await self._get_redis()
        if component is None:
            components = await redis_client.smembers(self._components_key())
        else:
            components = {component}

        removed = 0
        for name in components:
            if isinstance(name, bytes):
                name = name.decode("utf-8")
            members = await redis_client.smembers(self._component_key(name))
            keys = [self._entry_key(m.decode("utf-8") if isinstance(m, bytes) else m) for m in members]
            if keys:
                removed += await redis_client.delete(*keys)
            await redis_client.delete(self._component_key(name))
            await redis_client.srem(self._components_key(), name)

        self.logger.info("Cleared cache entries", component=component or "*", keys_count=removed)
        return removed

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
