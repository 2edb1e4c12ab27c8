"""
Caching System

Cache backends (Redis and in-process) behind a small manager that handles
key prefixing, hit/miss statistics and pattern invalidation.
"""

import json
import time
import asyncio
import fnmatch
import hashlib
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence, Tuple

import redis.asyncio as redis

from .config import CacheSettings, RedisSettings
from .logging import get_logger

logger = get_logger(__name__)


class CacheBackend:
    """Abstract cache backend interface"""

    async def get(self, key: str) -> Optional[Any]:
        raise NotImplementedError

    async def set(self, key: str, value: Any, expire: Optional[int] = None) -> bool:
        raise NotImplementedError

    async def delete(self, key: str) -> bool:
        raise NotImplementedError

    async def clear(self, pattern: str = "*") -> int:
        raise NotImplementedError

    async def close(self):
        pass


class RedisBackend(CacheBackend):
    """Redis cache backend; values are stored as JSON"""

    def __init__(self, redis_url: str, socket_timeout: int = 5):
        self.redis_url = redis_url
        self.socket_timeout = socket_timeout
        self.redis: Optional[redis.Redis] = None

    def _client(self) -> redis.Redis:
        if self.redis is None:
            self.redis = redis.from_url(
                self.redis_url,
                socket_timeout=self.socket_timeout,
                socket_connect_timeout=self.socket_timeout,
                decode_responses=True,
            )
        return self.redis

    async def get(self, key: str) -> Optional[Any]:
        try:
            value = await self._client().get(key)
        except redis.RedisError as e:
            logger.error("Cache get failed", extra={'cache_key': key, 'error': str(e)})
            return None

        if value is None:
            return None
        try:
            return json.loads(value)
        except (json.JSONDecodeError, TypeError):
            return value

    async def set(self, key: str, value: Any, expire: Optional[int] = None) -> bool:
        serialized_value = json.dumps(value, default=str)
        try:
            if expire:
                await self._client().setex(key, expire, serialized_value)
            else:
                await self._client().set(key, serialized_value)
        except redis.RedisError as e:
            logger.error("Cache set failed", extra={'cache_key': key, 'error': str(e)})
            return False
        return True

    async def delete(self, key: str) -> bool:
        try:
            return await self._client().delete(key) > 0
        except redis.RedisError as e:
            logger.error("Cache delete failed", extra={'cache_key': key, 'error': str(e)})
            return False

    async def clear(self, pattern: str = "*") -> int:
        client = self._client()
        try:
            keys = [key async for key in client.scan_iter(match=pattern)]
            if keys:
                return await client.delete(*keys)
        except redis.RedisError as e:
            logger.error("Cache clear failed", extra={'pattern': pattern, 'error': str(e)})
        return 0

    async def close(self):
        if self.redis is not None:
            await self.redis.aclose()
            self.redis = None


class InMemoryBackend(CacheBackend):
    """
    In-process cache backend.

    Entries are opaque values with an absolute monotonic expiry; writes are
    last-write-wins per key. Expired entries are swept every
    ``sweep_interval`` seconds on write, and once ``max_entries`` is reached
    the oldest write is evicted to make room.
    """

    def __init__(self, max_entries: int = 1000, sweep_interval: float = 60.0):
        self._cache: Dict[str, Dict[str, Any]] = {}
        self._lock = asyncio.Lock()
        self.max_entries = max_entries
        self.sweep_interval = sweep_interval
        self._last_sweep = time.monotonic()

    def _sweep_expired(self, now: float) -> int:
        expired = [
            key for key, entry in self._cache.items()
            if entry["expires"] is not None and now >= entry["expires"]
        ]
        for key in expired:
            del self._cache[key]
        self._last_sweep = now
        return len(expired)

    def __len__(self) -> int:
        return len(self._cache)

    async def get(self, key: str) -> Optional[Any]:
        async with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                return None

            if entry["expires"] is not None and time.monotonic() >= entry["expires"]:
                del self._cache[key]
                return None

            return entry["value"]

    async def set(self, key: str, value: Any, expire: Optional[int] = None) -> bool:
        async with self._lock:
            now = time.monotonic()
            if now - self._last_sweep >= self.sweep_interval:
                self._sweep_expired(now)
            if key not in self._cache and len(self._cache) >= self.max_entries:
                self._sweep_expired(now)
                while self._cache and len(self._cache) >= self.max_entries:
                    oldest = next(iter(self._cache))
                    del self._cache[oldest]
                    logger.debug("Cache full, evicted oldest entry", extra={'key': oldest})

            self._cache.pop(key, None)
            self._cache[key] = {
                "value": value,
                "expires": now + expire if expire else None,
            }
            return True

    async def delete(self, key: str) -> bool:
        async with self._lock:
            return self._cache.pop(key, None) is not None

    async def clear(self, pattern: str = "*") -> int:
        async with self._lock:
            matching_keys = [key for key in self._cache if fnmatch.fnmatchcase(key, pattern)]
            for key in matching_keys:
                del self._cache[key]
            return len(matching_keys)


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0
    sets: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return round(self.hits / total, 4) if total else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "sets": self.sets,
            "hit_rate": self.hit_rate,
        }


class CacheManager:
    """Cache front end with key prefixing and statistics"""

    def __init__(self, backend: CacheBackend, key_prefix: str = "", default_timeout: int = 300):
        self.backend = backend
        self.key_prefix = key_prefix
        self.default_timeout = default_timeout
        self.stats = CacheStats()

    @classmethod
    def from_settings(cls, cache_settings: CacheSettings, redis_settings: RedisSettings) -> "CacheManager":
        if cache_settings.CACHE_BACKEND == "redis":
            backend: CacheBackend = RedisBackend(
                redis_settings.redis_url,
                socket_timeout=redis_settings.REDIS_SOCKET_TIMEOUT,
            )
        else:
            backend = InMemoryBackend(max_entries=cache_settings.CACHE_MAX_ENTRIES)

        logger.info("Cache manager initialized", extra={'backend': cache_settings.CACHE_BACKEND})
        return cls(
            backend,
            key_prefix=cache_settings.CACHE_KEY_PREFIX,
            default_timeout=cache_settings.CACHE_DEFAULT_TIMEOUT,
        )

    def _generate_key(self, *parts: Any) -> str:
        """Generate cache key from parts"""
        key = ":".join(str(part) for part in parts if part is not None and part != "")
        return f"{self.key_prefix}{key}"

    async def get(self, *key_parts: Any) -> Optional[Any]:
        value = await self.backend.get(self._generate_key(*key_parts))
        if value is None:
            self.stats.misses += 1
        else:
            self.stats.hits += 1
        return value

    async def set(self, *key_parts: Any, value: Any, expire: Optional[int] = None) -> bool:
        self.stats.sets += 1
        return await self.backend.set(
            self._generate_key(*key_parts),
            value,
            expire or self.default_timeout,
        )

    async def delete(self, *key_parts: Any) -> bool:
        return await self.backend.delete(self._generate_key(*key_parts))

    async def clear(self, pattern: str = "*") -> int:
        """Clear keys matching a glob pattern (relative to the prefix)"""
        count = await self.backend.clear(f"{self.key_prefix}{pattern}")
        if count:
            logger.debug("Cache entries invalidated", extra={'pattern': pattern, 'count': count})
        return count

    async def close(self):
        await self.backend.close()


def cache_key_from_params(params: Sequence[Tuple[str, Any]]) -> str:
    """
    Stable key fragment for request parameters.

    Parameters keep their declared order so the leading parameter can be
    used as an invalidation scope (``listing_id=5:*``). ``None`` values are
    kept as empty strings so the position of every parameter is fixed.
    """
    readable = ":".join(f"{name}={'' if value is None else value}" for name, value in params)
    if len(readable) <= 200:
        return readable
    return hashlib.md5(json.dumps(list(params), default=str).encode()).hexdigest()
