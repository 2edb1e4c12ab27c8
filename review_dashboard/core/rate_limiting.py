"""
Rate Limiting System

Token bucket and fixed window limiters with in-process and Redis storage,
registered by name on a RateLimiter that route wrappers consult before
running a handler.
"""

import math
import time
import asyncio
import hashlib
from typing import Callable, Dict, Optional
from enum import Enum
from dataclasses import dataclass

import redis.asyncio as redis
from fastapi import Request

from .config import RateLimitSettings, RedisSettings
from .logging import get_logger

logger = get_logger(__name__)


class RateLimitAlgorithm(str, Enum):
    """Rate limiting algorithms"""
    TOKEN_BUCKET = "token_bucket"
    FIXED_WINDOW = "fixed_window"


class RateLimitScope(str, Enum):
    """Rate limit scope"""
    GLOBAL = "global"
    IP = "ip"
    ENDPOINT = "endpoint"


@dataclass
class RateLimit:
    """Rate limit configuration"""
    key: str
    limit: int
    period: int  # seconds
    algorithm: RateLimitAlgorithm = RateLimitAlgorithm.TOKEN_BUCKET
    scope: RateLimitScope = RateLimitScope.IP
    burst_size: Optional[int] = None
    description: Optional[str] = None


@dataclass
class RateLimitResult:
    """Rate limit check result"""
    allowed: bool
    limit: int
    remaining: int
    retry_after: int
    key: str


# ==================== In-process limiters ====================

def _prune(entries: Dict[str, Dict[str, float]], now: float, max_keys: Optional[int] = None) -> int:
    """
    Drop lapsed limiter state, then the least recently used keys while the
    map holds ``max_keys`` or more. Returns the number of keys removed.
    """
    lapsed = [key for key, entry in entries.items() if now >= entry["stale_at"]]
    for key in lapsed:
        del entries[key]
    removed = len(lapsed)
    if max_keys is not None:
        while entries and len(entries) >= max_keys:
            del entries[next(iter(entries))]
            removed += 1
    return removed


class _InMemoryLimiterState:
    """
    Per-key state shared by the in-process limiters.

    Keys are kept in least-recently-used order. State that has lapsed (a
    full bucket, a closed window) is swept every ``sweep_interval`` seconds
    and before a new key would grow the map past ``max_keys``.
    """

    def __init__(self, clock: Callable[[], float], max_keys: int = 10000, sweep_interval: float = 60.0):
        self._clock = clock
        self._entries: Dict[str, Dict[str, float]] = {}
        self._lock = asyncio.Lock()
        self.max_keys = max_keys
        self.sweep_interval = sweep_interval
        self._last_sweep = clock()

    def _store(self, key: str, state: Dict[str, float], now: float):
        if key not in self._entries and len(self._entries) >= self.max_keys:
            removed = _prune(self._entries, now, self.max_keys)
            logger.debug("Rate limiter map full, pruned", extra={'removed': removed})
        elif now - self._last_sweep >= self.sweep_interval:
            _prune(self._entries, now)
            self._last_sweep = now
        self._entries.pop(key, None)
        self._entries[key] = state

    def __len__(self) -> int:
        return len(self._entries)

    async def reset(self, key: str):
        async with self._lock:
            self._entries.pop(key, None)


class InMemoryTokenBucketLimiter(_InMemoryLimiterState):
    """Token bucket kept in a dict; refills continuously at limit/period"""

    def __init__(self, clock: Callable[[], float] = time.monotonic, **kwargs):
        super().__init__(clock, **kwargs)

    async def check_limit(self, key: str, limit: int, period: int, burst_size: Optional[int] = None) -> RateLimitResult:
        bucket_size = burst_size or limit
        refill_rate = limit / period

        async with self._lock:
            now = self._clock()
            bucket = self._entries.get(key)
            if bucket is None:
                tokens = float(bucket_size)
            else:
                elapsed = max(0.0, now - bucket["last_refill"])
                tokens = min(bucket_size, bucket["tokens"] + elapsed * refill_rate)

            allowed = tokens >= 1
            if allowed:
                tokens -= 1
            # once refilled the bucket is indistinguishable from a new one
            self._store(key, {
                "tokens": tokens,
                "last_refill": now,
                "stale_at": now + (bucket_size - tokens) / refill_rate,
            }, now)

            if allowed:
                return RateLimitResult(
                    allowed=True,
                    limit=limit,
                    remaining=int(tokens),
                    retry_after=0,
                    key=key
                )
            return RateLimitResult(
                allowed=False,
                limit=limit,
                remaining=0,
                retry_after=max(1, math.ceil((1 - tokens) / refill_rate)),
                key=key
            )


class InMemoryFixedWindowLimiter(_InMemoryLimiterState):
    """Counter per (key, window index)"""

    def __init__(self, clock: Callable[[], float] = time.time, **kwargs):
        super().__init__(clock, **kwargs)

    async def check_limit(self, key: str, limit: int, period: int, burst_size: Optional[int] = None) -> RateLimitResult:
        async with self._lock:
            now = self._clock()
            window = int(now // period)
            next_window_start = (window + 1) * period
            state = self._entries.get(key)
            count = 1
            if state is not None and state["window"] == window:
                count = int(state["count"]) + 1
            self._store(key, {"window": window, "count": count, "stale_at": next_window_start}, now)

            if count <= limit:
                return RateLimitResult(
                    allowed=True,
                    limit=limit,
                    remaining=limit - count,
                    retry_after=0,
                    key=key
                )
            return RateLimitResult(
                allowed=False,
                limit=limit,
                remaining=0,
                retry_after=max(1, math.ceil(next_window_start - now)),
                key=key
            )


# ==================== Redis limiters ====================

TOKEN_BUCKET_SCRIPT = """
local bucket = redis.call('HMGET', KEYS[1], 'tokens', 'last_refill')
local bucket_size = tonumber(ARGV[1])
local refill_rate = tonumber(ARGV[2])
local now = tonumber(ARGV[3])
local ttl = tonumber(ARGV[4])
local tokens = tonumber(bucket[1]) or bucket_size
local last_refill = tonumber(bucket[2]) or now
tokens = math.min(bucket_size, tokens + math.max(0, now - last_refill) * refill_rate)
local allowed = 0
if tokens >= 1 then
  tokens = tokens - 1
  allowed = 1
end
redis.call('HSET', KEYS[1], 'tokens', tostring(tokens), 'last_refill', tostring(now))
redis.call('EXPIRE', KEYS[1], ttl)
return {allowed, tostring(tokens)}
"""


class RedisTokenBucketLimiter:
    """Token bucket evaluated atomically in a Lua script"""

    def __init__(self, redis_client: redis.Redis):
        self.redis = redis_client
        self._script = redis_client.register_script(TOKEN_BUCKET_SCRIPT)

    async def check_limit(self, key: str, limit: int, period: int, burst_size: Optional[int] = None) -> RateLimitResult:
        bucket_key = f"rate_limit:bucket:{key}"
        bucket_size = burst_size or limit
        refill_rate = limit / period

        allowed, tokens = await self._script(
            keys=[bucket_key],
            args=[bucket_size, refill_rate, time.time(), period * 2],
        )
        tokens = float(tokens)

        if int(allowed) == 1:
            return RateLimitResult(allowed=True, limit=limit, remaining=int(tokens), retry_after=0, key=key)
        return RateLimitResult(
            allowed=False,
            limit=limit,
            remaining=0,
            retry_after=max(1, math.ceil((1 - tokens) / refill_rate)),
            key=key
        )

    async def reset(self, key: str):
        await self.redis.delete(f"rate_limit:bucket:{key}")


class RedisFixedWindowLimiter:
    """Fixed window counter using INCR with window expiry"""

    def __init__(self, redis_client: redis.Redis):
        self.redis = redis_client

    async def check_limit(self, key: str, limit: int, period: int, burst_size: Optional[int] = None) -> RateLimitResult:
        now = time.time()
        window = int(now // period)
        window_key = f"rate_limit:fixed:{key}:{window}"

        async with self.redis.pipeline(transaction=True) as pipe:
            pipe.incr(window_key)
            pipe.expire(window_key, period)
            current_count, _ = await pipe.execute()

        next_window_start = (window + 1) * period
        if current_count <= limit:
            return RateLimitResult(
                allowed=True,
                limit=limit,
                remaining=limit - current_count,
                retry_after=0,
                key=key
            )
        return RateLimitResult(
            allowed=False,
            limit=limit,
            remaining=0,
            retry_after=max(1, math.ceil(next_window_start - now)),
            key=key
        )

    async def reset(self, key: str):
        keys = [k async for k in self.redis.scan_iter(match=f"rate_limit:fixed:{key}:*")]
        if keys:
            await self.redis.delete(*keys)


# ==================== Rate limiter ====================

class RateLimiter:
    """Named rate limits over a shared limiter backend"""

    def __init__(
        self,
        backend: str = "memory",
        redis_url: Optional[str] = None,
        enabled: bool = True,
        max_keys: int = 10000
    ):
        self.enabled = enabled
        self.backend = backend
        self.redis_client: Optional[redis.Redis] = None
        self.rate_limits: Dict[str, RateLimit] = {}

        if backend == "redis":
            self.redis_client = redis.from_url(redis_url, decode_responses=True)
            self.limiters = {
                RateLimitAlgorithm.TOKEN_BUCKET: RedisTokenBucketLimiter(self.redis_client),
                RateLimitAlgorithm.FIXED_WINDOW: RedisFixedWindowLimiter(self.redis_client),
            }
        else:
            self.limiters = {
                RateLimitAlgorithm.TOKEN_BUCKET: InMemoryTokenBucketLimiter(max_keys=max_keys),
                RateLimitAlgorithm.FIXED_WINDOW: InMemoryFixedWindowLimiter(max_keys=max_keys),
            }

    @classmethod
    def from_settings(cls, rate_settings: RateLimitSettings, redis_settings: RedisSettings) -> "RateLimiter":
        limiter = cls(
            backend=rate_settings.RATE_LIMIT_BACKEND,
            redis_url=redis_settings.redis_url,
            enabled=rate_settings.ENABLE_RATE_LIMITING,
            max_keys=rate_settings.RATE_LIMIT_MAX_KEYS,
        )
        limiter.add_rate_limit(
            "public_reviews",
            RateLimit(
                key="public_reviews",
                limit=rate_settings.PUBLIC_REVIEWS_RATE_LIMIT,
                period=rate_settings.PUBLIC_REVIEWS_RATE_PERIOD,
                algorithm=RateLimitAlgorithm.TOKEN_BUCKET,
                scope=RateLimitScope.IP,
                description="Public review widget"
            )
        )
        limiter.add_rate_limit(
            "hostaway_ingestion",
            RateLimit(
                key="hostaway_ingestion",
                limit=rate_settings.INGESTION_RATE_LIMIT,
                period=rate_settings.INGESTION_RATE_PERIOD,
                algorithm=RateLimitAlgorithm.FIXED_WINDOW,
                scope=RateLimitScope.IP,
                description="Hostaway ingestion trigger"
            )
        )
        return limiter

    def add_rate_limit(self, name: str, rate_limit: RateLimit):
        """Add a rate limit configuration"""
        self.rate_limits[name] = rate_limit
        logger.info("Added rate limit", extra={
            'limit_name': name,
            'limit': rate_limit.limit,
            'period': rate_limit.period,
            'algorithm': rate_limit.algorithm.value,
        })

    async def check_rate_limit(self, limit_name: str, identifier: str) -> RateLimitResult:
        """
        Consume one unit of ``limit_name`` for ``identifier``.

        Unknown limit names and a disabled limiter are permissive. Redis
        failures fail open with an error log so an unavailable limiter
        store never takes the API down.
        """
        rate_limit = self.rate_limits.get(limit_name)
        if not self.enabled or rate_limit is None:
            if rate_limit is None and self.enabled:
                logger.warning("Unknown rate limit requested", extra={'limit_name': limit_name})
            return RateLimitResult(allowed=True, limit=0, remaining=0, retry_after=0, key=identifier)

        rate_key = self._generate_key(rate_limit, identifier)
        limiter = self.limiters[rate_limit.algorithm]

        try:
            result = await limiter.check_limit(
                rate_key,
                rate_limit.limit,
                rate_limit.period,
                rate_limit.burst_size
            )
        except redis.RedisError as e:
            logger.error("Rate limit check failed", extra={'limit_name': limit_name, 'error': str(e)})
            return RateLimitResult(
                allowed=True,
                limit=rate_limit.limit,
                remaining=rate_limit.limit,
                retry_after=0,
                key=rate_key
            )

        if not result.allowed:
            logger.warning("Rate limit exceeded", extra={
                'limit_name': limit_name,
                'retry_after': result.retry_after,
            })
        return result

    def _generate_key(self, rate_limit: RateLimit, identifier: str) -> str:
        """Generate rate limit key"""
        key_parts = [rate_limit.key, rate_limit.scope.value]

        if rate_limit.scope == RateLimitScope.GLOBAL:
            key_parts.append("all")
        else:
            # Hash identifier for privacy
            key_parts.append(hashlib.md5(identifier.encode()).hexdigest())

        return ":".join(key_parts)

    async def reset_rate_limit(self, limit_name: str, identifier: str) -> bool:
        rate_limit = self.rate_limits.get(limit_name)
        if rate_limit is None:
            return False
        await self.limiters[rate_limit.algorithm].reset(self._generate_key(rate_limit, identifier))
        return True

    async def close(self):
        if self.redis_client is not None:
            await self.redis_client.aclose()


def extract_identifier(request: Request, scope: RateLimitScope) -> str:
    """Extract identifier from request based on scope"""
    if scope == RateLimitScope.IP:
        # X-Forwarded-For first for proxy setups
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()
        return request.client.host if request.client else "unknown"

    if scope == RateLimitScope.ENDPOINT:
        return request.url.path

    return "global"
