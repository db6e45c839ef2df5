"""
Natours Backend — Rate Limiter Service
========================================

What:  Fixed-window request counter keyed by client identity, with pluggable
       storage.
How:   `RateLimiter.hit(key)` increments the key's counter in its store and
       compares it against `max_requests`. The store decides where counters
       live:
           InMemoryRateLimitStore: dict in this process (single worker)
           RedisRateLimitStore:    shared Redis keys (many workers/instances)
Who:   Injected into `RateLimitMiddleware` by the app factory.

Algorithm: Fixed Window Counter
    1. First hit for a key creates {count: 1, reset_at: now + window}
    2. Later hits inside the window increment count
    3. Once now >= reset_at the entry expires and the next hit starts over
    4. A hit is allowed while count <= max_requests

    Redis: INCR + PEXPIRE (only when the key is new) in one MULTI/EXEC, so
    concurrent workers never lose an increment.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Protocol, Tuple

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


@dataclass(frozen=True)
class RateLimitInfo:
    """Outcome of one `hit`."""

    allowed: bool
    limit: int
    remaining: int
    reset_at: float  # Unix timestamp (seconds)
    retry_after: int  # Seconds until the window resets (0 when allowed)


class RateLimitStore(Protocol):
    async def increment(self, key: str, window_ms: int) -> Tuple[int, float]:
        """Count one hit; return (hits in window, window reset time)."""
        ...

    async def reset(self, key: str) -> None:
        ...


class InMemoryRateLimitStore:
    """
    Counters in a plain dict.

    Safe for one asyncio process: `increment` never awaits between reading
    and writing an entry. Expired entries are swept every `sweep_every` calls.
    """

    def __init__(self, clock: Clock = time.time, sweep_every: int = 1000):
        self._clock = clock
        self._hits: Dict[str, Tuple[int, float]] = {}
        self._sweep_every = sweep_every
        self._calls = 0

    async def increment(self, key: str, window_ms: int) -> Tuple[int, float]:
        now = self._clock()
        count, reset_at = self._hits.get(key, (0, 0.0))
        if now >= reset_at:
            count, reset_at = 0, now + window_ms / 1000
        count += 1
        self._hits[key] = (count, reset_at)

        self._calls += 1
        if self._calls % self._sweep_every == 0:
            self._sweep(now)
        return count, reset_at

    async def reset(self, key: str) -> None:
        self._hits.pop(key, None)

    def _sweep(self, now: float) -> None:
        expired = [key for key, (_, reset_at) in self._hits.items() if reset_at <= now]
        for key in expired:
            del self._hits[key]
        if expired:
            logger.debug("Swept %d expired rate limit entries", len(expired))


class RedisRateLimitStore:
    """
    Counters in Redis, shared by every worker pointing at the same server.

    Args:
        redis_client: `redis.asyncio.Redis` instance
        prefix:       Key namespace
    """

    def __init__(self, redis_client, prefix: str = "natours:ratelimit:", clock: Clock = time.time):
        self.redis = redis_client
        self.prefix = prefix
        self._clock = clock

    async def increment(self, key: str, window_ms: int) -> Tuple[int, float]:
        redis_key = f"{self.prefix}{key}"
        async with self.redis.pipeline(transaction=True) as pipe:
            pipe.incr(redis_key)
            pipe.pexpire(redis_key, window_ms, nx=True)
            pipe.pttl(redis_key)
            count, _, ttl_ms = await pipe.execute()

        if ttl_ms is None or ttl_ms < 0:
            ttl_ms = window_ms
        return int(count), self._clock() + ttl_ms / 1000

    async def reset(self, key: str) -> None:
        await self.redis.delete(f"{self.prefix}{key}")


class RateLimiter:
    """
    Per-key request budget over a fixed window.

    Example:
        limiter = RateLimiter(InMemoryRateLimitStore(), max_requests=100,
                              window_ms=3_600_000)
        info = await limiter.hit("203.0.113.7")
        if not info.allowed: ...
    """

    def __init__(
        self,
        store: RateLimitStore,
        max_requests: int = 100,
        window_ms: int = 60 * 60 * 1000,
        clock: Clock = time.time,
    ):
        self.store = store
        self.max_requests = max_requests
        self.window_ms = window_ms
        self._clock = clock

    async def hit(self, key: str) -> RateLimitInfo:
        count, reset_at = await self.store.increment(key, self.window_ms)
        allowed = count <= self.max_requests
        retry_after = 0 if allowed else max(1, int(reset_at - self._clock() + 0.999))
        return RateLimitInfo(
            allowed=allowed,
            limit=self.max_requests,
            remaining=max(0, self.max_requests - count),
            reset_at=reset_at,
            retry_after=retry_after,
        )

    async def reset(self, key: str) -> None:
        await self.store.reset(key)


def build_rate_limiter(
    max_requests: int,
    window_ms: int,
    redis_url: Optional[str] = None,
) -> RateLimiter:
    """Pick the store from configuration: Redis when a URL is given."""
    if redis_url:
        from redis import asyncio as aioredis

        logger.info("Rate limiting backed by Redis")
        store: RateLimitStore = RedisRateLimitStore(aioredis.from_url(redis_url))
    else:
        store = InMemoryRateLimitStore()
    return RateLimiter(store, max_requests=max_requests, window_ms=window_ms)
