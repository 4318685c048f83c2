# backend/app/services/travel/cache.py
"""
Travel-duration caches.

Both caches store one-way minutes under a string key and expire entries
`ttl_seconds` after they were written. Expiry is checked on read; the
in-memory cache also sweeps expired keys on write.
"""

import json
import logging
import time
from typing import Callable

import redis.asyncio as aioredis
from redis import RedisError

logger = logging.getLogger(__name__)


class TravelCache:
    """Interface shared by the cache backends."""

    async def get(self, key: str) -> int | None:
        raise NotImplementedError

    async def set(self, key: str, minutes: int) -> None:
        raise NotImplementedError


class MemoryTravelCache(TravelCache):
    """Process-local cache. `clock` returns seconds and is injectable for tests."""

    def __init__(self, ttl_seconds: int = 30 * 60, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, tuple[int, float]] = {}
        self._last_sweep = clock()

    def _expired(self, written_at: float, now: float) -> bool:
        return now - written_at >= self.ttl_seconds

    async def get(self, key: str) -> int | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        minutes, written_at = entry
        if self._expired(written_at, self._clock()):
            del self._entries[key]
            return None
        return minutes

    async def set(self, key: str, minutes: int) -> None:
        now = self._clock()
        # at most one full pass per TTL period
        if now - self._last_sweep >= self.ttl_seconds:
            self._entries = {
                k: entry for k, entry in self._entries.items()
                if not self._expired(entry[1], now)
            }
            self._last_sweep = now
        self._entries[key] = (minutes, now)

    def __len__(self) -> int:
        return len(self._entries)


class RedisTravelCache(TravelCache):
    """
    Cache shared between workers through Redis.

    Keys: travel:{key} → {"minutes": int, "ts": float}, SETEX with the TTL.
    Redis errors degrade to a cache miss.
    """

    PREFIX = "travel:"

    def __init__(self, redis: aioredis.Redis, ttl_seconds: int = 30 * 60, clock: Callable[[], float] = time.time):
        self.redis = redis
        self.ttl_seconds = ttl_seconds
        self._clock = clock

    async def get(self, key: str) -> int | None:
        try:
            raw = await self.redis.get(self.PREFIX + key)
        except RedisError as e:
            logger.warning(f"Travel cache read failed for {key}: {e}")
            return None
        if raw is None:
            return None
        try:
            entry = json.loads(raw)
        except (TypeError, ValueError):
            return None
        if self._clock() - entry.get("ts", 0) >= self.ttl_seconds:
            return None
        return int(entry["minutes"])

    async def set(self, key: str, minutes: int) -> None:
        payload = json.dumps({"minutes": minutes, "ts": self._clock()})
        try:
            await self.redis.setex(self.PREFIX + key, self.ttl_seconds, payload)
        except RedisError as e:
            logger.warning(f"Travel cache write failed for {key}: {e}")
