import json
import logging

import redis.asyncio as redis

from notice_api.config import settings

logger = logging.getLogger(__name__)

NOTICE_KEY_PREFIX = "notices"
FILE_KEY_PREFIX = "files"


def notice_detail_key(notice_id: int) -> str:
    return f"{NOTICE_KEY_PREFIX}:detail:{notice_id}"


def notice_list_key(page: int, page_size: int, sort_by: str, sort_order: str) -> str:
    return f"{NOTICE_KEY_PREFIX}:list:{page}:{page_size}:{sort_by}:{sort_order}"


def file_detail_key(file_id: int) -> str:
    return f"{FILE_KEY_PREFIX}:detail:{file_id}"


class CacheManager:
    """
    Cache-aside manager backed by Redis.

    All public methods are safe to call even when Redis is unavailable:
    read operations return None and write operations are silently skipped,
    so the application degrades gracefully without raising exceptions to
    callers.
    """

    def __init__(self) -> None:
        self._redis: redis.Redis | None = None
        self._hits: int = 0
        self._misses: int = 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """Open the connection pool.  Called once at application startup."""
        self._redis = redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
        try:
            await self._redis.ping()
            logger.info("Redis connected: %s", settings.REDIS_URL)
        except Exception as exc:  # pragma: no cover
            logger.warning("Redis ping failed, cache disabled: %s", exc)
            await self._redis.aclose()
            self._redis = None

    async def disconnect(self) -> None:
        """Close the connection pool.  Called once at application shutdown."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    # ------------------------------------------------------------------
    # Core cache operations
    # ------------------------------------------------------------------

    async def get(self, key: str) -> dict | list | None:
        """Return the cached value for *key*, or None on a miss / error."""
        if not self._redis:
            self._misses += 1
            return None
        try:
            data = await self._redis.get(key)
            if data is not None:
                self._hits += 1
                return json.loads(data)
            self._misses += 1
            return None
        except Exception as exc:
            logger.debug("Cache GET error for key=%r: %s", key, exc)
            self._misses += 1
            return None

    async def set(self, key: str, value: dict | list, ttl: int | None = None) -> None:
        """
        Persist *value* under *key* with an optional TTL (seconds).

        A cache write failure is logged and never breaks the request.
        """
        if not self._redis:
            return
        try:
            serialised = json.dumps(value, default=str)
            await self._redis.set(key, serialised, ex=ttl)
        except Exception as exc:
            logger.debug("Cache SET error for key=%r: %s", key, exc)

    async def delete_pattern(self, pattern: str) -> None:
        """Delete all keys matching *pattern* using SCAN (avoids blocking KEYS)."""
        if not self._redis:
            return
        try:
            keys: list[str] = []
            async for key in self._redis.scan_iter(match=pattern):
                keys.append(key)
            if keys:
                await self._redis.delete(*keys)
                logger.debug("Cache invalidated %d key(s) matching %r", len(keys), pattern)
        except Exception as exc:
            logger.debug("Cache DELETE_PATTERN error for pattern=%r: %s", pattern, exc)

    # ------------------------------------------------------------------
    # Domain-level invalidation helpers
    # ------------------------------------------------------------------

    async def invalidate_notices(self) -> None:
        """Drop every cached notice page and detail entry."""
        await self.delete_pattern(f"{NOTICE_KEY_PREFIX}:*")

    async def invalidate_files(self) -> None:
        """Drop every cached attachment metadata entry."""
        await self.delete_pattern(f"{FILE_KEY_PREFIX}:*")

    # ------------------------------------------------------------------
    # Observability
    # ------------------------------------------------------------------

    @property
    def stats(self) -> dict:
        """Return a snapshot of hit/miss counters for metrics endpoints."""
        total = self._hits + self._misses
        return {
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": round(self._hits / total * 100, 1) if total > 0 else 0.0,
        }

    def reset_stats(self) -> None:
        self._hits = 0
        self._misses = 0


# Module-level singleton shared across all request handlers.
cache = CacheManager()
