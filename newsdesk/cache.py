"""
Redis-backed cache for public-feed pages.

Invalidation is generational: every feed key embeds the current value of
``articles:feed:generation`` and an article write bumps that counter once
its transaction has committed.  Pages cached under an older generation are
never read again and simply expire.  A reader that fetched rows just before
a commit therefore stores them under a generation nobody asks for, instead
of overwriting the fresh page.

Redis is optional: when it is unreachable every lookup misses, every write
is skipped and the feed is served straight from the database.
"""
import json
import logging
from urllib.parse import quote

import redis.asyncio as redis

from newsdesk.config import settings

logger = logging.getLogger(__name__)

FEED_KEY_PREFIX = "articles:feed"
FEED_GENERATION_KEY = f"{FEED_KEY_PREFIX}:generation"


def _key_part(value: str | None) -> str:
    # Percent-encode so a ':' inside a filter cannot shift the other fields.
    return quote(value or "", safe="")


class CacheManager:
    def __init__(self, url: str | None = None) -> None:
        self._url = url or settings.REDIS_URL
        self._redis: redis.Redis | None = None
        self._hits = 0
        self._misses = 0
        self._errors = 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """Create the client and check it once.  Called at application startup."""
        self._redis = redis.from_url(
            self._url,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
        try:
            await self._redis.ping()
            logger.info("Redis connected: %s", self._url)
        except redis.RedisError as exc:
            logger.warning("Redis ping failed, serving the feed uncached until it recovers: %s", exc)

    async def disconnect(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None

    async def ping(self) -> bool:
        """Round-trip a PING; raises when Redis is unreachable or not configured."""
        if self._redis is None:
            raise ConnectionError("Redis client is not connected")
        return bool(await self._redis.ping())

    # ------------------------------------------------------------------
    # JSON values
    # ------------------------------------------------------------------

    async def get_json(self, key: str) -> dict | list | None:
        if self._redis is None:
            self._misses += 1
            return None
        try:
            raw = await self._redis.get(key)
        except Exception as exc:
            self._record_error("GET", key, exc)
            self._misses += 1
            return None
        if raw is None:
            self._misses += 1
            return None
        self._hits += 1
        return json.loads(raw)

    async def set_json(self, key: str, value: dict | list, ttl: int) -> None:
        if self._redis is None:
            return
        try:
            await self._redis.set(key, json.dumps(value), ex=ttl)
        except Exception as exc:
            self._record_error("SET", key, exc)

    def _record_error(self, op: str, key: str, exc: Exception) -> None:
        self._errors += 1
        logger.debug("Cache %s failed for key=%r: %s", op, key, exc)

    # ------------------------------------------------------------------
    # Public feed
    # ------------------------------------------------------------------

    async def feed_generation(self) -> int:
        if self._redis is None:
            return 0
        try:
            raw = await self._redis.get(FEED_GENERATION_KEY)
        except Exception as exc:
            self._record_error("GET", FEED_GENERATION_KEY, exc)
            return 0
        return int(raw) if raw else 0

    async def feed_key(
        self,
        page: int,
        size: int,
        category: str | None,
        author: str | None,
        q: str | None,
    ) -> str:
        """
        Key for one feed page under the current generation.

        ``category`` is matched exactly and keeps its case; ``author`` and
        ``q`` are case-insensitive and are folded.
        """
        generation = await self.feed_generation()
        parts = (_key_part(category), _key_part((author or "").lower()), _key_part((q or "").lower()))
        return f"{FEED_KEY_PREFIX}:g{generation}:{page}:{size}:" + ":".join(parts)

    async def invalidate_feed(self) -> None:
        """Move every reader to a new generation; call only after the write commits."""
        if self._redis is None:
            return
        try:
            generation = await self._redis.incr(FEED_GENERATION_KEY)
            logger.debug("Feed cache moved to generation %d", generation)
        except Exception as exc:
            # Stale pages live at most CACHE_TTL_FEED seconds.
            logger.warning("Feed cache invalidation failed: %s", exc)
            self._errors += 1

    @property
    def stats(self) -> dict:
        lookups = self._hits + self._misses
        return {
            "hits": self._hits,
            "misses": self._misses,
            "errors": self._errors,
            "hit_rate": round(self._hits / lookups * 100, 1) if lookups else 0.0,
        }


cache = CacheManager()
