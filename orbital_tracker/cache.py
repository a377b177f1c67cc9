"""
Feed Cache

Redis-backed text cache for upstream feed bodies. Caching is an
optimisation only: when Redis is unreachable the cache disables itself and
every lookup misses.
"""

from typing import Optional

import redis

from logging_config import get_logger

logger = get_logger(__name__)


class FeedCache:
    """
    Cache of raw feed bodies keyed by name, with a per-entry TTL.

    Args:
        url: Redis URL; empty or None disables the cache
        client: Preconfigured Redis client (takes precedence over ``url``)
        prefix: Key namespace
    """

    def __init__(self, url: Optional[str] = None, client=None, prefix: str = "orbital_tracker"):
        self.prefix = prefix
        self.client = client

        if self.client is None and url:
            try:
                self.client = redis.from_url(url, decode_responses=True)
                self.client.ping()
                logger.info("Redis connection established")
            except redis.exceptions.RedisError as e:
                logger.warning(f"Redis connection failed: {e}. Caching will be disabled.")
                self.client = None

    @property
    def enabled(self) -> bool:
        return self.client is not None

    def _key(self, key: str) -> str:
        return f"{self.prefix}:{key}"

    def get(self, key: str) -> Optional[str]:
        if self.client is None:
            return None
        try:
            value = self.client.get(self._key(key))
        except redis.exceptions.RedisError as e:
            self._disable(e)
            return None
        if isinstance(value, bytes):
            value = value.decode("utf-8")
        return value

    def set(self, key: str, value: str, ttl: int) -> None:
        if self.client is None or ttl <= 0:
            return
        try:
            self.client.setex(self._key(key), ttl, value)
        except redis.exceptions.RedisError as e:
            self._disable(e)

    def ping(self) -> bool:
        if self.client is None:
            return False
        try:
            return bool(self.client.ping())
        except redis.exceptions.RedisError:
            return False

    def _disable(self, error: Exception) -> None:
        logger.warning(f"Redis error: {error}. Caching will be disabled.")
        self.client = None
