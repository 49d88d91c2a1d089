"""Redis connection and the JSON cache built on it."""

import json
from typing import Any

import redis

from scheduling.config import settings

_redis_client: redis.Redis | None = None


def get_redis_client() -> redis.Redis:
    """Shared Redis client, connected on first use."""
    global _redis_client

    if _redis_client is None:
        _redis_client = redis.Redis(
            host=settings.redis_host,
            port=settings.redis_port,
            username=settings.redis_username or None,
            password=settings.redis_password or None,
            decode_responses=True,
            socket_connect_timeout=settings.redis_timeout_seconds,
            socket_timeout=settings.redis_timeout_seconds,
            health_check_interval=30,
        )

    return _redis_client


async def check_redis_connection() -> bool:
    """Ping Redis; any failure counts as unhealthy."""
    try:
        return bool(get_redis_client().ping())
    except redis.RedisError:
        return False


def close_redis_connection() -> None:
    """Drop the shared client so the next call reconnects."""
    global _redis_client

    if _redis_client is not None:
        _redis_client.close()
        _redis_client = None


class CacheManager:
    """JSON values in Redis under a common key prefix.

    The cache is an optimisation only. Redis errors read as a miss and
    writes report ``False`` instead of failing the request.
    """

    def __init__(self, redis_client: redis.Redis, prefix: str = "scheduling"):
        """Initialize cache manager with Redis client and key prefix."""
        self.redis = redis_client
        self.prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self.prefix}:{key}" if self.prefix else key

    def get_json(self, key: str) -> Any | None:
        """
        Read and decode a cached value.

        Args:
            key: Cache key without prefix

        Returns:
            Decoded value, or None on a miss
        """
        try:
            raw = self.redis.get(self._key(key))
        except redis.RedisError:
            return None

        if raw is None:
            return None

        try:
            return json.loads(raw)
        except ValueError:
            # Unreadable entry; drop it so it gets rebuilt
            self.delete(key)
            return None

    def set_json(self, key: str, value: Any, ttl: int | None = None) -> bool:
        """
        Encode and store a value, with an expiry when ``ttl`` is given.

        Returns:
            True if Redis accepted the write
        """
        payload = json.dumps(value, default=str)
        try:
            if ttl:
                self.redis.setex(self._key(key), ttl, payload)
            else:
                self.redis.set(self._key(key), payload)
        except redis.RedisError:
            return False
        return True

    def delete(self, key: str) -> bool:
        """Remove a cached value."""
        try:
            self.redis.delete(self._key(key))
        except redis.RedisError:
            return False
        return True
