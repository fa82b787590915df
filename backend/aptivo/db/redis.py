"""
Redis Connection and Login Session Cache

Usage:
    from aptivo.db.redis import get_redis, SessionCache

    cache = SessionCache(await get_redis())
    await cache.store(token, user, remember=True)
"""

import json
import logging
from typing import Any, Optional

import redis.asyncio as redis

from aptivo.config import settings, yaml_config
from aptivo.models.auth import UserProfile

logger = logging.getLogger(__name__)


# Redis configuration from yaml config
redis_config: dict[str, Any] = yaml_config.get("redis", {})
DEFAULT_SESSION_TTL: int = redis_config.get("session_ttl", 3600)
REMEMBER_ME_TTL: int = redis_config.get("remember_me_ttl", 2592000)


# Connection pool (lazily initialized)
_redis_pool: Optional[redis.ConnectionPool] = None


async def get_redis_pool() -> redis.ConnectionPool:
    """Get or create the Redis connection pool."""
    global _redis_pool
    if _redis_pool is None:
        _redis_pool = redis.ConnectionPool.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            max_connections=10,
        )
    return _redis_pool


async def get_redis() -> redis.Redis:
    """Get a Redis connection from the pool."""
    pool = await get_redis_pool()
    return redis.Redis(connection_pool=pool)


async def close_redis_pool() -> None:
    """Close the Redis connection pool."""
    global _redis_pool
    if _redis_pool is not None:
        await _redis_pool.disconnect()
        _redis_pool = None


class SessionCache:
    """
    Serialized user records keyed by login token.

    A login is cached under one of two namespaces: a short-lived one for
    ordinary logins and a long-lived one for "remember me". Writing one
    always clears the other so a token never lives in both.

    Keys:
        {prefix}:session:{token}   TTL redis.session_ttl
        {prefix}:remember:{token}  TTL redis.remember_me_ttl
    """

    def __init__(self, client: redis.Redis, prefix: str = "aptivo_session_user") -> None:
        self.client = client
        self.prefix = prefix
        self.session_ttl = DEFAULT_SESSION_TTL
        self.remember_ttl = REMEMBER_ME_TTL

    def _key(self, token: str, remember: bool) -> str:
        namespace = "remember" if remember else "session"
        return f"{self.prefix}:{namespace}:{token}"

    async def store(self, token: str, user: UserProfile, remember: bool = False) -> None:
        ttl = self.remember_ttl if remember else self.session_ttl
        await self.client.setex(self._key(token, remember), ttl, user.model_dump_json())
        await self.client.delete(self._key(token, not remember))

    async def load(self, token: str) -> Optional[UserProfile]:
        """
        Look a token up in both namespaces, long-lived first.

        Short-lived entries get a sliding expiration on access.
        """
        data = await self.client.get(self._key(token, True))
        if data is None:
            key = self._key(token, False)
            data = await self.client.get(key)
            if data is None:
                return None
            await self.client.expire(key, self.session_ttl)

        try:
            return UserProfile.model_validate(json.loads(data))
        except (ValueError, TypeError) as e:
            logger.warning(f"Discarding unreadable cached session: {e}")
            await self.clear(token)
            return None

    async def clear(self, token: str) -> None:
        await self.client.delete(self._key(token, True), self._key(token, False))
