import redis.asyncio as redis
from typing import Optional
import structlog

from app.core.config import settings

logger = structlog.get_logger(__name__)

# Delete the key only if it still holds our token
_RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""


class RedisClient:
    """Redis client used for cross-process booking locks."""

    def __init__(self, url: Optional[str] = None):
        self.url = url or settings.REDIS_URL
        self.redis_pool = None

    async def init_redis(self):
        """Initialize Redis connection pool."""
        try:
            self.redis_pool = redis.ConnectionPool.from_url(
                self.url,
                decode_responses=True,
                retry_on_timeout=True,
                socket_keepalive=True,
            )

            # Test connection
            async with redis.Redis(connection_pool=self.redis_pool) as r:
                await r.ping()
                logger.info("Redis connection established")

        except Exception as e:
            logger.error("Failed to connect to Redis", exc_info=e)
            raise

    async def get_redis(self) -> redis.Redis:
        """Get Redis client instance."""
        if not self.redis_pool:
            await self.init_redis()
        return redis.Redis(connection_pool=self.redis_pool)

    async def acquire_lock(self, key: str, token: str, ttl_seconds: int) -> bool:
        """SET NX EX: True only for the caller that created the key."""
        client = await self.get_redis()
        acquired = await client.set(key, token, nx=True, ex=ttl_seconds)
        return bool(acquired)

    async def release_lock(self, key: str, token: str) -> bool:
        client = await self.get_redis()
        try:
            released = await client.eval(_RELEASE_SCRIPT, 1, key, token)
        except Exception as e:
            # The TTL cleans up after us; never mask the caller's own result
            logger.error("Redis lock release error", key=key, exc_info=e)
            return False
        return bool(released)

    async def close(self):
        if self.redis_pool:
            await self.redis_pool.disconnect()
            self.redis_pool = None


# Global Redis client instance
redis_client = RedisClient()
