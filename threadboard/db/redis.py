# threadboard/db/redis.py
from redis.asyncio import Redis, ConnectionPool
from typing import Optional
import logging

from threadboard.core.config import settings

logger = logging.getLogger(__name__)


class PathRevalidator:
    """Receives the stale-path signal emitted after a successful mutation."""

    async def revalidate(self, path: str) -> bool:
        raise NotImplementedError

    async def close(self) -> None:
        pass


class RedisPathRevalidator(PathRevalidator):
    """
    Drops the cached render of a page path and announces the path on a
    pub/sub channel so renderers can rebuild it.
    """

    def __init__(
        self,
        redis: Optional[Redis] = None,
        channel: Optional[str] = None,
        key_prefix: Optional[str] = None,
    ):
        self._pool: Optional[ConnectionPool] = None
        if redis is None:
            self._pool = ConnectionPool.from_url(
                url=settings.REDIS_URL,
                max_connections=settings.REDIS_MAX_CONNECTIONS,
                decode_responses=True
            )
            redis = Redis(connection_pool=self._pool)
        self.redis = redis
        self.channel = channel or settings.REVALIDATION_CHANNEL
        self.key_prefix = key_prefix if key_prefix is not None else settings.PAGE_CACHE_PREFIX

    def page_key(self, path: str) -> str:
        return f"{self.key_prefix}{path}"

    async def close(self):
        """Close Redis connections"""
        await self.redis.aclose()
        if self._pool is not None:
            await self._pool.disconnect()

    async def revalidate(self, path: str) -> bool:
        """Mark a page path as stale. Returns False if Redis rejected the signal."""
        try:
            await self.redis.delete(self.page_key(path))
            receivers = await self.redis.publish(self.channel, path)
            logger.debug(f"Revalidated path {path} ({receivers} subscribers)")
            return True
        except Exception as e:
            # The mutation is already committed at this point
            logger.error(f"Redis error revalidating path {path}: {e}")
            return False
