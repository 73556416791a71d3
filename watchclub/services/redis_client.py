# watchclub/services/redis_client.py
import redis.asyncio as redis
from redis.asyncio.connection import ConnectionPool

from watchclub.config import settings
from watchclub.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class FastRedisClient:
    """Pooled async Redis client. Every operation fails open (None/False) on errors."""

    def __init__(self):
        self.pool = None
        self.client = None
        self._initialized = False

    async def initialize(self):
        """Initialize connection pool on startup"""
        if self._initialized:
            return

        try:
            self.pool = ConnectionPool.from_url(
                settings.REDIS_URL,
                max_connections=20,
                retry_on_timeout=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                health_check_interval=30,
                decode_responses=True,
            )
            self.client = redis.Redis(connection_pool=self.pool)

            result = await self.client.ping()
            logger.info("Redis ping successful", result=result)

            self._initialized = True
            logger.info("Redis client initialized successfully", max_connections=20)

        except Exception as e:
            logger.error("Failed to initialize Redis client", error=str(e))
            self._initialized = False
            raise RuntimeError("Redis initialization failed") from e

    async def close(self):
        """Clean shutdown"""
        try:
            if self.client:
                await self.client.aclose()
            if self.pool:
                await self.pool.disconnect()
            self._initialized = False
            logger.info("Redis client closed")
        except Exception as e:
            logger.error("Error closing Redis client", error=str(e))

    async def _ensure_initialized(self):
        if not self._initialized:
            logger.warning("Redis not initialized, attempting to initialize")
            await self.initialize()

    async def ping(self) -> bool:
        try:
            await self._ensure_initialized()
            return bool(await self.client.ping())
        except Exception as e:
            logger.error("Redis ping failed", error=str(e))
            return False

    async def get(self, key: str) -> str | None:
        try:
            await self._ensure_initialized()
            result = await self.client.get(key)
            return result if result else None
        except Exception as e:
            logger.error("Redis GET failed", key=key[:40], error=str(e))
            return None

    async def set_with_ttl(self, key: str, value: str, ttl_s: int | None = None) -> bool:
        try:
            await self._ensure_initialized()
            if ttl_s:
                result = await self.client.setex(key, ttl_s, value)
            else:
                result = await self.client.set(key, value)
            return bool(result)
        except Exception as e:
            logger.error("Redis SET failed", key=key[:40], error=str(e))
            return False

    async def delete(self, key: str) -> bool:
        try:
            await self._ensure_initialized()
            result = await self.client.delete(key)
            return result > 0
        except Exception as e:
            logger.error("Redis DELETE failed", key=key[:40], error=str(e))
            return False


# Global instance
fast_redis = FastRedisClient()
