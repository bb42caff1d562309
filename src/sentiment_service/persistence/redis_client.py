"""
Process-wide async Redis connection pools, one per Redis URL.

The result store asks for a client by URL and gets one bound to the shared
pool for that URL. Celery keeps its own broker connections.
"""

from typing import Optional

import structlog
from redis.asyncio import ConnectionPool as AsyncConnectionPool
from redis.asyncio import Redis as AsyncRedis

from sentiment_service.config import Settings

logger = structlog.get_logger(__name__)

SOCKET_TIMEOUT_SECONDS = 5.0
HEALTH_CHECK_INTERVAL_SECONDS = 30


class RedisClient:
    _pools: dict[str, AsyncConnectionPool] = {}

    @classmethod
    def get_async_client(cls, settings: Settings, url: Optional[str] = None) -> AsyncRedis:
        """
        Client bound to the pool for ``url`` (REDIS_URL by default).

        The pool is created on first use and sized by REDIS_MAX_CONNECTIONS.
        """
        url = url or settings.REDIS_URL
        pool = cls._pools.get(url)
        if pool is None:
            pool = AsyncConnectionPool.from_url(
                url,
                max_connections=settings.REDIS_MAX_CONNECTIONS,
                decode_responses=True,
                socket_timeout=SOCKET_TIMEOUT_SECONDS,
                socket_connect_timeout=SOCKET_TIMEOUT_SECONDS,
                retry_on_timeout=True,
                health_check_interval=HEALTH_CHECK_INTERVAL_SECONDS,
            )
            cls._pools[url] = pool
            logger.info(
                "Created Redis connection pool",
                pools=len(cls._pools),
                max_connections=settings.REDIS_MAX_CONNECTIONS,
            )
        return AsyncRedis(connection_pool=pool)

    @classmethod
    async def close_async_pools(cls) -> None:
        pools, cls._pools = cls._pools, {}
        for pool in pools.values():
            await pool.disconnect()
        if pools:
            logger.info("Closed Redis connection pools", count=len(pools))
