"""
Redis-backed result store.

Storage layout:
- One JSON document per result, key = "sentiment:result:{fingerprint}"
- Written with SET ... EX so old results expire after RESULT_RETENTION_SECONDS

A single SET replaces the whole value atomically, so readers never see a
partially written record.
"""

from typing import Optional

import structlog
from pydantic import ValidationError
from redis.asyncio import Redis as AsyncRedis
from redis.exceptions import RedisError

from sentiment_service.config import Settings
from sentiment_service.exceptions import StorageError
from sentiment_service.models.analysis import AnalysisResult
from sentiment_service.persistence.base import ResultStore
from sentiment_service.persistence.redis_client import RedisClient

logger = structlog.get_logger(__name__)


class RedisResultStore(ResultStore):
    """ResultStore on top of an async Redis client."""

    backend_name = "redis"
    RESULT_PREFIX = "sentiment:result:"

    def __init__(self, redis_client: AsyncRedis, retention_seconds: int = 7 * 86400):
        """
        Args:
            redis_client: AsyncRedis client instance
            retention_seconds: Key expiry for stored results
        """
        self.redis = redis_client
        self.retention_seconds = retention_seconds

    @classmethod
    def from_settings(cls, settings: Settings) -> "RedisResultStore":
        return cls(
            RedisClient.get_async_client(settings),
            retention_seconds=settings.RESULT_RETENTION_SECONDS,
        )

    def _key(self, fingerprint: str) -> str:
        return f"{self.RESULT_PREFIX}{fingerprint}"

    async def upsert(self, fingerprint: str, result: AnalysisResult) -> None:
        self._check_key(fingerprint, result)
        try:
            await self.redis.set(
                name=self._key(fingerprint),
                value=result.model_dump_json(),
                ex=self.retention_seconds,
            )
        except RedisError as e:
            logger.error(
                "Failed to store result",
                fingerprint=fingerprint,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise StorageError(
                "Failed to store analysis result",
                details={"fingerprint": fingerprint, "error_type": type(e).__name__},
            ) from e

        logger.debug(
            "Stored result",
            fingerprint=fingerprint,
            backend=self.backend_name,
            ttl=self.retention_seconds,
        )

    async def get(self, fingerprint: str) -> Optional[AnalysisResult]:
        try:
            payload = await self.redis.get(self._key(fingerprint))
        except RedisError as e:
            logger.error(
                "Failed to read result",
                fingerprint=fingerprint,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise StorageError(
                "Failed to read analysis result",
                details={"fingerprint": fingerprint, "error_type": type(e).__name__},
            ) from e

        if payload is None:
            return None

        try:
            return AnalysisResult.model_validate_json(payload)
        except ValidationError as e:
            raise StorageError(
                "Stored analysis result is corrupt",
                details={"fingerprint": fingerprint, "error_count": e.error_count()},
            ) from e

    async def health_check(self) -> bool:
        try:
            await self.redis.ping()
            return True
        except Exception as e:
            logger.warning("Redis store health check failed", error=str(e))
            return False

    async def close(self) -> None:
        await RedisClient.close_async_pools()
