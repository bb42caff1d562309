"""Unit tests for RedisResultStore (mocked AsyncRedis)."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from sentiment_service.exceptions import StorageError
from sentiment_service.persistence.redis_client import RedisClient
from sentiment_service.persistence.redis_store import RedisResultStore


@pytest.fixture
def redis_store(mock_async_redis):
    return RedisResultStore(mock_async_redis, retention_seconds=3600)


async def test_upsert_writes_json_with_expiry(redis_store, mock_async_redis, make_result):
    result = make_result()

    await redis_store.upsert(result.fingerprint, result)

    mock_async_redis.set.assert_awaited_once_with(
        name=f"sentiment:result:{result.fingerprint}",
        value=result.model_dump_json(),
        ex=3600,
    )


async def test_get_decodes_stored_json(redis_store, mock_async_redis, make_result):
    result = make_result()
    mock_async_redis.get.return_value = result.model_dump_json()

    assert await redis_store.get(result.fingerprint) == result
    mock_async_redis.get.assert_awaited_once_with(f"sentiment:result:{result.fingerprint}")


async def test_get_missing_returns_none(redis_store):
    assert await redis_store.get("0" * 64) is None


async def test_corrupt_payload_raises_storage_error(redis_store, mock_async_redis):
    mock_async_redis.get.return_value = '{"label": "POSITIVE"}'

    with pytest.raises(StorageError):
        await redis_store.get("0" * 64)


async def test_redis_errors_become_storage_errors(redis_store, mock_async_redis, make_result):
    result = make_result()
    mock_async_redis.set.side_effect = RedisConnectionError("connection refused")
    mock_async_redis.get.side_effect = RedisConnectionError("connection refused")

    with pytest.raises(StorageError):
        await redis_store.upsert(result.fingerprint, result)
    with pytest.raises(StorageError):
        await redis_store.get(result.fingerprint)


async def test_health_check(redis_store, mock_async_redis):
    assert await redis_store.health_check() is True

    mock_async_redis.ping.side_effect = RedisConnectionError("down")
    assert await redis_store.health_check() is False


class TestRedisClient:
    @pytest.fixture(autouse=True)
    def reset_pools(self):
        RedisClient._pools = {}
        yield
        RedisClient._pools = {}

    def test_pool_created_once_per_url(self, test_settings):
        with patch("sentiment_service.persistence.redis_client.AsyncConnectionPool") as mock_pool:
            mock_pool.from_url.side_effect = lambda *args, **kwargs: MagicMock()

            RedisClient.get_async_client(test_settings)
            RedisClient.get_async_client(test_settings)
            RedisClient.get_async_client(test_settings, url="redis://other:6379/2")

        assert mock_pool.from_url.call_count == 2
        first_call = mock_pool.from_url.call_args_list[0]
        assert first_call.args == (test_settings.REDIS_URL,)
        assert first_call.kwargs["max_connections"] == test_settings.REDIS_MAX_CONNECTIONS
        assert first_call.kwargs["decode_responses"] is True
        assert set(RedisClient._pools) == {test_settings.REDIS_URL, "redis://other:6379/2"}

    async def test_close_async_pools_disconnects_all(self):
        pools = [MagicMock(), MagicMock()]
        for pool in pools:
            pool.disconnect = AsyncMock()
        RedisClient._pools = {"redis://a": pools[0], "redis://b": pools[1]}

        await RedisClient.close_async_pools()

        for pool in pools:
            pool.disconnect.assert_awaited_once()
        assert RedisClient._pools == {}
