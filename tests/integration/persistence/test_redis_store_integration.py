"""Integration tests for RedisResultStore against a real Redis."""

import pytest
from redis.asyncio import Redis as AsyncRedis

from sentiment_service.persistence.redis_store import RedisResultStore

pytestmark = pytest.mark.integration


@pytest.fixture
async def redis_store(check_redis, redis_url):
    client = AsyncRedis.from_url(redis_url, decode_responses=True)
    store = RedisResultStore(client, retention_seconds=60)
    yield store
    await client.aclose()


async def test_round_trip_with_expiry(redis_store, make_result):
    result = make_result(text="integration test text")

    await redis_store.upsert(result.fingerprint, result)
    await redis_store.upsert(result.fingerprint, result)

    assert await redis_store.get(result.fingerprint) == result
    ttl = await redis_store.redis.ttl(f"sentiment:result:{result.fingerprint}")
    assert 0 < ttl <= 60
    assert await redis_store.health_check() is True
    await redis_store.redis.delete(f"sentiment:result:{result.fingerprint}")
