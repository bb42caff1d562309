"""Select the result store backend from settings."""

import structlog

from sentiment_service.config import Settings
from sentiment_service.persistence.base import ResultStore
from sentiment_service.persistence.memory import InMemoryResultStore

logger = structlog.get_logger(__name__)


def build_result_store(settings: Settings) -> ResultStore:
    """
    Build the store named by RESULT_STORE_BACKEND (sql, redis or memory).

    Driver imports happen lazily so a deployment only needs the driver of
    the backend it uses.
    """
    backend = settings.RESULT_STORE_BACKEND
    if backend == "sql":
        from sentiment_service.persistence.sql_store import SqlResultStore

        store: ResultStore = SqlResultStore.from_settings(settings)
    elif backend == "redis":
        from sentiment_service.persistence.redis_store import RedisResultStore

        store = RedisResultStore.from_settings(settings)
    else:
        store = InMemoryResultStore()

    logger.info("Result store selected", backend=store.backend_name)
    return store
