"""
Result persistence.

- base.py: ResultStore interface (idempotent upsert / get by fingerprint)
- sql_store.py: PostgreSQL/SQLite via SQLAlchemy async
- redis_store.py + redis_client.py: Redis with per-URL connection pools
- memory.py: in-process store for development and tests
- factory.py: backend selection from settings
"""

from sentiment_service.persistence.base import ResultStore
from sentiment_service.persistence.factory import build_result_store
from sentiment_service.persistence.memory import InMemoryResultStore

__all__ = [
    "ResultStore",
    "InMemoryResultStore",
    "build_result_store",
]
