"""
Relational result store (PostgreSQL in production, SQLite in tests).

Table ``analysis_results``:

    fingerprint  VARCHAR(64)  PRIMARY KEY
    label        VARCHAR(16)  NOT NULL
    confidence   FLOAT        NOT NULL
    model_id     VARCHAR(255) NOT NULL
    created_at   TIMESTAMPTZ  NOT NULL

Upserts use the dialect's INSERT ... ON CONFLICT DO UPDATE, so each write
is a single atomic statement and concurrent readers only ever see the old
or the new row.
"""

import asyncio
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Iterator, Optional

import structlog
from sqlalchemy import DateTime, Float, String, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.pool import StaticPool

from sentiment_service.config import Settings
from sentiment_service.exceptions import StorageError
from sentiment_service.models.analysis import AnalysisResult
from sentiment_service.persistence.base import ResultStore


logger = structlog.get_logger(__name__)


class Base(DeclarativeBase):
    pass


class AnalysisResultRow(Base):
    """ORM mapping of a stored AnalysisResult."""

    __tablename__ = "analysis_results"

    fingerprint: Mapped[str] = mapped_column(String(64), primary_key=True)
    label: Mapped[str] = mapped_column(String(16), nullable=False)
    confidence: Mapped[float] = mapped_column(Float, nullable=False)
    model_id: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


UPDATABLE_COLUMNS = ("label", "confidence", "model_id", "created_at")

# asyncpg raises plain socket errors and timeouts while connecting; SQLAlchemy
# only wraps errors raised once a DBAPI connection exists
DRIVER_ERRORS = (SQLAlchemyError, OSError, asyncio.TimeoutError)


@contextmanager
def storage_errors(action: str, **fields: Any) -> Iterator[None]:
    """Re-raise database driver failures as StorageError."""
    try:
        yield
    except DRIVER_ERRORS as e:
        logger.error(
            f"Failed to {action}",
            error=str(e),
            error_type=type(e).__name__,
            **fields,
        )
        raise StorageError(
            f"Failed to {action}",
            details={**fields, "error_type": type(e).__name__},
        ) from e


class SqlResultStore(ResultStore):
    """ResultStore on top of a SQLAlchemy AsyncEngine."""

    backend_name = "sql"

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self._sessions = async_sessionmaker(engine, expire_on_commit=False)

    @classmethod
    def from_settings(cls, settings: Settings) -> "SqlResultStore":
        """Create the engine from DATABASE_URL plus DATABASE_USER/DATABASE_PASSWORD."""
        dsn = settings.database_dsn
        engine_kwargs: dict[str, Any] = {"pool_pre_ping": True}
        if dsn.startswith("sqlite"):
            if ":memory:" in dsn or dsn.rstrip("/").endswith("sqlite+aiosqlite:"):
                # One shared connection, otherwise every checkout sees an empty database
                engine_kwargs["poolclass"] = StaticPool
                engine_kwargs["connect_args"] = {"check_same_thread": False}
        else:
            engine_kwargs["pool_size"] = settings.DB_POOL_SIZE
            engine_kwargs["max_overflow"] = settings.DB_MAX_OVERFLOW

        engine = create_async_engine(dsn, **engine_kwargs)
        logger.info(
            "Created SQL engine",
            dialect=engine.dialect.name,
            host=engine.url.host,
            database=engine.url.database,
        )
        return cls(engine)

    async def create_schema(self) -> None:
        with storage_errors("create result store schema"):
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        logger.info("Result store schema ready", table=AnalysisResultRow.__tablename__)

    async def upsert(self, fingerprint: str, result: AnalysisResult) -> None:
        self._check_key(fingerprint, result)
        values = {
            "fingerprint": fingerprint,
            "label": result.label.value,
            "confidence": result.confidence,
            "model_id": result.model_id,
            "created_at": result.created_at,
        }

        with storage_errors("store analysis result", fingerprint=fingerprint):
            dialect = self.engine.dialect.name
            if dialect in ("postgresql", "sqlite"):
                insert = pg_insert if dialect == "postgresql" else sqlite_insert
                stmt = insert(AnalysisResultRow).values(**values)
                stmt = stmt.on_conflict_do_update(
                    index_elements=[AnalysisResultRow.fingerprint],
                    set_={column: stmt.excluded[column] for column in UPDATABLE_COLUMNS},
                )
                async with self.engine.begin() as conn:
                    await conn.execute(stmt)
            else:
                async with self._sessions.begin() as session:
                    await session.merge(AnalysisResultRow(**values))

        logger.debug("Stored result", fingerprint=fingerprint, backend=self.backend_name)

    async def get(self, fingerprint: str) -> Optional[AnalysisResult]:
        stmt = select(AnalysisResultRow).where(AnalysisResultRow.fingerprint == fingerprint)
        with storage_errors("read analysis result", fingerprint=fingerprint):
            async with self._sessions() as session:
                row = (await session.execute(stmt)).scalar_one_or_none()

        if row is None:
            return None
        return AnalysisResult(
            fingerprint=row.fingerprint,
            label=row.label,
            confidence=row.confidence,
            model_id=row.model_id,
            created_at=row.created_at,
        )

    async def health_check(self) -> bool:
        try:
            async with self.engine.connect() as conn:
                await conn.execute(select(1))
            return True
        except Exception as e:
            logger.warning("SQL store health check failed", error=str(e))
            return False

    async def close(self) -> None:
        await self.engine.dispose()
        logger.debug("Disposed SQL engine")
