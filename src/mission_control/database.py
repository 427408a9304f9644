"""Async SQLAlchemy plumbing for the service's SQLite databases.

Each store lives in its own SQLite file under the data directory
(activities.db, suggestions.db, shared-reports.db, playground.db,
usage-tracking.db). Engines are opened lazily on first use and kept for the
process lifetime. Tables are created on open; there is no migration step.
"""

import asyncio
from collections.abc import AsyncIterator, Mapping, Sequence
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Generic, TypeVar

from sqlalchemy import Table, event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from mission_control.observability import get_logger

logger = get_logger(__name__)

ACTIVITIES_DB = "activities.db"
SUGGESTIONS_DB = "suggestions.db"
SHARED_REPORTS_DB = "shared-reports.db"
PLAYGROUND_DB = "playground.db"
USAGE_DB = "usage-tracking.db"


class Base(DeclarativeBase):
    """Declarative base shared by every ORM model."""


ModelT = TypeVar("ModelT", bound=Base)


def _enable_wal(dbapi_connection, _connection_record) -> None:  # type: ignore[no-untyped-def]
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class BaseRepository(Generic[ModelT]):
    """Primary-key create/get shared by every SQLAlchemy repository.

    Args:
        session: Session opened by ``DatabaseRegistry.session``.
        model: ORM class this repository persists.
    """

    def __init__(self, session: AsyncSession, model: type[ModelT]) -> None:
        self._session = session
        self._model = model

    async def create(self, instance: ModelT) -> ModelT:
        """Add ``instance`` and flush so constraint violations surface here."""
        self._session.add(instance)
        await self._session.flush()
        return instance

    async def get_by_id(self, key: Any) -> ModelT | None:
        return await self._session.get(self._model, key)


class DatabaseRegistry:
    """Lazily opened SQLite databases keyed by file name.

    Args:
        data_dir: Directory holding the database files.
        schema: Mapping of database file name to the tables it owns.
    """

    def __init__(self, data_dir: Path, schema: Mapping[str, Sequence[Table]]) -> None:
        self._data_dir = data_dir
        self._schema = schema
        self._engines: dict[str, AsyncEngine] = {}
        self._sessionmakers: dict[str, async_sessionmaker[AsyncSession]] = {}
        self._lock = asyncio.Lock()

    def path_for(self, name: str) -> Path:
        return self._data_dir / name

    def exists(self, name: str) -> bool:
        """True when the database file is already on disk."""
        return name in self._engines or self.path_for(name).is_file()

    async def _sessionmaker(self, name: str) -> async_sessionmaker[AsyncSession]:
        if name in self._sessionmakers:
            return self._sessionmakers[name]

        async with self._lock:
            if name in self._sessionmakers:
                return self._sessionmakers[name]

            path = self.path_for(name)
            path.parent.mkdir(parents=True, exist_ok=True)
            engine = create_async_engine(f"sqlite+aiosqlite:///{path}")
            event.listen(engine.sync_engine, "connect", _enable_wal)

            tables = list(self._schema.get(name, ()))
            if tables:
                async with engine.begin() as conn:
                    await conn.run_sync(lambda sync_conn: Base.metadata.create_all(sync_conn, tables=tables))

            self._engines[name] = engine
            self._sessionmakers[name] = async_sessionmaker(engine, expire_on_commit=False)
            logger.info("database_opened", database=name, path=str(path))
            return self._sessionmakers[name]

    @asynccontextmanager
    async def session(self, name: str) -> AsyncIterator[AsyncSession]:
        """Yield a session that commits on success and rolls back on error."""
        factory = await self._sessionmaker(name)
        async with factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def dispose(self) -> None:
        """Close every open engine (application shutdown)."""
        for name, engine in self._engines.items():
            await engine.dispose()
            logger.info("database_closed", database=name)
        self._engines.clear()
        self._sessionmakers.clear()
