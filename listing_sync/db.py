from __future__ import annotations

from contextlib import asynccontextmanager

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from .config import settings


def enable_sqlite_savepoints(engine: AsyncEngine) -> None:
    """
    pysqlite/aiosqlite manage BEGIN on their own and break SAVEPOINT semantics.
    Hand transaction control back to SQLAlchemy so per-record begin_nested() works.
    """
    if engine.dialect.name != "sqlite":
        return

    @event.listens_for(engine.sync_engine, "connect")
    def _do_connect(dbapi_connection, connection_record) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _do_begin(conn) -> None:
        conn.exec_driver_sql("BEGIN")


engine: AsyncEngine = create_async_engine(settings.SYNC_DB_URL, echo=False, future=True)
enable_sqlite_savepoints(engine)

# Canonical async session factory
AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_session() -> AsyncSession:
    """
    FastAPI dependency that yields a session.
    """
    async with AsyncSessionLocal() as session:
        yield session


@asynccontextmanager
async def async_session() -> AsyncSession:
    """
    Convenience context manager used in scripts.
    """
    async with AsyncSessionLocal() as session:
        yield session
