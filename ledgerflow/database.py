"""Database engine, session factory and declarative base."""
from typing import AsyncGenerator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from ledgerflow.config import settings

Base = declarative_base()


def configure_sqlite(engine: AsyncEngine) -> None:
    """
    Let SQLAlchemy own BEGIN on SQLite connections.

    The sqlite driver defers BEGIN until the first write, which breaks
    SAVEPOINT handling (begin_nested) used by the reconciliation pass.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")


def create_engine_for(url: str) -> AsyncEngine:
    """Create an async engine, applying SQLite transaction fixes where needed."""
    engine = create_async_engine(url, echo=False)
    if url.startswith("sqlite"):
        configure_sqlite(engine)
    return engine


engine = create_engine_for(settings.DATABASE_URL)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding a database session."""
    async with AsyncSessionLocal() as session:
        yield session
