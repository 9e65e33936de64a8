from typing import AsyncIterator, Optional
import logging

from fastapi import Request
from sqlalchemy import event, text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """
    Engine and session factory for one process.

    Built once at application startup, stored on ``app.state`` and
    disposed at shutdown. Request handlers get sessions from it through
    the ``get_db`` dependency.
    """

    def __init__(self, url: str, pool_size: int = 10, echo: bool = False):
        self.url = url
        engine_kwargs = {"echo": echo, "pool_pre_ping": True}
        if make_url(url).get_backend_name() != "sqlite":
            engine_kwargs.update(pool_size=pool_size, max_overflow=10, pool_recycle=3600)

        self.engine: AsyncEngine = create_async_engine(url, **engine_kwargs)

        if self.engine.dialect.name == "sqlite":
            event.listen(self.engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autocommit=False,
            autoflush=False
        )

    def session(self) -> AsyncSession:
        return self.session_factory()

    async def ping(self):
        """Run a trivial query and return the server's current timestamp."""
        async with self.engine.connect() as conn:
            result = await conn.execute(text("SELECT CURRENT_TIMESTAMP"))
            return result.scalar_one()

    async def create_schema(self) -> None:
        """Create any missing tables. Existing tables are left untouched."""
        # Register the models with Base.metadata
        from database import models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database schema verified")

    async def dispose(self) -> None:
        await self.engine.dispose()
        logger.info("Database connections closed")


def get_database(request: Request) -> Database:
    """Dependency returning the Database built at startup."""
    database: Optional[Database] = getattr(request.app.state, "database", None)
    if database is None:
        raise RuntimeError("Database has not been initialised")
    return database


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    """Dependency to get a database session, closed on every exit path."""
    async with get_database(request).session() as session:
        yield session
