"""Database handle, session dependency, and startup schema management."""

from __future__ import annotations

from collections.abc import AsyncGenerator

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from usage_limits import models as _models  # noqa: F401  (register table metadata)
from usage_limits.core.config import settings
from usage_limits.core.logging import get_logger

logger = get_logger(__name__)


class Database:
    """Owns one async engine and its session factory for the process lifetime."""

    def __init__(self, engine: AsyncEngine) -> None:
        self.engine = engine
        self.session_maker: async_sessionmaker[AsyncSession] = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @classmethod
    def from_url(cls, url: str, *, echo: bool = False) -> Database:
        return cls(create_async_engine(url, echo=echo, pool_pre_ping=True))

    async def create_all(self) -> None:
        async with self.engine.connect() as conn, conn.begin():
            await conn.run_sync(SQLModel.metadata.create_all)

    async def dispose(self) -> None:
        await self.engine.dispose()


def open_database() -> Database:
    """Create the process database handle from settings."""
    return Database.from_url(settings.database_url, echo=settings.db_echo)


async def init_db(database: Database) -> None:
    """Create missing tables when auto-migration is enabled."""
    if not settings.db_auto_migrate:
        return
    logger.info("db.init.create_all", extra={"environment": settings.environment})
    await database.create_all()


def get_database(request: Request) -> Database:
    return request.app.state.database


async def get_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Yield a request-scoped session from the application's database handle."""
    async with get_database(request).session_maker() as session:
        yield session
