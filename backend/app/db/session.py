"""Database engine and session utilities."""

from __future__ import annotations

from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from app.config import get_settings


class Database:
    """Own one async engine and the session factory bound to it."""

    def __init__(self, url: str, *, echo: bool = False) -> None:
        self.url = url
        self.engine: AsyncEngine = create_async_engine(url, echo=echo, future=True)
        self.session_factory: async_sessionmaker[AsyncSession] = async_sessionmaker(
            bind=self.engine, expire_on_commit=False, class_=AsyncSession
        )

    async def dispose(self) -> None:
        await self.engine.dispose()


_database: Database | None = None


def get_database() -> Database:
    """Return the process-wide database built from settings on first use."""

    global _database  # noqa: PLW0603 - lazily created singleton
    if _database is None:
        _database = Database(get_settings().database_url)
    return _database


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    return get_database().session_factory


async def get_db() -> AsyncIterator[AsyncSession]:
    """Yield an AsyncSession for FastAPI dependency usage."""

    async with get_session_factory()() as session:
        yield session


__all__ = ["Database", "get_database", "get_session_factory", "get_db"]
