from typing import AsyncIterator, Optional

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from backend.app.core.config import Settings, get_settings

Base = declarative_base()


class Database:
    """
    Owns the async engine and session factory for one process.

    Built by the entry point (app factory or script) and handed to whoever
    needs sessions; services only ever see the AsyncSession.
    """

    def __init__(self, url: str, echo: bool = False, pool_size: int = 20, max_overflow: int = 20):
        self.url = url
        engine_kwargs = {"echo": echo}
        # SQLite drivers use their own pool classes which reject sizing args
        if not url.startswith("sqlite"):
            engine_kwargs.update(pool_size=pool_size, max_overflow=max_overflow)

        self.engine: AsyncEngine = create_async_engine(url, **engine_kwargs)
        self.session_factory = sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            expire_on_commit=False
        )

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "Database":
        settings = settings or get_settings()
        return cls(
            settings.database_url,
            echo=settings.sql_echo,
            pool_size=settings.pool_size,
            max_overflow=settings.max_overflow,
        )

    def session(self) -> AsyncSession:
        return self.session_factory()

    async def create_all(self):
        # Importing the models registers their tables on Base.metadata
        from backend.app.models import match_model, player_model, tournament_model  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self):
        await self.engine.dispose()


# Dependency for API routes
async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    database: Database = request.app.state.db
    async with database.session() as session:
        yield session
