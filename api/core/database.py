"""
Database configuration and connection management.

The engine and session factory live on a Database object that is built once at
startup and stored on ``app.state.database``. Request handlers reach it through
the ``get_db`` dependency, so nothing here holds a process-wide pool.
"""
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from core.config import Settings
from database.models import Base

logger = logging.getLogger(__name__)


def to_async_url(database_url: str) -> str:
    """Convert postgresql:// to postgresql+asyncpg:// for async support"""
    if database_url.startswith("postgresql://"):
        return database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if database_url.startswith("sqlite://"):
        return database_url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    return database_url


class Database:
    """Owns the async engine and hands out sessions"""

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self.session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        url = to_async_url(settings.database_url)
        if url.startswith("sqlite"):
            # A single shared connection keeps in-memory databases alive across sessions
            engine = create_async_engine(
                url,
                echo=settings.debug,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        else:
            engine = create_async_engine(
                url,
                echo=settings.debug,
                pool_size=settings.database_pool_size,
                max_overflow=settings.database_max_overflow,
                pool_pre_ping=True,
            )
        return cls(engine)

    async def create_tables(self):
        """Create all database tables"""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created")

    async def is_healthy(self) -> bool:
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return False

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Get async database session"""
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def dispose(self):
        await self.engine.dispose()
        logger.info("Database connections closed")


def get_database(request: Request) -> Database:
    database: Optional[Database] = getattr(request.app.state, "database", None)
    if database is None:
        raise RuntimeError("Database is not configured on the application")
    return database


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency for database sessions"""
    async with get_database(request).session() as session:
        yield session
