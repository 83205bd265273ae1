"""Database engine, sessions and startup schema management."""

import logging
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from crmsync.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Declarative base for all models."""


def _connect_args(database_url: str) -> dict:
    if settings.database_ssl and database_url.startswith("postgresql"):
        return {"ssl": "require"}
    return {}


engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    pool_pre_ping=True,
    connect_args=_connect_args(settings.database_url),
)

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding a database session."""
    async with async_session_maker() as session:
        yield session


async def init_db() -> None:
    """Bring the schema up to date by applying pending migrations."""
    from crmsync.services.migrations import apply_migrations

    async with engine.begin() as conn:
        applied = await conn.run_sync(apply_migrations)
    logger.info(f"Database ready ({applied} migration steps made changes)")


async def close_db() -> None:
    """Dispose of the connection pool."""
    await engine.dispose()
