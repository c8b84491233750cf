"""Async database engine and session setup."""

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from scrobbler.config import settings


class Base(DeclarativeBase):
    """Base class for all ORM models."""
    pass


engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
)

async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_db() -> None:
    """Create all tables (used for first run / dev)."""
    async with engine.begin() as conn:
        # Import models so they register with Base.metadata
        from scrobbler.models import album as _album_models  # noqa: F401
        await conn.run_sync(Base.metadata.create_all)
