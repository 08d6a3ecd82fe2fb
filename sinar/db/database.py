"""
Database engine and session management
"""
from typing import AsyncIterator
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sinar.core.config import settings


def _engine_options(url: str) -> dict:
    # SQLite drivers do not accept queue pool sizing
    if url.startswith("sqlite"):
        return {"echo": settings.DEBUG}
    return {
        "echo": settings.DEBUG,
        "pool_pre_ping": True,
        "pool_size": 10,
        "max_overflow": 20,
    }


# Async engine
engine = create_async_engine(
    settings.SQLALCHEMY_DATABASE_URI,
    **_engine_options(settings.SQLALCHEMY_DATABASE_URI)
)

# Session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)

# Declarative base
Base = declarative_base()


async def get_db() -> AsyncIterator[AsyncSession]:
    """
    Database session dependency
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()
