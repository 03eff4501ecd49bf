"""
Velocity FTP Sync Database Session Management

Async SQLAlchemy engine and session factory. The process entry point
(API lifespan or CLI) builds the engine and owns its lifecycle; workflows
receive a session.
"""

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from core.config import Settings


def build_engine(settings: Settings) -> AsyncEngine:
    options: dict = {"echo": settings.database_echo}
    if settings.database_url.startswith("postgresql"):
        options.update(pool_size=5, max_overflow=5, pool_pre_ping=True)
    return create_async_engine(settings.database_url, **options)


def build_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


class Base(DeclarativeBase):
    """Declarative base for all SQLAlchemy models."""
    pass
