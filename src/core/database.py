from contextlib import asynccontextmanager
from typing import AsyncIterator

from loguru import logger
from sqlalchemy import JSON
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from src.config import get_settings
from src.core.lifespan import manager

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models"""

    pass


@manager.add
@asynccontextmanager
async def database_lifespan() -> AsyncIterator[dict]:
    """
    Manage database connection lifecycle.
    Creates connection pool on startup, disposes on shutdown.
    """
    settings = get_settings()
    logger.info("Initializing database connection pool")

    engine: AsyncEngine = create_async_engine(
        settings.DATABASE_URL,
        pool_pre_ping=True,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
    )

    session_maker = async_sessionmaker(
        engine,
        expire_on_commit=False,
    )

    logger.info("Database connection pool ready")

    # Yield state to be available in request.state
    yield {"session_maker": session_maker}

    logger.info("Shutting down database connection pool")
    await engine.dispose()
    logger.info("Database disconnected")
