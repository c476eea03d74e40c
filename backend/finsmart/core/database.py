"""Database configuration and session management"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, AsyncIterator
import logging

from sqlalchemy import inspect, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool

from finsmart.config import Settings, settings

logger = logging.getLogger(__name__)


def create_engine_from_settings(config: Settings) -> AsyncEngine:
    """
    Create the async engine.

    SQLite (aiosqlite) runs without pooling; PostgreSQL (asyncpg) gets a
    bounded pool with pre-ping so stale connections are replaced.
    """
    url = config.get_database_url()
    if config.is_sqlite:
        return create_async_engine(
            url,
            echo=config.DEBUG,
            poolclass=NullPool,
            connect_args={"check_same_thread": False},
        )

    return create_async_engine(
        url,
        pool_size=config.DATABASE_POOL_SIZE,
        max_overflow=config.DATABASE_MAX_OVERFLOW,
        pool_timeout=30,
        pool_recycle=3600,
        pool_pre_ping=True,
        echo=config.DEBUG,
    )


engine = create_engine_from_settings(settings)

# expire_on_commit=False keeps loaded attributes readable after commit
SessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

# Create base class for models
Base = declarative_base()

# Import models after Base is defined so metadata is populated.
from finsmart import models  # noqa: E402,F401


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency for getting database session

    The session is closed on every exit path, including handler errors.

    Yields:
        AsyncSession: Database session
    """
    async with SessionLocal() as db:
        yield db


@asynccontextmanager
async def transactional(db: AsyncSession) -> AsyncIterator[AsyncSession]:
    """
    Commit the enclosed writes as one unit, rolling back on any exception.

    Usage:
        async with transactional(db):
            ...
    """
    try:
        yield db
        await db.commit()
    except BaseException:
        await db.rollback()
        raise


def _alembic_version_exists(conn) -> bool:
    return "alembic_version" in inspect(conn).get_table_names()


async def init_db() -> None:
    """
    Initialize database according to configured strategy.

    DB_INIT_MODE:
      - migrate: require alembic_version table (migration-first discipline)
      - create_all: create tables from metadata for local/dev bootstrap
      - off: skip initialization check
    """
    mode = settings.DB_INIT_MODE.lower().strip()
    if mode == "off":
        logger.info("DB initialization check skipped (DB_INIT_MODE=off)")
        return

    if mode == "create_all":
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.warning("Using create_all database initialization (recommended only for local development).")
        return

    if mode == "migrate":
        async with engine.connect() as conn:
            exists = await conn.run_sync(_alembic_version_exists)
            if settings.DB_REQUIRE_HEAD and not exists:
                raise RuntimeError(
                    "Migration table missing. Run Alembic migrations before starting the API."
                )
        logger.info("Migration metadata detected.")
        return

    raise RuntimeError(f"Unknown DB_INIT_MODE: {settings.DB_INIT_MODE}")


async def check_database() -> None:
    """Round-trip a trivial query; raises if the database is unreachable"""
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
