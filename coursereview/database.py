"""
coursereview/database.py
Async database engine, session factory and schema initialization
"""
import logging
from typing import AsyncGenerator

from sqlalchemy import event, func, select
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from coursereview.config import settings
from coursereview.orm.base import Base
import coursereview.orm  # noqa: F401  registers every model on Base.metadata

logger = logging.getLogger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite ignores ON DELETE CASCADE unless foreign keys are switched on per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(database_url: str, **kwargs) -> AsyncEngine:
    """
    Create an async engine for the given URL.

    SQLite gets a busy timeout and per-connection foreign key enforcement;
    PostgreSQL gets a larger pool with pre-ping and recycling.
    """
    if database_url.startswith("sqlite"):
        engine = create_async_engine(
            database_url,
            echo=False,
            future=True,
            connect_args={"timeout": 30.0},
            **kwargs,
        )
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
        return engine

    return create_async_engine(
        database_url,
        echo=False,
        future=True,
        pool_pre_ping=True,
        pool_size=20,
        max_overflow=30,
        pool_timeout=30,
        pool_recycle=3600,
        **kwargs,
    )


def build_sessionmaker(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


engine = build_engine(settings.DATABASE_URL)
AsyncSessionLocal = build_sessionmaker(engine)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for getting async database session"""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


async def init_db(target: AsyncEngine = None) -> None:
    """Create all tables that do not exist yet. Safe to run repeatedly."""
    target = target or engine
    logger.info("Initializing database (dialect=%s)...", target.url.get_backend_name())
    try:
        async with target.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    except Exception as e:
        logger.error(f"Database initialization failed: {str(e)}")
        raise
    logger.info("✓ Database initialization complete")


async def close_db() -> None:
    """Close database connection pool"""
    await engine.dispose()
    logger.info("Database connection closed")


async def count_rows(db: AsyncSession, model) -> int:
    """Row count for a mapped class, used by the loader's verification report."""
    result = await db.execute(select(func.count()).select_from(model))
    return int(result.scalar() or 0)


def dialect_name(db: AsyncSession) -> str:
    return db.get_bind().dialect.name
