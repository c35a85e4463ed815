"""
Database Management and Configuration.

Sets up the asynchronous database connection for the Slacker API using
SQLAlchemy's asyncio extension with SQLModel metadata.

Key Components:
- `build_engine`: creates an async engine for a URL. SQLite URLs (aiosqlite)
  are used for development and tests, PostgreSQL URLs (asyncpg) in
  production. SQLite connections get `PRAGMA foreign_keys=ON` so the same
  constraints hold on both.
- `engine` / `async_session`: the process-wide engine and session factory
  built from `DATABASE_URL`.
- `create_db_and_tables`: creates every table at startup.
- `get_database_info`: diagnostic snapshot for the monitoring endpoint.
"""

import logging

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import AsyncAdaptedQueuePool
from sqlmodel import SQLModel

import core.models  # noqa: F401  (registers tables on SQLModel.metadata)
from core.config import get_settings
from core.exceptions import DatabaseConnectionError

logger = logging.getLogger(__name__)

DATABASE_URL = get_settings().database_url


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(database_url: str, **kwargs) -> AsyncEngine:
    """Create an async engine configured for the database type in the URL"""
    if database_url.startswith("sqlite"):
        options = {
            "connect_args": {"check_same_thread": False},
            "echo": False,
        }
        options.update(kwargs)
        new_engine = create_async_engine(database_url, **options)
        event.listen(new_engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
        return new_engine

    options = {
        "poolclass": AsyncAdaptedQueuePool,
        "pool_size": 5,
        "max_overflow": 10,
        "pool_pre_ping": True,
        "echo": False,
    }
    options.update(kwargs)
    return create_async_engine(database_url, **options)


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


engine = build_engine(DATABASE_URL)
async_session = build_session_factory(engine)


async def create_db_and_tables(bind: AsyncEngine = None):
    """
    Create all tables.
    Called during application startup; a failure here is fatal.
    """
    bind = bind or engine
    try:
        async with bind.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)
        logger.info("Slacker database tables created successfully")
    except Exception as e:
        logger.error(f"Failed to create Slacker database tables: {e}")
        raise DatabaseConnectionError("create_tables", str(e)) from e


def database_type(database_url: str = None) -> str:
    database_url = database_url or DATABASE_URL
    return "postgresql" if "postgresql" in database_url else "sqlite"


async def get_database_info(session_factory: async_sessionmaker = None):
    """
    Get basic database information for health checks.
    """
    session_factory = session_factory or async_session
    try:
        async with session_factory() as session:
            result = await session.execute(text("SELECT 1"))
            result.scalar()
            connection_healthy = True
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        connection_healthy = False

    return {
        "database_url": DATABASE_URL.split("@")[1] if "@" in DATABASE_URL else "masked",
        "connection_healthy": connection_healthy,
        "database_type": database_type(),
    }
