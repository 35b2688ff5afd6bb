"""
Database Connection Management

Async SQLAlchemy 2.0 engine and session lifecycle. ``get_db()`` is the unit
of work used by every loader: it commits when the block finishes and rolls
back everything written inside it when the block raises.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import structlog
from sqlalchemy import event, text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from supermarket_dw.config import get_settings

logger = structlog.get_logger(__name__)
settings = get_settings()

# Global engine and session factory
_engine: Optional[AsyncEngine] = None
_async_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    """SQLite only enforces REFERENCES clauses when asked to, per connection"""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


async def init_database(url: Optional[str] = None) -> AsyncEngine:
    """
    Initialize the database engine and session factory.

    Args:
        url: Async database URL; defaults to the configured one

    Returns:
        AsyncEngine: The initialized database engine
    """
    global _engine, _async_session_factory

    if _engine is not None:
        logger.warning("Database already initialized")
        return _engine

    database_url = make_url(url or settings.database.async_url)

    engine_config = {
        "echo": settings.database.echo,
        "pool_pre_ping": True,  # Verify connections before use
    }
    if database_url.get_backend_name() != "sqlite":
        # asyncpg keeps its own connections; one per unit of work is enough
        engine_config["poolclass"] = NullPool

    _engine = create_async_engine(database_url, **engine_config)

    if database_url.get_backend_name() == "sqlite":
        event.listen(_engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

    _async_session_factory = async_sessionmaker(
        bind=_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    # Verify connection
    try:
        async with _engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
        logger.info(
            "Database connection established",
            backend=database_url.get_backend_name(),
            database=database_url.database,
        )
    except Exception as e:
        logger.error("Failed to connect to database", error=str(e))
        await _engine.dispose()
        _engine = None
        _async_session_factory = None
        raise

    return _engine


async def close_database() -> None:
    """Dispose of the engine and forget the session factory."""
    global _engine, _async_session_factory

    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _async_session_factory = None
        logger.info("Database connection pool closed")


def get_engine() -> AsyncEngine:
    """
    Get the database engine.

    Raises:
        RuntimeError: If database is not initialized
    """
    if _engine is None:
        raise RuntimeError("Database not initialized. Call init_database() first.")
    return _engine


@asynccontextmanager
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Open one unit of work.

    Everything executed on the yielded session becomes visible to other
    readers only when the block exits normally. Any exception rolls the whole
    unit back and is re-raised to the caller.

    Example:
        async with get_db() as db:
            await db.execute(insert(Category), rows)
    """
    if _async_session_factory is None:
        logger.error("Database not initialized when get_db() called")
        raise RuntimeError("Database not initialized. Call init_database() first.")

    session = _async_session_factory()
    try:
        yield session
        await session.commit()
        logger.debug("Database session committed successfully")
    except Exception as e:
        logger.error("Database session error, rolling back", error=str(e), error_type=type(e).__name__)
        await session.rollback()
        raise
    finally:
        await session.close()


async def get_db_dependency() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency for database sessions.

    Example:
        @router.get("/audit")
        async def audit(db: AsyncSession = Depends(get_db_dependency)):
            ...
    """
    async with get_db() as session:
        yield session


async def relax_timeouts(session: AsyncSession) -> None:
    """
    Lift execution and idle limits for the current unit of work.

    The fact load runs as one long transaction; server-side ceilings that
    would abort it part way are switched off for its duration.
    """
    dialect = session.bind.dialect.name
    pipeline = settings.pipeline

    if dialect == "postgresql":
        statements = [
            "SET LOCAL statement_timeout = 0",
            "SET LOCAL idle_in_transaction_session_timeout = 0",
        ]
    elif dialect in ("mysql", "mariadb"):
        statements = [
            f"SET SESSION wait_timeout = {int(pipeline.session_wait_timeout)}",
            f"SET SESSION interactive_timeout = {int(pipeline.session_wait_timeout)}",
            f"SET SESSION net_read_timeout = {int(pipeline.net_timeout)}",
            f"SET SESSION net_write_timeout = {int(pipeline.net_timeout)}",
            "SET SESSION max_execution_time = 0",
        ]
    else:
        statements = []

    for statement in statements:
        await session.execute(text(statement))

    logger.debug("Session timeouts relaxed", dialect=dialect, statements=len(statements))


async def check_database_health() -> dict:
    """
    Check database health status.

    Returns:
        dict: Health status with latency information
    """
    import time

    try:
        start = time.perf_counter()
        async with get_db() as db:
            await db.execute(text("SELECT 1"))
        latency_ms = (time.perf_counter() - start) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(latency_ms, 2),
        }
    except Exception as e:
        return {
            "status": "unhealthy",
            "error": str(e),
        }
