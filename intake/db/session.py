# intake/db/session.py
from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

from sqlalchemy import event, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from intake.core.config import settings
from intake.core.exceptions import DatabaseError
from intake.core.logging import get_structlog_logger

logger = get_structlog_logger(__name__)

# Global engine instance
engine: Optional[AsyncEngine] = None
AsyncSessionLocal: Optional[async_sessionmaker[AsyncSession]] = None


def create_database_engine() -> AsyncEngine:
    """Create and configure the async database engine."""
    global engine, AsyncSessionLocal

    if engine is not None:
        return engine

    if settings.is_testing:
        # Use NullPool for tests to ensure clean state
        engine = create_async_engine(
            settings.database_url,
            poolclass=NullPool,
            echo=settings.debug,
            connect_args={"server_settings": {"jit": "off"}},
        )
    else:
        engine = create_async_engine(
            settings.database_url,
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
            pool_timeout=settings.database_pool_timeout,
            pool_recycle=settings.database_pool_recycle,
            pool_pre_ping=True,
            echo=settings.debug,
            connect_args={
                "command_timeout": 60,
                "server_settings": {
                    "application_name": "lead_intake",
                    "jit": "off",
                },
            },
        )

    AsyncSessionLocal = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    @event.listens_for(engine.sync_engine, "connect")
    def set_search_path(dbapi_connection, connection_record):
        """Set PostgreSQL search path on connection."""
        cursor = dbapi_connection.cursor()
        cursor.execute(f'SET search_path TO "{settings.database_schema}"')
        cursor.close()

    logger.info(
        "database.engine.created",
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
        testing=settings.is_testing,
    )

    return engine


def _statement_timeout_sql():
    return text(f"SET statement_timeout = {int(settings.database_statement_timeout) * 1000}")


async def apply_statement_timeout(session: AsyncSession) -> None:
    """Bound every query on this session's connection. Opens the connection."""
    await session.execute(_statement_timeout_sql())


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session. The connection is opened on first use, not here."""
    if AsyncSessionLocal is None:
        create_database_engine()

    session = AsyncSessionLocal()

    try:
        yield session

    except (SQLAlchemyError, OSError) as e:
        logger.error("database.session_error", error_type=type(e).__name__, error=str(e))
        await session.rollback()
        raise DatabaseError(
            message="Database session error",
            details={"error": str(e)},
        ) from e

    finally:
        await session.close()


@asynccontextmanager
async def transaction_session() -> AsyncGenerator[AsyncSession, None]:
    """Context manager for database transactions."""
    if AsyncSessionLocal is None:
        create_database_engine()

    session = AsyncSessionLocal()

    try:
        await apply_statement_timeout(session)

        yield session

        await session.commit()

    except (SQLAlchemyError, OSError) as e:
        await session.rollback()
        logger.error("database.transaction_error", error_type=type(e).__name__, error=str(e))
        raise DatabaseError(
            message="Database transaction failed",
            details={"error": str(e)},
        ) from e

    finally:
        await session.close()


async def health_check() -> Dict[str, Any]:
    """Check database health."""
    if engine is None:
        create_database_engine()

    try:
        started = time.perf_counter()
        async with engine.connect() as conn:
            result = await conn.execute(text("SELECT version()"))
            row = result.fetchone()
        response_time = (time.perf_counter() - started) * 1000

        version = row[0] if row else "unknown"
        return {
            "status": "healthy",
            "response_time_ms": f"{response_time:.2f}",
            "version": version.split()[1] if len(version.split()) > 1 else version,
        }

    except Exception as e:
        logger.error("database.health_check_failed", error=str(e))
        return {
            "status": "unhealthy",
            "error": type(e).__name__,
        }


# Initialize engine on module import
create_database_engine()
