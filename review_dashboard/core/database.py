"""
Database Management and Connection Handling

Async engine and session management, health checks, and the retry helper
used for transient store failures.
"""

import asyncio
import contextlib
from typing import Any, AsyncGenerator, Awaitable, Callable, Dict, Optional, TypeVar
from datetime import datetime, timezone

from sqlalchemy import text
from sqlalchemy.exc import (
    DBAPIError,
    DisconnectionError,
    InterfaceError,
    OperationalError,
    SQLAlchemyError,
)
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from .config import DatabaseSettings
from .exceptions import DatabaseError, TransientStoreError
from .logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class DatabaseManager:
    """Main database connection and session manager"""

    def __init__(self, db_settings: DatabaseSettings):
        self.settings = db_settings
        self.async_engine: Optional[AsyncEngine] = None
        self.async_session_factory: Optional[async_sessionmaker] = None
        self._initialized = False

    def initialize(self):
        """Create the engine and session factory"""
        if self._initialized:
            return

        engine_kwargs: Dict[str, Any] = {
            'echo': self.settings.DB_ECHO,
            'pool_pre_ping': True,
        }

        # StaticPool keeps a single shared connection for in-memory SQLite
        if self.settings.is_sqlite:
            engine_kwargs.update({
                'poolclass': StaticPool,
                'connect_args': {"check_same_thread": False},
            })
        else:
            engine_kwargs.update({
                'pool_size': self.settings.DB_POOL_SIZE,
                'max_overflow': self.settings.DB_MAX_OVERFLOW,
                'pool_timeout': self.settings.DB_POOL_TIMEOUT,
                'pool_recycle': self.settings.DB_POOL_RECYCLE,
            })

        self.async_engine = create_async_engine(self.settings.database_url, **engine_kwargs)
        self.async_session_factory = async_sessionmaker(
            bind=self.async_engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        self._initialized = True
        logger.info("Database manager initialized", extra={
            'dialect': self.async_engine.dialect.name,
        })

    async def create_tables(self, metadata):
        """Create all tables for the given metadata"""
        self.initialize()
        async with self.async_engine.begin() as conn:
            await conn.run_sync(metadata.create_all)
        logger.info("Database tables created")

    @contextlib.asynccontextmanager
    async def get_async_session(self) -> AsyncGenerator[AsyncSession, None]:
        """Get async database session with automatic cleanup"""
        self.initialize()

        session = self.async_session_factory()
        try:
            yield session
            await session.commit()
        except SQLAlchemyError as e:
            await session.rollback()
            logger.error("Database session error", extra={'error': str(e)})
            raise
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    async def check_database_health(self) -> Dict[str, Any]:
        """Check database health and return status"""
        start_time = datetime.now(timezone.utc)
        try:
            async with self.get_async_session() as session:
                await session.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            logger.error("Database health check failed", extra={'error': str(e)})
            return {
                "status": "unhealthy",
                "error": str(e),
                "timestamp": datetime.now(timezone.utc).isoformat()
            }

        response_time = (datetime.now(timezone.utc) - start_time).total_seconds()
        return {
            "status": "healthy",
            "response_time": response_time,
            "dialect": self.async_engine.dialect.name,
            "timestamp": datetime.now(timezone.utc).isoformat()
        }

    async def close(self):
        """Close all database connections"""
        if self.async_engine:
            await self.async_engine.dispose()
            logger.info("Async database engine disposed")
        self._initialized = False


def is_transient_error(exc: BaseException) -> bool:
    """True for connection-level failures that a retry may cure"""
    if isinstance(exc, (DisconnectionError, InterfaceError, asyncio.TimeoutError, ConnectionError)):
        return True
    if isinstance(exc, OperationalError):
        return True
    if isinstance(exc, DBAPIError) and exc.connection_invalidated:
        return True
    return False


def handle_database_exception(exc: Exception, operation: Optional[str] = None) -> DatabaseError:
    """Convert database exceptions to application exceptions"""
    if isinstance(exc, DatabaseError):
        return exc
    if is_transient_error(exc):
        return TransientStoreError(f"Database connection error: {exc}", operation=operation)
    return DatabaseError(f"Database error: {exc}", operation=operation)


async def execute_with_retry(
    operation: Callable[..., Awaitable[T]],
    *args,
    max_retries: int = 3,
    retry_delay: float = 0.5,
    **kwargs
) -> T:
    """
    Run an async store operation, retrying transient failures.

    Only ``TransientStoreError`` is retried, with exponential backoff.
    Validation, transition and other errors propagate immediately.
    """
    last_exception: Optional[TransientStoreError] = None

    for attempt in range(1, max_retries + 1):
        try:
            return await operation(*args, **kwargs)
        except TransientStoreError as e:
            last_exception = e
            if attempt < max_retries:
                logger.warning("Transient store error, retrying", extra={
                    'attempt': attempt,
                    'retry_delay': retry_delay,
                    'error': e.message,
                })
                await asyncio.sleep(retry_delay)
                retry_delay *= 2
            else:
                logger.error("Store operation failed after retries", extra={
                    'attempts': attempt,
                    'error': e.message,
                })

    raise TransientStoreError(
        last_exception.message if last_exception else "Operation failed after retries",
        operation=last_exception.details.get("operation") if last_exception else None,
        attempts=max_retries,
    )


__all__ = [
    'DatabaseManager',
    'is_transient_error',
    'handle_database_exception',
    'execute_with_retry',
]
