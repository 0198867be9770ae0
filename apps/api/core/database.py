"""
Database connection management with connection pooling.

Every store operation opens its own short-lived AsyncSession from the
session factory, so independent reads can run concurrently.
"""
from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from core.config import settings
import logging

logger = logging.getLogger(__name__)

Base = declarative_base()


def build_engine(database_url: str, *, echo: bool = False) -> AsyncEngine:
    """
    Create an async engine.

    PostgreSQL gets the pooled configuration from settings; SQLite (tests,
    local tooling) keeps the dialect defaults.
    """
    if database_url.startswith("sqlite"):
        engine = create_async_engine(database_url, echo=echo)
    else:
        engine = create_async_engine(
            database_url,
            pool_size=settings.DB_POOL_SIZE,  # Number of connections to maintain
            max_overflow=settings.DB_MAX_OVERFLOW,  # Additional connections beyond pool_size
            pool_timeout=settings.DB_POOL_TIMEOUT,  # Seconds to wait for connection
            pool_recycle=settings.DB_POOL_RECYCLE,  # Recycle connections after this many seconds
            pool_pre_ping=True,  # Verify connections before using
            echo=echo,
        )

    # Connection pool event listeners for monitoring
    @event.listens_for(engine.sync_engine, "connect")
    def receive_connect(dbapi_conn, connection_record):
        logger.debug("New database connection established")

    @event.listens_for(engine.sync_engine, "checkin")
    def receive_checkin(dbapi_conn, connection_record):
        logger.debug("Connection returned to pool")

    return engine


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        autoflush=False,
        expire_on_commit=False,  # Prevent lazy loading issues
    )


async def check_db_connection(engine: AsyncEngine) -> bool:
    """Return True when a trivial query succeeds."""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return False
