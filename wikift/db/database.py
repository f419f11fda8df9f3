"""
Database configuration with async support
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, AsyncIterator, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from wikift.core.config import settings

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)


def build_engine(database_url: str, **kwargs) -> AsyncEngine:
    """
    Create an async engine for the given URL.
    Pool sizing only applies to server databases; SQLite uses its own pools.
    """
    options = {
        "echo": settings.DB_ECHO,
        "future": True,
    }
    if not database_url.startswith("sqlite"):
        options.update(
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_pre_ping=True,  # Verify connections before use
            pool_recycle=settings.DB_POOL_RECYCLE,
        )
    options.update(kwargs)
    return create_async_engine(database_url, **options)


def build_session_factory(engine: AsyncEngine) -> sessionmaker:
    return sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False
    )


logger.info(f"Environment: {settings.ENVIRONMENT}")

async_engine = build_engine(settings.DATABASE_URL)

# Async session factory
AsyncSessionLocal = build_session_factory(async_engine)


async def init_db(engine: Optional[AsyncEngine] = None):
    """Create all tables if they don't exist"""
    # Registers every table on SQLModel.metadata
    import wikift.models  # noqa: F401

    async with (engine or async_engine).begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    logger.info("Database tables initialised")


@asynccontextmanager
async def session_scope(session_factory: Optional[sessionmaker] = None) -> AsyncIterator[AsyncSession]:
    """
    One unit of work: commit when the block exits cleanly,
    roll back and re-raise on any error, always close the session.
    """
    factory = session_factory or AsyncSessionLocal
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Store error, rolling back transaction: {e}", exc_info=True)
            await session.rollback()
            raise
        except Exception as e:
            logger.debug(f"Rolling back transaction after {type(e).__name__}: {e}")
            await session.rollback()
            raise


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Async database session dependency, one transaction per request
    Usage:
    async def some_endpoint(db: AsyncSession = Depends(get_db)):
        ...
    """
    async with session_scope() as session:
        yield session
