"""Database connection and session management."""

from typing import AsyncGenerator
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool
from fastapi import HTTPException
from video_library.config import settings
from video_library.library.errors import CatalogError
from video_library.logging_config import logger

# Convert postgres:// to postgresql+asyncpg://
DATABASE_URL = (
    settings.database_url
    .replace("postgres://", "postgresql://", 1)
    .replace("postgresql://", "postgresql+asyncpg://", 1)
)

# Create async engine
if settings.debug:
    # NullPool for debug mode - no pooling parameters needed
    engine = create_async_engine(
        DATABASE_URL,
        echo=True,
        poolclass=NullPool,
    )
else:
    # QueuePool for production with connection pooling
    engine = create_async_engine(
        DATABASE_URL,
        echo=False,
        pool_pre_ping=True,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )

# Create async session maker
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency to get database session.

    The session commits once the request handler returns, so every write a
    handler makes (an import plus its usage record, for instance) lands
    together or not at all.

    Usage:
        @router.get("/endpoint")
        async def endpoint(db: AsyncSession = Depends(get_db)):
            ...
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except (HTTPException, CatalogError):
            # Application-level errors (auth, validation, not found)
            # Rollback any uncommitted changes but don't log as database error
            await session.rollback()
            raise
        except Exception as e:
            # Actual database or unexpected errors
            await session.rollback()
            logger.error("Database session error", error=str(e), exc_info=True)
            raise
        finally:
            await session.close()


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Session factory for work that manages its own transactions (batch import)."""
    return AsyncSessionLocal


async def init_db():
    """Verify the database connection on startup."""
    try:
        async with engine.begin() as conn:
            # Test connection
            await conn.execute(text("SELECT 1"))
            logger.info("Database connection established", url=DATABASE_URL.split("@")[-1])
    except Exception as e:
        logger.error("Failed to connect to database", error=str(e), exc_info=True)
        raise


async def close_db():
    """Close database connection pool."""
    await engine.dispose()
    logger.info("Database connection closed")
