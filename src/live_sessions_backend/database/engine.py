'''
Database Engine file.
1- Engine: creates and manages the connection pool
2- AsyncSessionLocal: Session Creator (with engine as bind)
3- get_db_session: context manager that creates, yields and closes a session.
'''
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, AsyncEngine, async_sessionmaker

from ..common.config import settings
from ..common.logger import log
from .models import Base

# We define them as None. They will be created by the app's lifespan.
engine: AsyncEngine | None = None
AsyncSessionLocal: async_sessionmaker[AsyncSession] | None = None

def create_db_engine_and_session_factory(database_url: Optional[str] = None) -> async_sessionmaker[AsyncSession]:
    """
    Creates the engine and session factory.
    This is called by the app's lifespan event when a database is configured.
    """
    global engine, AsyncSessionLocal

    url = database_url or settings.database_url
    log.info("Creating database engine for URL...")
    try:
        # SQLite (used by tests) has no connection pool options.
        pool_options = {}
        if not url.startswith("sqlite"):
            pool_options = dict(
                pool_size=5,
                max_overflow=10,
                pool_timeout=30,
                pool_recycle=-1,
                pool_pre_ping=True
            )

        # 1. Create the asynchronous engine
        engine = create_async_engine(url, echo=False, **pool_options)

        # 2. Create the AsyncSessionLocal factory
        AsyncSessionLocal = async_sessionmaker(
            bind=engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autocommit=False,
            autoflush=False,
        )
        log.info("Async database engine and session factory created successfully.")
    except Exception as e:
        log.critical(f"Failed to create async database engine: {e}", exc_info=True)
        raise
    return AsyncSessionLocal

async def create_tables():
    """Creates the availability tables if they do not exist yet."""
    if engine is None:
        raise RuntimeError("Database engine is not available.")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    log.info("Database tables are in place.")

async def dispose_db_engine():
    """Disposes of the engine. Called by the app's lifespan."""
    global engine, AsyncSessionLocal
    if engine:
        await engine.dispose()
        log.info("Database engine disposed.")
    engine = None
    AsyncSessionLocal = None

@asynccontextmanager
async def get_db_session(
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None
) -> AsyncGenerator[AsyncSession, None]:
    """
    Provides one unit of work.

    1. A session is created from the factory.
    2. The session is yielded to the caller.
    3. The session is committed if the block succeeds.
    4. The session is rolled back if an exception occurs.
    5. The session is always closed.
    """
    factory = session_factory or AsyncSessionLocal
    if factory is None:
        log.error("AsyncSessionLocal is not initialized. App lifespan may not have run.")
        raise RuntimeError("Database session factory is not available.")

    session = factory() # Create a new session
    try:
        yield session
        await session.commit()  # Commit on success
    except Exception as e:
        await session.rollback() # Rollback on error
        log.error(f"Database session rolled back due to error: {e}")
        raise # Re-raise the exception so the caller can handle it
    finally:
        await session.close() # Always close the session
