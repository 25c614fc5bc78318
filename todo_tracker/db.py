import asyncio
from typing import AsyncGenerator, Optional

import structlog
from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from .config import Settings
from .models import Base

log = structlog.get_logger(__name__)


def create_engine(settings: Settings) -> AsyncEngine:
    """Create the async engine, tuned for where the database lives"""
    url = settings.database_url

    if not url.startswith("postgresql+asyncpg://"):
        # sqlite and friends take no pool or server settings
        return create_async_engine(url, future=True)

    if settings.is_railway:
        # Railway PostgreSQL can handle more connections
        pool_settings = {
            "pool_size": 10,
            "max_overflow": 20,
            "pool_timeout": 30,
            "pool_recycle": 3600,
        }
    else:
        pool_settings = {
            "pool_size": 5,
            "max_overflow": 10,
            "pool_timeout": 20,
            "pool_recycle": 300,
        }

    log.info("database_engine_created", railway=settings.is_railway, url=url[:30] + "...")
    return create_async_engine(
        url,
        echo=False,
        future=True,
        pool_pre_ping=True,
        connect_args={"server_settings": {"application_name": "todo_tracker"}},
        **pool_settings,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_db(engine: AsyncEngine, max_retries: int = 3, retry_delay: float = 5) -> None:
    """Create all tables, retrying while the database comes up"""
    for attempt in range(1, max_retries + 1):
        try:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            log.info("database_initialized", attempt=attempt)
            return
        except Exception as e:
            log.warning("database_init_failed", attempt=attempt, max_retries=max_retries, error=str(e))
            if attempt == max_retries:
                raise
            await asyncio.sleep(retry_delay)


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Dependency to get database session"""
    session_factory: Optional[async_sessionmaker] = getattr(request.app.state, "session_factory", None)
    if session_factory is None:
        raise RuntimeError("Database not available")

    async with session_factory() as session:
        yield session


async def close_db(engine: Optional[AsyncEngine]) -> None:
    if engine is not None:
        await engine.dispose()
        log.info("database_closed")
