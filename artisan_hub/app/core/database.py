from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine

from artisan_hub.app.core.base import Base  # noqa: F401 - re-exported for compatibility
from artisan_hub.app.core.settings import Settings


def create_engine(settings: Settings) -> AsyncEngine:
    """Create the async engine. Pool sizing only applies to server databases."""
    url = settings.db_url
    if url.startswith("sqlite"):
        return create_async_engine(url, echo=False)
    return create_async_engine(
        url=url,
        echo=False,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_pre_ping=True,  # check connection before use
        pool_recycle=settings.DB_POOL_RECYCLE,
        pool_timeout=30,
    )


def create_sessionmaker(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(engine, expire_on_commit=False)
