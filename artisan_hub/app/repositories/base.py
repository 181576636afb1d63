"""
Shared pieces of the storage layer.

- BaseRepository: every store wraps the request-scoped AsyncSession.
- storage_operation: turns SQLAlchemy faults into StorageFailure, logged once
  with full context.
- atomic: the single transaction boundary for multi-write operations.
  Commits on success, rolls back on any exception.
"""
import functools
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from artisan_hub.app.core.exceptions import StorageFailure
from artisan_hub.app.core.logging import get_logger
from artisan_hub.app.core.metrics import storage_failures_total

logger = get_logger(__name__)


class BaseRepository:
    def __init__(self, session: AsyncSession):
        self.session = session


def _storage_failure(operation: str, exc: SQLAlchemyError) -> StorageFailure:
    logger.error(
        "Storage operation failed",
        operation=operation,
        error_type=type(exc).__name__,
        error=str(exc),
        exc_info=exc,
    )
    storage_failures_total.labels(operation=operation).inc()
    return StorageFailure(operation)


def violates(exc: IntegrityError, *constraints: str) -> bool:
    """
    True if the driver error names one of the given constraints.

    PostgreSQL reports the constraint or index name; SQLite reports
    ``table.column`` for unique failures, so callers pass both forms.
    """
    message = str(exc.orig)
    return any(name in message for name in constraints)


def storage_operation(operation: str):
    """Decorator for async repository methods."""

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except SQLAlchemyError as e:
                raise _storage_failure(operation, e) from e

        return wrapper

    return decorator


@asynccontextmanager
async def atomic(session: AsyncSession, operation: str) -> AsyncIterator[AsyncSession]:
    """
    Run the enclosed writes as one all-or-nothing unit.

    Usage:
        async with atomic(session, "upgrade_requests.approve"):
            await repo_a.write(...)
            await repo_b.write(...)
    """
    try:
        yield session
        await session.commit()
    except SQLAlchemyError as e:
        await session.rollback()
        raise _storage_failure(operation, e) from e
    except BaseException:
        await session.rollback()
        raise
