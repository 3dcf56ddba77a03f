"""
Kanban API Dependencies

Dependency injection for DB sessions and translation of core failures.
"""

from collections.abc import AsyncGenerator

from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from db.session import AsyncSessionLocal
from kanban.errors import (
    ChainOrderError,
    ConflictError,
    InactiveKanbanError,
    KanbanError,
    NotFoundError,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async database session."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


def http_error(exc: KanbanError) -> HTTPException:
    """
    Map a core failure to an HTTP error.

    NotFound → 404, ChainOrder → 422, Conflict and InactiveKanban → 409;
    any other InvalidState or StoreFailure is a server-side failure (500).
    """
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, ChainOrderError):
        return HTTPException(status_code=422, detail=str(exc))
    if isinstance(exc, (ConflictError, InactiveKanbanError)):
        return HTTPException(status_code=409, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc))
