"""Unit-of-work helper shared by the kanban core.

Every multi-row write in the core runs inside ``atomic``: the block either
commits as a whole or the session is rolled back and a typed failure is
raised.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from kanban.errors import ConflictError, KanbanError, StoreFailureError

logger = structlog.get_logger()


@asynccontextmanager
async def atomic(db: AsyncSession, operation: str) -> AsyncIterator[AsyncSession]:
    """Commit the enclosed work, or roll it back and raise a KanbanError."""
    try:
        yield db
        await db.commit()
    except KanbanError:
        await db.rollback()
        raise
    except StaleDataError as exc:
        await db.rollback()
        logger.warning(f"{operation}.stale_write", error=str(exc))
        raise ConflictError(f"{operation}: row was modified concurrently") from exc
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error(f"{operation}.store_failure", error=str(exc))
        raise StoreFailureError(f"{operation} failed: {exc}") from exc
