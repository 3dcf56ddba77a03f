"""
History Ledger — append-only record of kanban status transitions.

One row per successful advance. There is no update or delete
path for these rows.
"""

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db.models import Kanban, KanbanHistory
from kanban.errors import NotFoundError


async def record_transition(
    db: AsyncSession,
    kanban_id: int,
    previous_status: int,
    next_status: int,
    at: datetime | None = None,
) -> KanbanHistory:
    """Append one transition row and commit it."""
    entry = KanbanHistory(
        kanban_id=kanban_id,
        previous_status=previous_status,
        next_status=next_status,
        timestamp=at or datetime.utcnow(),
    )
    db.add(entry)
    await db.commit()
    return entry


async def list_history(db: AsyncSession, kanban_id: int) -> list[KanbanHistory]:
    """Transitions of a kanban, oldest first."""
    if await db.get(Kanban, kanban_id) is None:
        raise NotFoundError(f"Kanban {kanban_id} not found")
    result = await db.execute(
        select(KanbanHistory)
        .where(KanbanHistory.kanban_id == kanban_id)
        .order_by(KanbanHistory.timestamp.asc(), KanbanHistory.id.asc())
    )
    return list(result.scalars().all())
