"""
Progression Engine — advance a kanban to the next status of its chain.

Algorithm:
1. Load the kanban (NotFound if absent, InactiveKanban if soft-deleted)
2. Load its status chain entries in ascending order (InvalidState if empty)
3. Locate the current status; the next status is the following entry, or
   the first entry when the current one is last (the chain is cyclic)
4. Persist status_current + last_updated in one version-guarded update
5. Append a history row. Failure here is logged and does NOT revert step 4:
   the physical card has already moved, losing an audit row is the lesser harm.
   The kanban keeps its committed values even if the session cannot reload it.
"""

from collections.abc import Sequence
from datetime import datetime

import structlog
from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from db.models import Kanban
from kanban.errors import InactiveKanbanError, InvalidStateError, NotFoundError
from kanban.history import record_transition
from kanban.status_chains import ChainStep, get_chain_entries
from kanban.transaction import atomic

logger = structlog.get_logger()


def next_status_id(current_status: int, steps: Sequence[ChainStep]) -> int:
    """Status that follows ``current_status`` in ``steps``, wrapping to the first."""
    if not steps:
        raise InvalidStateError("Status chain has no statuses")
    for index, step in enumerate(steps):
        if step.status_id == current_status:
            return steps[(index + 1) % len(steps)].status_id
    raise InvalidStateError(f"Current status {current_status} is not a member of its status chain")


async def advance_kanban(db: AsyncSession, kanban_id: int) -> Kanban:
    """Move a kanban one step along its status chain and record the transition."""
    async with atomic(db, "kanban.advance"):
        kanban = await db.get(Kanban, kanban_id)
        if kanban is None:
            raise NotFoundError(f"Kanban {kanban_id} not found")
        if not kanban.is_active:
            raise InactiveKanbanError(f"Kanban {kanban_id} is inactive")

        steps = await get_chain_entries(db, kanban.status_chain_id)
        previous_status = kanban.status_current
        try:
            next_status = next_status_id(previous_status, steps)
        except InvalidStateError:
            logger.warning(
                "kanban.advance.invalid_chain",
                kanban_id=kanban_id,
                status_chain_id=kanban.status_chain_id,
                status_current=previous_status,
                chain_length=len(steps),
            )
            raise

        now = datetime.utcnow()
        kanban.status_current = next_status
        kanban.last_updated = now

    logger.info(
        "kanban.advanced",
        kanban_id=kanban_id,
        previous_status=previous_status,
        next_status=next_status,
        wrapped=steps[-1].status_id == previous_status,
    )

    committed = {attr.key: getattr(kanban, attr.key) for attr in inspect(Kanban).column_attrs}
    try:
        await record_transition(db, kanban_id, previous_status, next_status, at=now)
    except SQLAlchemyError as exc:
        logger.error(
            "kanban.history.write_failed",
            kanban_id=kanban_id,
            previous_status=previous_status,
            next_status=next_status,
            error=str(exc),
        )
        await _discard_history_write(db, kanban, committed)

    return kanban


async def _discard_history_write(db: AsyncSession, kanban: Kanban, committed: dict) -> None:
    """Drop the failed history row and put back the kanban's committed state without a reload."""
    try:
        await db.rollback()
    except SQLAlchemyError as exc:
        logger.warning("kanban.history.rollback_failed", kanban_id=committed["id"], error=str(exc))
    for key, value in committed.items():
        set_committed_value(kanban, key, value)
