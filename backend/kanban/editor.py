"""
Kanban reads, partial field edits and soft delete.

Only lead time, container type and quantity can be edited here.
``status_current`` moves exclusively through the progression engine, since
status transitions are audited events and field edits are not.
"""

import structlog
from pydantic import BaseModel, ConfigDict, Field, field_validator
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db.models import Kanban, KanbanChain
from kanban.errors import NotFoundError
from kanban.transaction import atomic

logger = structlog.get_logger()


class KanbanFieldMask(BaseModel):
    """Editable kanban fields, each optional. Unknown keys and explicit nulls are rejected."""

    model_config = ConfigDict(extra="forbid")

    leadtime_days: int | None = Field(None, ge=0)
    container_type: str | None = Field(None, max_length=100)
    quantity: float | None = Field(None, ge=0)

    @field_validator("*", mode="before")
    @classmethod
    def reject_null(cls, value):
        # omitted means unchanged; null would blank a NOT NULL column
        if value is None:
            raise ValueError("null is not allowed; omit the field to leave it unchanged")
        return value


async def get_kanban(db: AsyncSession, kanban_id: int) -> Kanban:
    """Lookup by id; soft-deleted kanbans are still returned."""
    kanban = await db.get(Kanban, kanban_id)
    if kanban is None:
        raise NotFoundError(f"Kanban {kanban_id} not found")
    return kanban


async def list_kanbans(
    db: AsyncSession,
    product_id: str | None = None,
    include_inactive: bool = False,
) -> list[Kanban]:
    query = select(Kanban)
    if product_id:
        query = query.join(KanbanChain, KanbanChain.id == Kanban.kanban_chain_id).where(
            KanbanChain.product_id == product_id
        )
    if not include_inactive:
        query = query.where(Kanban.is_active.is_(True))
    result = await db.execute(query.order_by(Kanban.id))
    return list(result.scalars().all())


async def update_editable_fields(db: AsyncSession, kanban_id: int, mask: KanbanFieldMask) -> Kanban:
    """Apply the fields set in ``mask``; everything else is left untouched."""
    values = mask.model_dump(exclude_unset=True)

    async with atomic(db, "kanban.update_fields"):
        kanban = await get_kanban(db, kanban_id)
        for field, value in values.items():
            setattr(kanban, field, value)

    logger.info("kanban.fields_updated", kanban_id=kanban_id, fields=sorted(values))
    return kanban


async def deactivate_kanban(db: AsyncSession, kanban_id: int) -> Kanban:
    """Soft delete: the row stays queryable by id but leaves active listings."""
    async with atomic(db, "kanban.deactivate"):
        kanban = await get_kanban(db, kanban_id)
        kanban.is_active = False

    logger.info("kanban.deactivated", kanban_id=kanban_id)
    return kanban
