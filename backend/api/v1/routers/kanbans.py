"""
Kanbans Router — individual cards, their progression and history.

  - POST /{id}/advance moves the card to the next status of its chain
    (wrapping to the first) and appends a history row
  - PATCH /{id} edits lead time / container type / quantity only
  - DELETE /{id} is a soft delete (is_active = false)
"""

from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_db, http_error
from kanban.chains import add_kanbans
from kanban.editor import (
    KanbanFieldMask,
    deactivate_kanban,
    get_kanban,
    list_kanbans,
    update_editable_fields,
)
from kanban.errors import KanbanError
from kanban.history import list_history
from kanban.progression import advance_kanban

router = APIRouter(prefix="/api/v1/kanbans", tags=["kanbans"])


# ─── Schemas ────────────────────────────────────────────────────────────────


class KanbanCreate(BaseModel):
    """Add a single kanban to an existing kanban chain."""
    kanban_chain_id: int


class KanbanResponse(BaseModel):
    id: int
    kanban_chain_id: int
    status_chain_id: int
    status_current: int
    leadtime_days: int
    container_type: str
    quantity: float
    is_active: bool
    last_updated: datetime

    model_config = {"from_attributes": True}


class KanbanHistoryResponse(BaseModel):
    id: int
    kanban_id: int
    previous_status: int
    next_status: int
    timestamp: datetime

    model_config = {"from_attributes": True}


# ─── Endpoints ──────────────────────────────────────────────────────────────


@router.get("/", response_model=list[KanbanResponse])
async def list_kanban_cards(
    product_id: str | None = None,
    include_inactive: bool = False,
    db: AsyncSession = Depends(get_db),
):
    """List active kanbans, optionally filtered by product."""
    return await list_kanbans(db, product_id=product_id, include_inactive=include_inactive)


@router.post("/", response_model=KanbanResponse, status_code=201)
async def create_kanban(body: KanbanCreate, db: AsyncSession = Depends(get_db)):
    """Create one kanban on the first status of its chain."""
    try:
        created = await add_kanbans(db, body.kanban_chain_id, 1)
    except KanbanError as exc:
        raise http_error(exc) from exc
    return created[0]


@router.get("/{kanban_id}", response_model=KanbanResponse)
async def get_kanban_card(kanban_id: int, db: AsyncSession = Depends(get_db)):
    """Get a kanban by ID, including soft-deleted ones."""
    try:
        return await get_kanban(db, kanban_id)
    except KanbanError as exc:
        raise http_error(exc) from exc


@router.patch("/{kanban_id}", response_model=KanbanResponse)
async def update_kanban_fields(kanban_id: int, mask: KanbanFieldMask, db: AsyncSession = Depends(get_db)):
    """Edit lead time, container type or quantity. Unknown fields are rejected."""
    try:
        return await update_editable_fields(db, kanban_id, mask)
    except KanbanError as exc:
        raise http_error(exc) from exc


@router.delete("/{kanban_id}", response_model=KanbanResponse)
async def delete_kanban(kanban_id: int, db: AsyncSession = Depends(get_db)):
    """Soft-delete a kanban."""
    try:
        return await deactivate_kanban(db, kanban_id)
    except KanbanError as exc:
        raise http_error(exc) from exc


@router.post("/{kanban_id}/advance", response_model=KanbanResponse)
async def advance_kanban_status(kanban_id: int, db: AsyncSession = Depends(get_db)):
    """Advance a kanban to the next status of its status chain."""
    try:
        return await advance_kanban(db, kanban_id)
    except KanbanError as exc:
        raise http_error(exc) from exc


@router.get("/{kanban_id}/history", response_model=list[KanbanHistoryResponse])
async def get_kanban_history(kanban_id: int, db: AsyncSession = Depends(get_db)):
    """Status transitions of a kanban, oldest first."""
    try:
        return await list_history(db, kanban_id)
    except KanbanError as exc:
        raise http_error(exc) from exc
