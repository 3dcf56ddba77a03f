"""
Status Chains Router — status templates and their ordered entries.

Entry batches are validated for a strict order (no repeated status, no
repeated order value) and applied all-or-nothing.
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_db, http_error
from db.models import ActorRole
from kanban.errors import KanbanError
from kanban.status_chains import (
    EntrySpec,
    attach_entries,
    create_status_chain,
    delete_status_chain,
    get_chain_entries,
    get_status_chain,
    list_status_chains,
    rename_status_chain,
    update_entries,
)

router = APIRouter(prefix="/api/v1/status-chains", tags=["status-chains"])


# ─── Schemas ────────────────────────────────────────────────────────────────


class ChainEntryRequest(BaseModel):
    status_id: int
    order: int
    actor_role: ActorRole = ActorRole.SUPPLIER

    def to_spec(self) -> EntrySpec:
        return EntrySpec(status_id=self.status_id, order=self.order, actor_role=self.actor_role)


class StatusChainCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    statuses: list[ChainEntryRequest] = []


class StatusChainUpdate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)


class StatusChainResponse(BaseModel):
    status_chain_id: int
    name: str

    model_config = {"from_attributes": True}


class ChainStepResponse(BaseModel):
    status_id: int
    order: int
    actor_role: str
    status_name: str | None
    status_color: str | None

    model_config = {"from_attributes": True}


# ─── Endpoints ──────────────────────────────────────────────────────────────


@router.get("/", response_model=list[StatusChainResponse])
async def list_chains(db: AsyncSession = Depends(get_db)):
    """List all status chains."""
    return await list_status_chains(db)


@router.post("/", response_model=StatusChainResponse, status_code=201)
async def create_chain(body: StatusChainCreate, db: AsyncSession = Depends(get_db)):
    """Create a status chain, optionally with its ordered statuses."""
    try:
        return await create_status_chain(db, body.name, [entry.to_spec() for entry in body.statuses])
    except KanbanError as exc:
        raise http_error(exc) from exc


@router.get("/{status_chain_id}", response_model=StatusChainResponse)
async def get_chain(status_chain_id: int, db: AsyncSession = Depends(get_db)):
    """Get a single status chain by ID."""
    try:
        return await get_status_chain(db, status_chain_id)
    except KanbanError as exc:
        raise http_error(exc) from exc


@router.patch("/{status_chain_id}", response_model=StatusChainResponse)
async def rename_chain(status_chain_id: int, body: StatusChainUpdate, db: AsyncSession = Depends(get_db)):
    """Rename a status chain."""
    try:
        return await rename_status_chain(db, status_chain_id, body.name)
    except KanbanError as exc:
        raise http_error(exc) from exc


@router.delete("/{status_chain_id}", status_code=204)
async def delete_chain(status_chain_id: int, db: AsyncSession = Depends(get_db)):
    """Delete a status chain no kanban chain or kanban references."""
    try:
        await delete_status_chain(db, status_chain_id)
    except KanbanError as exc:
        raise http_error(exc) from exc


@router.get("/{status_chain_id}/statuses", response_model=list[ChainStepResponse])
async def list_chain_statuses(status_chain_id: int, db: AsyncSession = Depends(get_db)):
    """Statuses of a chain in traversal order."""
    try:
        await get_status_chain(db, status_chain_id)
    except KanbanError as exc:
        raise http_error(exc) from exc
    return await get_chain_entries(db, status_chain_id)


@router.post("/{status_chain_id}/statuses", response_model=list[ChainStepResponse], status_code=201)
async def attach_chain_statuses(
    status_chain_id: int,
    body: list[ChainEntryRequest],
    db: AsyncSession = Depends(get_db),
):
    """Append statuses to a chain as one batch."""
    try:
        return await attach_entries(db, status_chain_id, [entry.to_spec() for entry in body])
    except KanbanError as exc:
        raise http_error(exc) from exc


@router.put("/{status_chain_id}/statuses", response_model=list[ChainStepResponse])
async def update_chain_statuses(
    status_chain_id: int,
    body: list[ChainEntryRequest],
    db: AsyncSession = Depends(get_db),
):
    """Overwrite order / actor role of existing chain entries as one batch."""
    try:
        return await update_entries(db, status_chain_id, [entry.to_spec() for entry in body])
    except KanbanError as exc:
        raise http_error(exc) from exc
