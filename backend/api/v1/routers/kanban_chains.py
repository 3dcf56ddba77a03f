"""
Kanban Chains Router — replenishment agreements and their kanban pools.

Creating a chain also creates its initial kanbans in the same transaction.
Top-ups (PATCH with add_kanbans, or POST /{id}/kanbans) run separately and
never roll back the chain itself.
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_db, http_error
from api.v1.routers.kanbans import KanbanResponse
from kanban.chains import (
    KanbanChainChanges,
    KanbanChainSpec,
    add_kanbans,
    create_chain_with_initial_kanbans,
    delete_kanban_chain,
    get_kanban_chain,
    list_kanban_chains,
    update_kanban_chain,
)
from kanban.errors import KanbanError

router = APIRouter(prefix="/api/v1/kanban-chains", tags=["kanban-chains"])


# ─── Schemas ────────────────────────────────────────────────────────────────


class KanbanChainCreate(BaseModel):
    customer_account_id: int
    product_id: str = Field(..., min_length=1, max_length=100)
    supplier_account_id: int
    status_chain_id: int
    leadtime_days: int = Field(0, ge=0)
    quantity: float = Field(0, ge=0)
    container_type: str = Field("", max_length=100)
    target_active_kanban_count: int = Field(0, ge=0)
    initial_kanbans: int | None = Field(
        None,
        ge=0,
        description="Kanbans to create now; defaults to target_active_kanban_count",
    )

    def to_spec(self) -> KanbanChainSpec:
        return KanbanChainSpec(**self.model_dump(exclude={"initial_kanbans"}))


class KanbanChainUpdate(KanbanChainChanges):
    add_kanbans: int = Field(0, ge=0, description="Extra kanbans to create after the update")


class TopUpRequest(BaseModel):
    count: int = Field(..., ge=1)


class KanbanChainResponse(BaseModel):
    id: int
    customer_account_id: int
    product_id: str
    supplier_account_id: int
    leadtime_days: int
    quantity: float
    container_type: str
    status_chain_id: int
    target_active_kanban_count: int

    model_config = {"from_attributes": True}


class KanbanChainSummary(KanbanChainResponse):
    customer_name: str | None
    supplier_name: str | None
    product_name: str | None
    active_kanban_count: int


# ─── Endpoints ──────────────────────────────────────────────────────────────


@router.get("/", response_model=list[KanbanChainSummary])
async def list_chains(db: AsyncSession = Depends(get_db)):
    """List kanban chains with account and product names."""
    return await list_kanban_chains(db)


@router.post("/", response_model=KanbanChainResponse, status_code=201)
async def create_chain(body: KanbanChainCreate, db: AsyncSession = Depends(get_db)):
    """Create a kanban chain together with its initial kanbans."""
    try:
        return await create_chain_with_initial_kanbans(db, body.to_spec(), body.initial_kanbans)
    except KanbanError as exc:
        raise http_error(exc) from exc


@router.get("/{kanban_chain_id}", response_model=KanbanChainResponse)
async def get_chain(kanban_chain_id: int, db: AsyncSession = Depends(get_db)):
    """Get a single kanban chain by ID."""
    try:
        return await get_kanban_chain(db, kanban_chain_id)
    except KanbanError as exc:
        raise http_error(exc) from exc


@router.patch("/{kanban_chain_id}", response_model=KanbanChainResponse)
async def update_chain(kanban_chain_id: int, body: KanbanChainUpdate, db: AsyncSession = Depends(get_db)):
    """Edit a kanban chain and optionally add kanbans to it."""
    changes = KanbanChainChanges(**body.model_dump(exclude={"add_kanbans"}, exclude_unset=True))
    try:
        return await update_kanban_chain(db, kanban_chain_id, changes, add_kanbans_count=body.add_kanbans)
    except KanbanError as exc:
        raise http_error(exc) from exc


@router.delete("/{kanban_chain_id}", status_code=204)
async def delete_chain(kanban_chain_id: int, db: AsyncSession = Depends(get_db)):
    """Delete a kanban chain that owns no kanbans."""
    try:
        await delete_kanban_chain(db, kanban_chain_id)
    except KanbanError as exc:
        raise http_error(exc) from exc


@router.post("/{kanban_chain_id}/kanbans", response_model=list[KanbanResponse], status_code=201)
async def top_up_chain(kanban_chain_id: int, body: TopUpRequest, db: AsyncSession = Depends(get_db)):
    """Add kanbans to an existing chain."""
    try:
        return await add_kanbans(db, kanban_chain_id, body.count)
    except KanbanError as exc:
        raise http_error(exc) from exc
