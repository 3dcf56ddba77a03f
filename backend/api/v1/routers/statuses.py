"""
Statuses Router — CRUD for kanban statuses (name + display colour).
"""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_db
from db.models import Kanban, KanbanHistory, Status, StatusChainEntry

router = APIRouter(prefix="/api/v1/statuses", tags=["statuses"])


# ─── Schemas ────────────────────────────────────────────────────────────────


class StatusCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    color: str = Field("#cccccc", max_length=20)


class StatusUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=100)
    color: str | None = Field(None, max_length=20)


class StatusResponse(BaseModel):
    status_id: int
    name: str
    color: str

    model_config = {"from_attributes": True}


# ─── Endpoints ──────────────────────────────────────────────────────────────


@router.get("/", response_model=list[StatusResponse])
async def list_statuses(db: AsyncSession = Depends(get_db)):
    """List all statuses."""
    result = await db.execute(select(Status).order_by(Status.status_id))
    return result.scalars().all()


@router.get("/{status_id}", response_model=StatusResponse)
async def get_status(status_id: int, db: AsyncSession = Depends(get_db)):
    """Get a single status by ID."""
    status = await db.get(Status, status_id)
    if not status:
        raise HTTPException(status_code=404, detail="Status not found")
    return status


@router.post("/", response_model=StatusResponse, status_code=201)
async def create_status(status: StatusCreate, db: AsyncSession = Depends(get_db)):
    """Create a new status."""
    db_status = Status(**status.model_dump())
    db.add(db_status)
    await db.commit()
    await db.refresh(db_status)
    return db_status


@router.patch("/{status_id}", response_model=StatusResponse)
async def update_status(status_id: int, update: StatusUpdate, db: AsyncSession = Depends(get_db)):
    """Rename or recolour a status."""
    status = await db.get(Status, status_id)
    if not status:
        raise HTTPException(status_code=404, detail="Status not found")

    for field, value in update.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(status, field, value)

    await db.commit()
    await db.refresh(status)
    return status


@router.delete("/{status_id}", status_code=204)
async def delete_status(status_id: int, db: AsyncSession = Depends(get_db)):
    """Delete a status that no chain, kanban or history row references."""
    status = await db.get(Status, status_id)
    if not status:
        raise HTTPException(status_code=404, detail="Status not found")

    in_chains = await db.scalar(
        select(func.count()).select_from(StatusChainEntry).where(StatusChainEntry.status_id == status_id)
    )
    in_kanbans = await db.scalar(select(func.count(Kanban.id)).where(Kanban.status_current == status_id))
    in_history = await db.scalar(
        select(func.count(KanbanHistory.id)).where(
            or_(KanbanHistory.previous_status == status_id, KanbanHistory.next_status == status_id)
        )
    )
    if in_chains or in_kanbans or in_history:
        raise HTTPException(status_code=409, detail="Status is in use")

    await db.delete(status)
    await db.commit()
