"""
Dashboards Router — per-account view of active kanbans grouped by product.
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_db, http_error
from kanban.dashboard import Dashboard, DashboardRole, build_dashboard
from kanban.errors import KanbanError

router = APIRouter(prefix="/api/v1/dashboards", tags=["dashboards"])


class DashboardCardResponse(BaseModel):
    kanban_id: int
    product_id: str | None
    product_name: str | None
    container_type: str
    quantity: float
    status_current: int
    status_name: str | None
    status_color: str | None
    actor_role: str | None
    counterparty_name: str | None

    model_config = {"from_attributes": True}


class DashboardResponse(BaseModel):
    account_id: int
    role: DashboardRole
    total_kanbans: int
    kanbans_by_product: dict[str, list[DashboardCardResponse]]

    model_config = {"from_attributes": True}


async def _dashboard(db: AsyncSession, account_id: int, role: DashboardRole) -> Dashboard:
    try:
        return await build_dashboard(db, account_id, role)
    except KanbanError as exc:
        raise http_error(exc) from exc


@router.get("/customer/{account_id}", response_model=DashboardResponse)
async def customer_dashboard(account_id: int, db: AsyncSession = Depends(get_db)):
    """Active kanbans the account receives, with each supplier's name."""
    return await _dashboard(db, account_id, DashboardRole.CUSTOMER)


@router.get("/supplier/{account_id}", response_model=DashboardResponse)
async def supplier_dashboard(account_id: int, db: AsyncSession = Depends(get_db)):
    """Active kanbans the account supplies, with each customer's name."""
    return await _dashboard(db, account_id, DashboardRole.SUPPLIER)
