"""
Kanban Chains — standing replenishment agreements and their kanban pools.

A kanban chain binds a customer account, a supplier account, a product and
a status chain. Creating one also creates its initial pool of kanbans, all
parked on the first status (minimum order) of the status chain:

  1. Insert the kanban_chains row
  2. Resolve the first status of the status chain
  3. Insert N kanbans copying chain id, status chain id, lead time,
     container type and quantity

Steps 1-3 are one unit of work. A later top-up (``add_kanbans``) repeats
steps 2-3 in its own transaction against the already committed chain.
"""

from dataclasses import dataclass
from datetime import datetime

import structlog
from pydantic import BaseModel, ConfigDict, Field, field_validator
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from db.models import Account, Kanban, KanbanChain, Product, StatusChain
from kanban.errors import ConflictError, InvalidStateError, NotFoundError
from kanban.status_chains import first_status_id
from kanban.transaction import atomic

logger = structlog.get_logger()


@dataclass(frozen=True)
class KanbanChainSpec:
    """Attributes of a new kanban chain."""

    customer_account_id: int
    product_id: str
    supplier_account_id: int
    status_chain_id: int
    leadtime_days: int = 0
    quantity: float = 0
    container_type: str = ""
    target_active_kanban_count: int = 0


class KanbanChainChanges(BaseModel):
    """Field mask for kanban chain edits. Unknown keys and explicit nulls are rejected."""

    model_config = ConfigDict(extra="forbid")

    customer_account_id: int | None = None
    product_id: str | None = None
    supplier_account_id: int | None = None
    status_chain_id: int | None = None
    leadtime_days: int | None = Field(None, ge=0)
    quantity: float | None = Field(None, ge=0)
    container_type: str | None = None
    target_active_kanban_count: int | None = Field(None, ge=0)

    @field_validator("*", mode="before")
    @classmethod
    def reject_null(cls, value):
        if value is None:
            raise ValueError("null is not allowed; omit the field to leave it unchanged")
        return value


@dataclass
class KanbanChainView:
    """Kanban chain joined with account and product names."""

    id: int
    customer_account_id: int
    customer_name: str | None
    product_id: str
    product_name: str | None
    supplier_account_id: int
    supplier_name: str | None
    leadtime_days: int
    quantity: float
    container_type: str
    status_chain_id: int
    target_active_kanban_count: int
    active_kanban_count: int


async def _require(db: AsyncSession, model, key, label: str) -> None:
    if await db.get(model, key) is None:
        raise NotFoundError(f"{label} {key} not found")


async def _require_references(
    db: AsyncSession,
    *,
    customer_account_id: int | None = None,
    supplier_account_id: int | None = None,
    product_id: str | None = None,
    status_chain_id: int | None = None,
) -> None:
    if customer_account_id is not None:
        await _require(db, Account, customer_account_id, "Customer account")
    if supplier_account_id is not None:
        await _require(db, Account, supplier_account_id, "Supplier account")
    if product_id is not None:
        await _require(db, Product, product_id, "Product")
    if status_chain_id is not None:
        await _require(db, StatusChain, status_chain_id, "Status chain")


async def _insert_kanbans(db: AsyncSession, chain: KanbanChain, count: int) -> list[Kanban]:
    """Add ``count`` kanbans on the first status of the chain's status chain."""
    start_status = await first_status_id(db, chain.status_chain_id)
    now = datetime.utcnow()
    kanbans = [
        Kanban(
            kanban_chain_id=chain.id,
            status_chain_id=chain.status_chain_id,
            status_current=start_status,
            leadtime_days=chain.leadtime_days,
            container_type=chain.container_type,
            quantity=chain.quantity,
            is_active=True,
            last_updated=now,
        )
        for _ in range(count)
    ]
    db.add_all(kanbans)
    await db.flush()
    return kanbans


async def get_kanban_chain(db: AsyncSession, kanban_chain_id: int) -> KanbanChain:
    chain = await db.get(KanbanChain, kanban_chain_id)
    if chain is None:
        raise NotFoundError(f"Kanban chain {kanban_chain_id} not found")
    return chain


async def create_chain_with_initial_kanbans(
    db: AsyncSession,
    spec: KanbanChainSpec,
    count: int | None = None,
) -> KanbanChain:
    """
    Create a kanban chain and its initial kanbans atomically.

    ``count`` defaults to the chain's target active kanban count. If any
    step fails nothing is left behind: neither the chain nor any kanban.
    """
    count = spec.target_active_kanban_count if count is None else count
    if count < 0:
        raise InvalidStateError(f"Cannot create {count} kanbans")

    async with atomic(db, "kanban_chain.create"):
        await _require_references(
            db,
            customer_account_id=spec.customer_account_id,
            supplier_account_id=spec.supplier_account_id,
            product_id=spec.product_id,
            status_chain_id=spec.status_chain_id,
        )
        chain = KanbanChain(
            customer_account_id=spec.customer_account_id,
            product_id=spec.product_id,
            supplier_account_id=spec.supplier_account_id,
            leadtime_days=spec.leadtime_days,
            quantity=spec.quantity,
            container_type=spec.container_type,
            status_chain_id=spec.status_chain_id,
            target_active_kanban_count=spec.target_active_kanban_count,
        )
        db.add(chain)
        await db.flush()
        kanbans = await _insert_kanbans(db, chain, count)

    logger.info(
        "kanban_chain.created",
        kanban_chain_id=chain.id,
        product_id=chain.product_id,
        status_chain_id=chain.status_chain_id,
        initial_kanbans=len(kanbans),
    )
    return chain


async def add_kanbans(db: AsyncSession, kanban_chain_id: int, count: int) -> list[Kanban]:
    """Top up an existing chain with ``count`` new kanbans."""
    if count < 1:
        raise InvalidStateError(f"Cannot add {count} kanbans")

    async with atomic(db, "kanban_chain.top_up"):
        chain = await get_kanban_chain(db, kanban_chain_id)
        created = await _insert_kanbans(db, chain, count)

    logger.info("kanban_chain.topped_up", kanban_chain_id=kanban_chain_id, added=len(created))
    return created


async def list_kanban_chains(db: AsyncSession) -> list[KanbanChainView]:
    customer = aliased(Account)
    supplier = aliased(Account)
    active_counts = (
        select(Kanban.kanban_chain_id, func.count(Kanban.id).label("active"))
        .where(Kanban.is_active.is_(True))
        .group_by(Kanban.kanban_chain_id)
        .subquery()
    )
    result = await db.execute(
        select(
            KanbanChain,
            customer.name,
            supplier.name,
            Product.name,
            func.coalesce(active_counts.c.active, 0),
        )
        .outerjoin(customer, customer.id == KanbanChain.customer_account_id)
        .outerjoin(supplier, supplier.id == KanbanChain.supplier_account_id)
        .outerjoin(Product, Product.product_id == KanbanChain.product_id)
        .outerjoin(active_counts, active_counts.c.kanban_chain_id == KanbanChain.id)
        .order_by(KanbanChain.id)
    )
    return [
        KanbanChainView(
            id=chain.id,
            customer_account_id=chain.customer_account_id,
            customer_name=customer_name,
            product_id=chain.product_id,
            product_name=product_name,
            supplier_account_id=chain.supplier_account_id,
            supplier_name=supplier_name,
            leadtime_days=chain.leadtime_days,
            quantity=chain.quantity,
            container_type=chain.container_type,
            status_chain_id=chain.status_chain_id,
            target_active_kanban_count=chain.target_active_kanban_count,
            active_kanban_count=int(active),
        )
        for chain, customer_name, supplier_name, product_name, active in result.all()
    ]


async def update_kanban_chain(
    db: AsyncSession,
    kanban_chain_id: int,
    changes: KanbanChainChanges,
    add_kanbans_count: int = 0,
) -> KanbanChain:
    """
    Apply a field mask to a chain, then optionally top it up.

    Existing kanbans keep the status chain they were created with; a new
    ``status_chain_id`` only applies to kanbans added afterwards. The top-up
    runs in its own transaction after the field update has committed.
    """
    values = changes.model_dump(exclude_unset=True)

    async with atomic(db, "kanban_chain.update"):
        chain = await get_kanban_chain(db, kanban_chain_id)
        await _require_references(
            db,
            customer_account_id=values.get("customer_account_id"),
            supplier_account_id=values.get("supplier_account_id"),
            product_id=values.get("product_id"),
            status_chain_id=values.get("status_chain_id"),
        )
        for field, value in values.items():
            setattr(chain, field, value)

    logger.info("kanban_chain.updated", kanban_chain_id=kanban_chain_id, fields=sorted(values))

    if add_kanbans_count > 0:
        await add_kanbans(db, kanban_chain_id, add_kanbans_count)
    return chain


async def delete_kanban_chain(db: AsyncSession, kanban_chain_id: int) -> None:
    """Delete a chain that owns no kanban rows (kanbans are only soft-deleted)."""
    async with atomic(db, "kanban_chain.delete"):
        await get_kanban_chain(db, kanban_chain_id)
        owned = await db.scalar(select(func.count(Kanban.id)).where(Kanban.kanban_chain_id == kanban_chain_id))
        if owned:
            raise ConflictError(f"Kanban chain {kanban_chain_id} still owns {owned} kanban(s)")
        await db.execute(delete(KanbanChain).where(KanbanChain.id == kanban_chain_id))

    logger.info("kanban_chain.deleted", kanban_chain_id=kanban_chain_id)
