"""
Dashboard Aggregation — read-only projection of an account's active kanbans.

Customer dashboard: kanbans of chains where the account is the customer,
annotated with the supplier's name. Supplier dashboard: the mirror image.
Cards are grouped by product id; cards whose product cannot be resolved
are grouped under ``UNKNOWN_PRODUCT`` instead of being dropped.
"""

import enum
from dataclasses import dataclass, field

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from db.models import Account, Kanban, KanbanChain, Product, Status, StatusChainEntry
from kanban.errors import NotFoundError

UNKNOWN_PRODUCT = "Unknown Product"


class DashboardRole(str, enum.Enum):
    CUSTOMER = "customer"
    SUPPLIER = "supplier"


@dataclass
class DashboardCard:
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


@dataclass
class Dashboard:
    account_id: int
    role: DashboardRole
    kanbans_by_product: dict[str, list[DashboardCard]] = field(default_factory=dict)

    @property
    def total_kanbans(self) -> int:
        return sum(len(cards) for cards in self.kanbans_by_product.values())


async def build_dashboard(db: AsyncSession, account_id: int, role: DashboardRole) -> Dashboard:
    if await db.get(Account, account_id) is None:
        raise NotFoundError(f"Account {account_id} not found")

    role = DashboardRole(role)
    counterparty = aliased(Account)
    if role is DashboardRole.CUSTOMER:
        own_column = KanbanChain.customer_account_id
        counterparty_column = KanbanChain.supplier_account_id
    else:
        own_column = KanbanChain.supplier_account_id
        counterparty_column = KanbanChain.customer_account_id

    result = await db.execute(
        select(
            Kanban.id,
            Product.product_id,
            Product.name,
            Kanban.container_type,
            Kanban.quantity,
            Kanban.status_current,
            Status.name,
            Status.color,
            StatusChainEntry.actor_role,
            counterparty.name,
        )
        .join(KanbanChain, KanbanChain.id == Kanban.kanban_chain_id)
        .outerjoin(Product, Product.product_id == KanbanChain.product_id)
        .outerjoin(Status, Status.status_id == Kanban.status_current)
        .outerjoin(
            StatusChainEntry,
            and_(
                StatusChainEntry.status_chain_id == Kanban.status_chain_id,
                StatusChainEntry.status_id == Kanban.status_current,
            ),
        )
        .outerjoin(counterparty, counterparty.id == counterparty_column)
        .where(own_column == account_id, Kanban.is_active.is_(True))
        .order_by(Product.name, Kanban.id)
    )

    dashboard = Dashboard(account_id=account_id, role=role)
    for (
        kanban_id,
        product_id,
        product_name,
        container_type,
        quantity,
        status_current,
        status_name,
        status_color,
        actor_role,
        counterparty_name,
    ) in result.all():
        card = DashboardCard(
            kanban_id=kanban_id,
            product_id=product_id,
            product_name=product_name,
            container_type=container_type,
            quantity=quantity,
            status_current=status_current,
            status_name=status_name,
            status_color=status_color,
            actor_role=actor_role,
            counterparty_name=counterparty_name,
        )
        dashboard.kanbans_by_product.setdefault(product_id or UNKNOWN_PRODUCT, []).append(card)
    return dashboard
