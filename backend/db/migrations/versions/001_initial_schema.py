"""
Initial schema - all 8 tables

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # 1. Accounts
    op.create_table(
        "accounts",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("vat_number", sa.String(50)),
        sa.Column("address", sa.Text),
    )

    # 2. Products
    op.create_table(
        "products",
        sa.Column("product_id", sa.String(100), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
    )

    # 3. Statuses
    op.create_table(
        "statuses",
        sa.Column("status_id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("color", sa.String(20), nullable=False, server_default="#cccccc"),
    )

    # 4. Status Chains
    op.create_table(
        "status_chains",
        sa.Column("status_chain_id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
    )

    # 5. Status Chain Entries
    op.create_table(
        "status_chains_statuses",
        sa.Column(
            "status_chain_id",
            sa.Integer,
            sa.ForeignKey("status_chains.status_chain_id"),
            primary_key=True,
        ),
        sa.Column("status_id", sa.Integer, sa.ForeignKey("statuses.status_id"), primary_key=True),
        sa.Column("order", sa.Integer, nullable=False),
        sa.Column("actor_role", sa.String(20), nullable=False, server_default="supplier"),
        sa.CheckConstraint("actor_role IN ('supplier', 'customer')", name="ck_chain_entry_actor_role"),
    )
    op.create_index("ix_status_chains_statuses_order", "status_chains_statuses", ["status_chain_id", "order"])

    # 6. Kanban Chains
    op.create_table(
        "kanban_chains",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("customer_account_id", sa.Integer, sa.ForeignKey("accounts.id"), nullable=False),
        sa.Column("product_id", sa.String(100), sa.ForeignKey("products.product_id"), nullable=False),
        sa.Column("supplier_account_id", sa.Integer, sa.ForeignKey("accounts.id"), nullable=False),
        sa.Column("leadtime_days", sa.Integer, nullable=False, server_default="0"),
        sa.Column("quantity", sa.Float, nullable=False, server_default="0"),
        sa.Column("container_type", sa.String(100), nullable=False, server_default=""),
        sa.Column(
            "status_chain_id",
            sa.Integer,
            sa.ForeignKey("status_chains.status_chain_id"),
            nullable=False,
        ),
        sa.Column("target_active_kanban_count", sa.Integer, nullable=False, server_default="0"),
        sa.CheckConstraint("target_active_kanban_count >= 0", name="ck_kanban_chain_target_count"),
    )
    op.create_index("ix_kanban_chains_customer", "kanban_chains", ["customer_account_id"])
    op.create_index("ix_kanban_chains_supplier", "kanban_chains", ["supplier_account_id"])

    # 7. Kanbans
    op.create_table(
        "kanbans",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("kanban_chain_id", sa.Integer, sa.ForeignKey("kanban_chains.id"), nullable=False),
        sa.Column(
            "status_chain_id",
            sa.Integer,
            sa.ForeignKey("status_chains.status_chain_id"),
            nullable=False,
        ),
        sa.Column("status_current", sa.Integer, sa.ForeignKey("statuses.status_id"), nullable=False),
        sa.Column("leadtime_days", sa.Integer, nullable=False, server_default="0"),
        sa.Column("container_type", sa.String(100), nullable=False, server_default=""),
        sa.Column("quantity", sa.Float, nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.text("true")),
        sa.Column("last_updated", sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.Column("version", sa.Integer, nullable=False, server_default="1"),
    )
    op.create_index("ix_kanbans_chain", "kanbans", ["kanban_chain_id"])
    op.create_index("ix_kanbans_active", "kanbans", ["is_active"])

    # 8. Kanban Histories
    op.create_table(
        "kanban_histories",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("kanban_id", sa.Integer, sa.ForeignKey("kanbans.id"), nullable=False),
        sa.Column("previous_status", sa.Integer, sa.ForeignKey("statuses.status_id"), nullable=False),
        sa.Column("next_status", sa.Integer, sa.ForeignKey("statuses.status_id"), nullable=False),
        sa.Column("timestamp", sa.DateTime, nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_kanban_histories_kanban", "kanban_histories", ["kanban_id", "timestamp"])


def downgrade() -> None:
    tables = [
        "kanban_histories",
        "kanbans",
        "kanban_chains",
        "status_chains_statuses",
        "status_chains",
        "statuses",
        "products",
        "accounts",
    ]
    for table in tables:
        op.drop_table(table)
