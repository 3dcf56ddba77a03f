"""
Kanban Database Models

8 tables for the electronic kanban replenishment platform.

Tables:
  Reference Data (1-3):
  1. accounts               - Customer and supplier parties
  2. products               - Product catalog, keyed by product code
  3. statuses               - Named, coloured kanban statuses

  Status Chains (4-5):
  4. status_chains          - Named status templates
  5. status_chains_statuses - Ordered entries of a status chain (+ actor role)

  Replenishment Loop (6-8):
  6. kanban_chains          - Customer/supplier/product replenishment agreements
  7. kanbans                - Individual cards cycling through a status chain
  8. kanban_histories       - Append-only audit trail of status transitions
"""

import enum
from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from db.session import Base


class ActorRole(str, enum.Enum):
    """Which party acts at a status chain step."""

    SUPPLIER = "supplier"
    CUSTOMER = "customer"


# ─── 1. Accounts ───────────────────────────────────────────────────────────


class Account(Base):
    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    vat_number = Column(String(50))
    address = Column(Text)


# ─── 2. Products ───────────────────────────────────────────────────────────


class Product(Base):
    __tablename__ = "products"

    product_id = Column(String(100), primary_key=True)  # product code
    name = Column(String(255), nullable=False)


# ─── 3. Statuses ───────────────────────────────────────────────────────────


class Status(Base):
    __tablename__ = "statuses"

    status_id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    color = Column(String(20), nullable=False, default="#cccccc")


# ─── 4. Status Chains ──────────────────────────────────────────────────────


class StatusChain(Base):
    __tablename__ = "status_chains"

    status_chain_id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)

    entries = relationship(
        "StatusChainEntry",
        back_populates="status_chain",
        cascade="all, delete-orphan",
        order_by="StatusChainEntry.order",
    )


# ─── 5. Status Chain Entries ───────────────────────────────────────────────


class StatusChainEntry(Base):
    """One step of a status chain.

    ``order`` defines traversal; the progression engine relies on it being
    unique within a chain, which the status chain store enforces on write.
    """

    __tablename__ = "status_chains_statuses"

    status_chain_id = Column(Integer, ForeignKey("status_chains.status_chain_id"), primary_key=True)
    status_id = Column(Integer, ForeignKey("statuses.status_id"), primary_key=True)
    order = Column("order", Integer, nullable=False)
    actor_role = Column(String(20), nullable=False, default=ActorRole.SUPPLIER.value)

    __table_args__ = (
        CheckConstraint("actor_role IN ('supplier', 'customer')", name="ck_chain_entry_actor_role"),
        Index("ix_status_chains_statuses_order", "status_chain_id", "order"),
    )

    status_chain = relationship("StatusChain", back_populates="entries")
    status = relationship("Status")


# ─── 6. Kanban Chains ──────────────────────────────────────────────────────


class KanbanChain(Base):
    """Standing replenishment agreement between a customer and a supplier."""

    __tablename__ = "kanban_chains"

    id = Column(Integer, primary_key=True, autoincrement=True)
    customer_account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False)
    product_id = Column(String(100), ForeignKey("products.product_id"), nullable=False)
    supplier_account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False)
    leadtime_days = Column(Integer, nullable=False, default=0)
    quantity = Column(Float, nullable=False, default=0)
    container_type = Column(String(100), nullable=False, default="")
    status_chain_id = Column(Integer, ForeignKey("status_chains.status_chain_id"), nullable=False)
    target_active_kanban_count = Column(Integer, nullable=False, default=0)

    __table_args__ = (
        Index("ix_kanban_chains_customer", "customer_account_id"),
        Index("ix_kanban_chains_supplier", "supplier_account_id"),
        CheckConstraint("target_active_kanban_count >= 0", name="ck_kanban_chain_target_count"),
    )

    customer = relationship("Account", foreign_keys=[customer_account_id])
    supplier = relationship("Account", foreign_keys=[supplier_account_id])
    product = relationship("Product")
    status_chain = relationship("StatusChain")
    kanbans = relationship("Kanban", back_populates="kanban_chain")


# ─── 7. Kanbans ────────────────────────────────────────────────────────────


class Kanban(Base):
    """A single card cycling through its status chain.

    ``status_chain_id`` is copied from the owning chain at creation time.
    ``version`` is the optimistic-concurrency counter: every UPDATE is
    issued as ``WHERE id = :id AND version = :version``.
    """

    __tablename__ = "kanbans"

    id = Column(Integer, primary_key=True, autoincrement=True)
    kanban_chain_id = Column(Integer, ForeignKey("kanban_chains.id"), nullable=False)
    status_chain_id = Column(Integer, ForeignKey("status_chains.status_chain_id"), nullable=False)
    status_current = Column(Integer, ForeignKey("statuses.status_id"), nullable=False)
    leadtime_days = Column(Integer, nullable=False, default=0)
    container_type = Column(String(100), nullable=False, default="")
    quantity = Column(Float, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    last_updated = Column(DateTime, nullable=False, default=datetime.utcnow)
    version = Column(Integer, nullable=False)

    __table_args__ = (
        Index("ix_kanbans_chain", "kanban_chain_id"),
        Index("ix_kanbans_active", "is_active"),
    )

    __mapper_args__ = {"version_id_col": version}

    kanban_chain = relationship("KanbanChain", back_populates="kanbans")


# ─── 8. Kanban Histories ───────────────────────────────────────────────────


class KanbanHistory(Base):
    """Audit trail of status transitions. Rows are only ever inserted."""

    __tablename__ = "kanban_histories"

    id = Column(Integer, primary_key=True, autoincrement=True)
    kanban_id = Column(Integer, ForeignKey("kanbans.id"), nullable=False)
    previous_status = Column(Integer, ForeignKey("statuses.status_id"), nullable=False)
    next_status = Column(Integer, ForeignKey("statuses.status_id"), nullable=False)
    timestamp = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        Index("ix_kanban_histories_kanban", "kanban_id", "timestamp"),
    )
