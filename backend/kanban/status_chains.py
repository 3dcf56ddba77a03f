"""
Status Chain Store — ordered, cyclic status templates.

A status chain is a named list of (status, order, actor_role) entries.
Kanbans walk the entries in ascending ``order`` and wrap around after the
last one, so every write path checks that the chain keeps a strict total
order: no status listed twice, no ``order`` value shared by two entries.

Entry batches (create, attach, update) are applied all-or-nothing.
"""

from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass

import structlog
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from db.models import ActorRole, Kanban, KanbanChain, Status, StatusChain, StatusChainEntry
from kanban.errors import ChainOrderError, ConflictError, InvalidStateError, NotFoundError
from kanban.transaction import atomic

logger = structlog.get_logger()


@dataclass(frozen=True)
class EntrySpec:
    """Requested position of a status inside a chain."""

    status_id: int
    order: int
    actor_role: ActorRole = ActorRole.SUPPLIER


@dataclass(frozen=True)
class ChainStep:
    """A chain entry joined with its status reference data."""

    status_id: int
    order: int
    actor_role: str
    status_name: str | None = None
    status_color: str | None = None


def check_strict_order(pairs: Iterable[tuple[int, int]]) -> None:
    """Reject (status_id, order) pairs that repeat a status or an order value."""
    pairs = list(pairs)
    repeated_statuses = sorted(s for s, n in Counter(s for s, _ in pairs).items() if n > 1)
    if repeated_statuses:
        raise ChainOrderError(f"Statuses listed more than once: {repeated_statuses}")
    repeated_orders = sorted(o for o, n in Counter(o for _, o in pairs).items() if n > 1)
    if repeated_orders:
        raise ChainOrderError(f"Duplicate order values in status chain: {repeated_orders}")


async def _require_statuses(db: AsyncSession, status_ids: set[int]) -> None:
    if not status_ids:
        return
    result = await db.execute(select(Status.status_id).where(Status.status_id.in_(status_ids)))
    missing = sorted(status_ids - set(result.scalars().all()))
    if missing:
        raise NotFoundError(f"Statuses not found: {missing}")


def _entry_row(status_chain_id: int, spec: EntrySpec) -> StatusChainEntry:
    return StatusChainEntry(
        status_chain_id=status_chain_id,
        status_id=spec.status_id,
        order=spec.order,
        actor_role=ActorRole(spec.actor_role).value,
    )


# ─── Chains ────────────────────────────────────────────────────────────────


async def list_status_chains(db: AsyncSession) -> list[StatusChain]:
    result = await db.execute(select(StatusChain).order_by(StatusChain.status_chain_id))
    return list(result.scalars().all())


async def get_status_chain(db: AsyncSession, status_chain_id: int) -> StatusChain:
    chain = await db.get(StatusChain, status_chain_id)
    if chain is None:
        raise NotFoundError(f"Status chain {status_chain_id} not found")
    return chain


async def create_status_chain(
    db: AsyncSession,
    name: str,
    entries: Iterable[EntrySpec] = (),
) -> StatusChain:
    """Create a chain and, when given, its entries in one transaction."""
    entries = list(entries)
    check_strict_order((e.status_id, e.order) for e in entries)

    async with atomic(db, "status_chain.create"):
        await _require_statuses(db, {e.status_id for e in entries})
        chain = StatusChain(name=name)
        db.add(chain)
        await db.flush()
        db.add_all([_entry_row(chain.status_chain_id, e) for e in entries])

    logger.info(
        "status_chain.created",
        status_chain_id=chain.status_chain_id,
        name=name,
        entries=len(entries),
    )
    return chain


async def rename_status_chain(db: AsyncSession, status_chain_id: int, name: str) -> StatusChain:
    async with atomic(db, "status_chain.rename"):
        chain = await get_status_chain(db, status_chain_id)
        chain.name = name
    return chain


async def delete_status_chain(db: AsyncSession, status_chain_id: int) -> None:
    """Delete an unreferenced chain together with its entries."""
    async with atomic(db, "status_chain.delete"):
        await get_status_chain(db, status_chain_id)
        chain_refs = await db.scalar(
            select(func.count(KanbanChain.id)).where(KanbanChain.status_chain_id == status_chain_id)
        )
        kanban_refs = await db.scalar(
            select(func.count(Kanban.id)).where(Kanban.status_chain_id == status_chain_id)
        )
        if chain_refs or kanban_refs:
            raise ConflictError(
                f"Status chain {status_chain_id} is referenced by "
                f"{chain_refs} kanban chain(s) and {kanban_refs} kanban(s)"
            )
        await db.execute(delete(StatusChainEntry).where(StatusChainEntry.status_chain_id == status_chain_id))
        await db.execute(delete(StatusChain).where(StatusChain.status_chain_id == status_chain_id))

    logger.info("status_chain.deleted", status_chain_id=status_chain_id)


# ─── Entries ───────────────────────────────────────────────────────────────


async def get_chain_entries(db: AsyncSession, status_chain_id: int) -> list[ChainStep]:
    """Entries of a chain in traversal order (ties broken by status id)."""
    result = await db.execute(
        select(
            StatusChainEntry.status_id,
            StatusChainEntry.order,
            StatusChainEntry.actor_role,
            Status.name,
            Status.color,
        )
        .outerjoin(Status, Status.status_id == StatusChainEntry.status_id)
        .where(StatusChainEntry.status_chain_id == status_chain_id)
        .order_by(StatusChainEntry.order.asc(), StatusChainEntry.status_id.asc())
    )
    return [
        ChainStep(
            status_id=status_id,
            order=order,
            actor_role=actor_role,
            status_name=status_name,
            status_color=status_color,
        )
        for status_id, order, actor_role, status_name, status_color in result.all()
    ]


async def first_status_id(db: AsyncSession, status_chain_id: int) -> int:
    """Status with the minimum order; a kanban's starting point."""
    result = await db.execute(
        select(StatusChainEntry.status_id)
        .where(StatusChainEntry.status_chain_id == status_chain_id)
        .order_by(StatusChainEntry.order.asc(), StatusChainEntry.status_id.asc())
        .limit(1)
    )
    status_id = result.scalar_one_or_none()
    if status_id is None:
        raise InvalidStateError(f"Status chain {status_chain_id} has no statuses")
    return status_id


async def attach_entries(
    db: AsyncSession,
    status_chain_id: int,
    entries: Iterable[EntrySpec],
) -> list[ChainStep]:
    """Bulk insert entries into an existing chain, all or none."""
    entries = list(entries)

    async with atomic(db, "status_chain.attach_entries"):
        await get_status_chain(db, status_chain_id)
        await _require_statuses(db, {e.status_id for e in entries})
        existing = await get_chain_entries(db, status_chain_id)
        check_strict_order(
            [(s.status_id, s.order) for s in existing] + [(e.status_id, e.order) for e in entries]
        )
        db.add_all([_entry_row(status_chain_id, e) for e in entries])

    logger.info("status_chain.entries_attached", status_chain_id=status_chain_id, entries=len(entries))
    return await get_chain_entries(db, status_chain_id)


async def update_entries(
    db: AsyncSession,
    status_chain_id: int,
    entries: Iterable[EntrySpec],
) -> list[ChainStep]:
    """
    Overwrite order/actor_role of existing (chain, status) pairs.

    Entries not listed keep their values. Every listed pair must already
    exist, and the resulting chain must still be strictly ordered.
    """
    entries = list(entries)
    check_strict_order((e.status_id, e.order) for e in entries)

    async with atomic(db, "status_chain.update_entries"):
        await get_status_chain(db, status_chain_id)
        result = await db.execute(
            select(StatusChainEntry).where(StatusChainEntry.status_chain_id == status_chain_id)
        )
        rows = {row.status_id: row for row in result.scalars().all()}

        missing = sorted({e.status_id for e in entries} - rows.keys())
        if missing:
            raise NotFoundError(f"Statuses {missing} are not part of status chain {status_chain_id}")

        for spec in entries:
            row = rows[spec.status_id]
            row.order = spec.order
            row.actor_role = ActorRole(spec.actor_role).value

        check_strict_order((row.status_id, row.order) for row in rows.values())

    logger.info("status_chain.entries_updated", status_chain_id=status_chain_id, entries=len(entries))
    return await get_chain_entries(db, status_chain_id)
