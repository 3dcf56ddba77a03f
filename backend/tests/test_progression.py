"""
Tests for the progression engine — cyclic advance, history and failure modes.
"""

import pytest
from sqlalchemy import func, select, update
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from db.models import Kanban, KanbanHistory, Status, StatusChain, StatusChainEntry
from kanban.errors import ConflictError, InactiveKanbanError, InvalidStateError, NotFoundError
from kanban.history import list_history
from kanban.progression import advance_kanban, next_status_id
from kanban.status_chains import ChainStep


def _steps(*status_ids: int) -> list[ChainStep]:
    return [ChainStep(status_id=s, order=i + 1, actor_role="supplier") for i, s in enumerate(status_ids)]


class TestNextStatusId:
    def test_moves_to_following_entry(self):
        assert next_status_id(10, _steps(10, 20, 30)) == 20

    def test_wraps_from_last_to_first(self):
        assert next_status_id(30, _steps(10, 20, 30)) == 10

    def test_single_entry_chain_loops_onto_itself(self):
        assert next_status_id(10, _steps(10)) == 10

    def test_empty_chain_is_invalid(self):
        with pytest.raises(InvalidStateError):
            next_status_id(10, [])

    def test_status_outside_chain_is_invalid(self):
        with pytest.raises(InvalidStateError):
            next_status_id(99, _steps(10, 20, 30))


@pytest.mark.asyncio
class TestAdvanceKanban:

    async def test_full_cycle_with_history(self, test_db, seeded_db):
        empty, ordered, full = (s.status_id for s in seeded_db["statuses"])
        kanban_id = seeded_db["kanbans"][0].id

        seen = []
        for _ in range(3):
            kanban = await advance_kanban(test_db, kanban_id)
            seen.append(kanban.status_current)
        assert seen == [ordered, full, empty]

        history = await list_history(test_db, kanban_id)
        assert [(h.previous_status, h.next_status) for h in history] == [
            (empty, ordered),
            (ordered, full),
            (full, empty),
        ]

    async def test_advance_updates_last_updated_and_version(self, test_db, seeded_db):
        kanban = seeded_db["kanbans"][0]
        before_updated = kanban.last_updated
        before_version = kanban.version

        advanced = await advance_kanban(test_db, kanban.id)

        assert advanced.last_updated >= before_updated
        assert advanced.version == before_version + 1

    async def test_other_kanbans_are_untouched(self, test_db, seeded_db):
        empty = seeded_db["statuses"][0].status_id
        first, second = seeded_db["kanbans"]

        await advance_kanban(test_db, first.id)

        untouched = await test_db.get(Kanban, second.id)
        assert untouched.status_current == empty

    async def test_missing_kanban(self, test_db, seeded_db):
        with pytest.raises(NotFoundError):
            await advance_kanban(test_db, 9999)

    async def test_inactive_kanban_cannot_advance(self, test_db, seeded_db):
        kanban = seeded_db["kanbans"][0]
        kanban.is_active = False
        await test_db.commit()

        with pytest.raises(InactiveKanbanError):
            await advance_kanban(test_db, kanban.id)

    async def test_status_not_in_chain_fails_without_side_effects(self, test_db, seeded_db):
        stray = Status(name="Lost", color="#000000")
        test_db.add(stray)
        await test_db.flush()
        stray_id = stray.status_id
        kanban = seeded_db["kanbans"][0]
        kanban_id = kanban.id
        kanban.status_current = stray_id
        await test_db.commit()

        with pytest.raises(InvalidStateError):
            await advance_kanban(test_db, kanban_id)

        stored = await test_db.scalar(select(Kanban.status_current).where(Kanban.id == kanban_id))
        assert stored == stray_id
        history_rows = await test_db.scalar(
            select(func.count(KanbanHistory.id)).where(KanbanHistory.kanban_id == kanban_id)
        )
        assert history_rows == 0

    async def test_empty_status_chain_is_invalid(self, test_db, seeded_db):
        empty_chain = StatusChain(name="Nothing here")
        test_db.add(empty_chain)
        await test_db.flush()
        kanban = seeded_db["kanbans"][0]
        kanban.status_chain_id = empty_chain.status_chain_id
        await test_db.commit()

        with pytest.raises(InvalidStateError):
            await advance_kanban(test_db, kanban.id)

    async def test_single_status_chain_records_self_transition(self, test_db, seeded_db):
        only = seeded_db["statuses"][0]
        loop = StatusChain(name="Self loop")
        test_db.add(loop)
        await test_db.flush()
        test_db.add(StatusChainEntry(status_chain_id=loop.status_chain_id, status_id=only.status_id, order=1))
        kanban = seeded_db["kanbans"][0]
        kanban.status_chain_id = loop.status_chain_id
        await test_db.commit()

        advanced = await advance_kanban(test_db, kanban.id)

        assert advanced.status_current == only.status_id
        history = await list_history(test_db, kanban.id)
        assert [(h.previous_status, h.next_status) for h in history] == [(only.status_id, only.status_id)]

    async def test_stale_version_is_a_conflict(self, test_db, seeded_db):
        kanban_id = seeded_db["kanbans"][0].id
        empty = seeded_db["statuses"][0].status_id
        table = Kanban.__table__

        # Another writer bumps the row behind this session's back
        await test_db.execute(
            update(table).where(table.c.id == kanban_id).values(version=table.c.version + 1)
        )
        await test_db.commit()

        with pytest.raises(ConflictError):
            await advance_kanban(test_db, kanban_id)

        status = await test_db.scalar(select(table.c.status_current).where(table.c.id == kanban_id))
        assert status == empty

    async def test_history_failure_keeps_the_advance(self, test_db, seeded_db, monkeypatch):
        ordered = seeded_db["statuses"][1].status_id
        kanban_id = seeded_db["kanbans"][0].id

        async def failing_record_transition(*args, **kwargs):
            raise SQLAlchemyError("history table unavailable")

        monkeypatch.setattr("kanban.progression.record_transition", failing_record_transition)

        advanced = await advance_kanban(test_db, kanban_id)

        assert advanced.status_current == ordered
        stored = await test_db.scalar(select(Kanban.status_current).where(Kanban.id == kanban_id))
        assert stored == ordered
        rows = await test_db.scalar(
            select(KanbanHistory.id).where(KanbanHistory.kanban_id == kanban_id).limit(1)
        )
        assert rows is None

    async def test_history_failure_with_lost_connection_still_returns_advanced_kanban(
        self, test_db, seeded_db, monkeypatch
    ):
        ordered = seeded_db["statuses"][1].status_id
        kanban = seeded_db["kanbans"][0]
        kanban_id = kanban.id
        version_before = kanban.version

        def connection_lost() -> OperationalError:
            return OperationalError("INSERT INTO kanban_histories", {}, Exception("server closed the connection"))

        async def failing_record_transition(*args, **kwargs):
            raise connection_lost()

        async def failing_session_call(self, *args, **kwargs):
            raise connection_lost()

        monkeypatch.setattr("kanban.progression.record_transition", failing_record_transition)
        monkeypatch.setattr(AsyncSession, "refresh", failing_session_call)
        monkeypatch.setattr(AsyncSession, "rollback", failing_session_call)

        advanced = await advance_kanban(test_db, kanban_id)

        assert advanced.status_current == ordered
        assert advanced.version == version_before + 1
        assert advanced.is_active is True

        monkeypatch.undo()
        stored = await test_db.scalar(select(Kanban.status_current).where(Kanban.id == kanban_id))
        assert stored == ordered


@pytest.mark.asyncio
class TestHistory:

    async def test_history_of_missing_kanban(self, test_db, seeded_db):
        with pytest.raises(NotFoundError):
            await list_history(test_db, 9999)

    async def test_new_kanban_has_no_history(self, test_db, seeded_db):
        assert await list_history(test_db, seeded_db["kanbans"][1].id) == []
