"""Unit tests for the pending-change ledger."""

import uuid

import pytest

from eduscope.errors import ConflictError, NotFoundError, StateError
from eduscope.kernel.ledger import PendingChangeLedger
from eduscope.kernel.models.pending_change import (
    ChangeStatus,
    ChangeType,
    HostType,
    make_open_key,
)


async def _propose(session_maker, host_id, change_type=ChangeType.UPDATE, payload=None, requested_by=None):
    async with session_maker() as session:
        async with session.begin():
            return await PendingChangeLedger(session).propose(
                HostType.RESEARCH_PAPER,
                host_id,
                change_type,
                requested_by=requested_by or uuid.uuid4(),
                payload=payload,
            )


async def _resolve(session_maker, change_id, outcome, reviewer=None, reason=None):
    async with session_maker() as session:
        async with session.begin():
            return await PendingChangeLedger(session).resolve(
                change_id, outcome, reviewer or uuid.uuid4(), reason,
            )


class TestPropose:
    """Opening changes."""

    async def test_propose_creates_open_change(self, session_maker):
        host_id = uuid.uuid4()
        change = await _propose(session_maker, host_id, payload={"title": "New"})

        assert change.status == ChangeStatus.PENDING.value
        assert change.open_key == make_open_key("research_paper", host_id, "update")
        assert change.payload == {"title": "New"}
        assert change.reviewed_by is None

    async def test_second_open_change_of_same_type_conflicts(self, session_maker):
        host_id = uuid.uuid4()
        await _propose(session_maker, host_id)

        with pytest.raises(ConflictError):
            await _propose(session_maker, host_id)

    async def test_different_change_types_coexist(self, session_maker):
        host_id = uuid.uuid4()
        update = await _propose(session_maker, host_id, ChangeType.UPDATE)
        delete = await _propose(session_maker, host_id, ChangeType.DELETE)

        assert update.id != delete.id

    async def test_different_hosts_coexist(self, session_maker):
        await _propose(session_maker, uuid.uuid4())
        await _propose(session_maker, uuid.uuid4())

        async with session_maker() as session:
            assert len(await PendingChangeLedger(session).list_open()) == 2

    async def test_new_proposal_allowed_after_resolution(self, session_maker):
        host_id = uuid.uuid4()
        first = await _propose(session_maker, host_id)
        await _resolve(session_maker, first.id, ChangeStatus.REJECTED)

        second = await _propose(session_maker, host_id)

        assert second.id != first.id
        async with session_maker() as session:
            ledger = PendingChangeLedger(session)
            assert (await ledger.get_open(HostType.RESEARCH_PAPER, host_id, ChangeType.UPDATE)).id == second.id


class TestResolve:
    """Closing changes."""

    async def test_resolve_records_review(self, session_maker):
        change = await _propose(session_maker, uuid.uuid4())
        reviewer = uuid.uuid4()

        resolved = await _resolve(session_maker, change.id, ChangeStatus.APPROVED, reviewer, "Looks good")

        assert resolved.status == ChangeStatus.APPROVED.value
        assert resolved.reviewed_by == reviewer
        assert resolved.reviewed_at is not None
        assert resolved.reason == "Looks good"
        assert resolved.open_key is None

    async def test_resolving_twice_is_a_state_error(self, session_maker):
        change = await _propose(session_maker, uuid.uuid4())
        await _resolve(session_maker, change.id, ChangeStatus.APPROVED)

        with pytest.raises(StateError):
            await _resolve(session_maker, change.id, ChangeStatus.REJECTED)

        async with session_maker() as session:
            stored = await PendingChangeLedger(session).get(change.id)
        assert stored.status == ChangeStatus.APPROVED.value

    async def test_unknown_change_is_not_found(self, session_maker):
        with pytest.raises(NotFoundError):
            await _resolve(session_maker, uuid.uuid4(), ChangeStatus.APPROVED)

    async def test_cannot_resolve_back_to_pending(self, session_maker):
        change = await _propose(session_maker, uuid.uuid4())

        with pytest.raises(ValueError):
            await _resolve(session_maker, change.id, ChangeStatus.PENDING)


class TestListing:
    """Queue and history reads."""

    async def test_list_open_oldest_first_and_filtered(self, session_maker):
        first = await _propose(session_maker, uuid.uuid4(), ChangeType.UPDATE)
        second = await _propose(session_maker, uuid.uuid4(), ChangeType.DELETE)
        third = await _propose(session_maker, uuid.uuid4(), ChangeType.UPDATE)
        await _resolve(session_maker, third.id, ChangeStatus.REJECTED)

        async with session_maker() as session:
            ledger = PendingChangeLedger(session)
            everything = await ledger.list_open()
            updates = await ledger.list_open(change_type=ChangeType.UPDATE)
            users = await ledger.list_open(host_type=HostType.USER)

        assert [c.id for c in everything] == [first.id, second.id]
        assert [c.id for c in updates] == [first.id]
        assert users == []

    async def test_list_for_requester_newest_first(self, session_maker):
        requester = uuid.uuid4()
        older = await _propose(session_maker, uuid.uuid4(), requested_by=requester)
        newer = await _propose(session_maker, uuid.uuid4(), requested_by=requester)
        await _propose(session_maker, uuid.uuid4())
        await _resolve(session_maker, older.id, ChangeStatus.APPROVED)

        async with session_maker() as session:
            ledger = PendingChangeLedger(session)
            history = await ledger.list_for_requester(requester)
            approved = await ledger.list_for_requester(requester, status=ChangeStatus.APPROVED)

        assert [c.id for c in history] == [newer.id, older.id]
        assert [c.id for c in approved] == [older.id]
