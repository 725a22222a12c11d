"""Tests for the pending mutation replayer."""

from __future__ import annotations

import pytest

from quotesync.client.state import LocalSyncState, MemoryStore
from quotesync.client.sync.replay import MutationReplayer, promote, unique_id
from quotesync.core.errors import TransportError
from quotesync.core.types import Operation, Origin
from tests.fakes import FakeRemote, make_record, mutation


@pytest.fixture
def state() -> LocalSyncState:
    """In-memory local state."""
    s = LocalSyncState(MemoryStore())
    yield s
    s.close()


class TestPromote:
    """Tests for local id promotion."""

    def test_rewrites_records_and_queue(self) -> None:
        """Every occurrence of the old id is rewritten, order kept."""
        local = make_record("loc-1", text="Mine")
        other = make_record("srv-7")
        queue = [
            mutation(Operation.UPDATE, local),
            mutation(Operation.DELETE, other),
            mutation(Operation.DELETE, local),
        ]

        records, new_queue = promote("loc-1", "srv-101", [local, other], queue)

        assert [r.id for r in records] == ["srv-101", "srv-7"]
        assert records[0].origin == Origin.REMOTE
        assert [(m.operation, m.record.id) for m in new_queue] == [
            (Operation.UPDATE, "srv-101"),
            (Operation.DELETE, "srv-7"),
            (Operation.DELETE, "srv-101"),
        ]


class TestDrain:
    """Tests for MutationReplayer.drain()."""

    def test_empty_queue_is_noop(self, state: LocalSyncState) -> None:
        """Nothing queued -> nothing pushed."""
        remote = FakeRemote()

        result = MutationReplayer(remote, state).drain()

        assert result.total == 0
        assert remote.pushed == []

    def test_create_promotes_local_record(self, state: LocalSyncState) -> None:
        """A local create is pushed and the record takes the remote id."""
        record = make_record("loc-1", text="Mine")
        state.save(records=[record], pending=[mutation(Operation.CREATE, record)])
        remote = FakeRemote()

        result = MutationReplayer(remote, state).drain()

        assert result.created == ["srv-101"]
        assert result.promoted == {"loc-1": "srv-101"}
        assert [r.id for r in state.get_records()] == ["srv-101"]
        assert state.get_records()[0].text == "Mine"
        assert [r.id for r in state.get_shadow()] == ["srv-101"]
        assert state.get_pending() == []

    def test_promotion_rewrites_later_entries(self, state: LocalSyncState) -> None:
        """Create then update of the same local record pushes the update under the new id."""
        record = make_record("loc-1", text="First")
        edited = make_record("loc-1", text="Second", version=2)
        state.save(
            records=[edited],
            pending=[
                mutation(Operation.CREATE, record),
                mutation(Operation.UPDATE, edited),
            ],
        )
        remote = FakeRemote()

        result = MutationReplayer(remote, state).drain()

        assert [r.id for r in remote.pushed] == ["loc-1", "srv-101"]
        assert result.updated == ["srv-101"]
        shadow = state.get_shadow()
        assert len(shadow) == 1
        assert shadow[0].id == "srv-101"
        assert shadow[0].text == "Second"
        assert all(not r.is_local for r in state.get_records())

    def test_create_with_remote_id_only_updates_shadow(self, state: LocalSyncState) -> None:
        """A create already carrying a remote id is not pushed."""
        record = make_record("srv-5")
        state.save(records=[record], pending=[mutation(Operation.CREATE, record)])
        remote = FakeRemote()

        MutationReplayer(remote, state).drain()

        assert remote.pushed == []
        assert state.get_shadow() == [record]

    def test_update_pushes_and_upserts_shadow(self, state: LocalSyncState) -> None:
        """An update of a remote record is pushed and mirrored in the shadow."""
        base = make_record("srv-3", text="Old")
        edited = make_record("srv-3", text="New", version=2)
        state.save(
            records=[edited],
            shadow=[base],
            pending=[mutation(Operation.UPDATE, edited)],
        )
        remote = FakeRemote()

        MutationReplayer(remote, state).drain()

        assert [r.text for r in remote.pushed] == ["New"]
        assert state.get_shadow()[0].text == "New"
        assert [r.id for r in state.get_records()] == ["srv-3"]

    def test_update_of_unpromoted_record_is_not_pushed(self, state: LocalSyncState) -> None:
        """An update for a still-local id only updates the shadow."""
        record = make_record("loc-9", text="Orphan")
        state.save(records=[record], pending=[mutation(Operation.UPDATE, record)])
        remote = FakeRemote()

        MutationReplayer(remote, state).drain()

        assert remote.pushed == []
        assert state.get_shadow() == [record]

    def test_delete_drops_shadow_entry(self, state: LocalSyncState) -> None:
        """A delete removes the record from the shadow without a remote call."""
        gone = make_record("srv-2")
        kept = make_record("srv-4")
        state.save(
            records=[kept],
            shadow=[gone, kept],
            pending=[mutation(Operation.DELETE, gone)],
        )
        remote = FakeRemote()

        result = MutationReplayer(remote, state).drain()

        assert result.deleted == ["srv-2"]
        assert remote.pushed == []
        assert state.get_shadow() == [kept]

    def test_pushed_records_are_unflagged(self, state: LocalSyncState) -> None:
        """The conflicted flag never reaches the shadow."""
        record = make_record("srv-3", text="Mine", conflicted=True)
        state.save(records=[record], pending=[mutation(Operation.UPDATE, record)])

        MutationReplayer(FakeRemote(), state).drain()

        assert state.get_shadow()[0].conflicted is False

    def test_failure_keeps_failing_entry_and_suffix(self, state: LocalSyncState) -> None:
        """[Update(A), Delete(B), Create(C)] with A failing leaves all three queued."""
        a = make_record("srv-1", text="A edited", version=2)
        b = make_record("srv-2")
        c = make_record("loc-3", text="C")
        queue = [
            mutation(Operation.UPDATE, a),
            mutation(Operation.DELETE, b),
            mutation(Operation.CREATE, c),
        ]
        state.save(records=[a, c], shadow=[a, b], pending=queue)
        remote = FakeRemote()
        remote.fail_on.add("srv-1")

        with pytest.raises(TransportError):
            MutationReplayer(remote, state).drain()

        assert state.get_pending() == queue
        assert remote.pushed == []
        assert [r.id for r in state.get_records()] == ["srv-1", "loc-3"]

    def test_failure_midway_persists_applied_prefix(self, state: LocalSyncState) -> None:
        """Entries before the failure stay applied."""
        first = make_record("loc-1", text="First")
        second = make_record("loc-2", text="Second")
        state.save(
            records=[first, second],
            pending=[
                mutation(Operation.CREATE, first),
                mutation(Operation.CREATE, second),
            ],
        )
        remote = FakeRemote()
        remote.fail_on.add("loc-2")

        with pytest.raises(TransportError):
            MutationReplayer(remote, state).drain()

        assert [r.id for r in state.get_records()] == ["srv-101", "loc-2"]
        assert [m.record.id for m in state.get_pending()] == ["loc-2"]
        assert [r.id for r in state.get_shadow()] == ["srv-101"]

    def test_on_step_called_per_entry(self, state: LocalSyncState) -> None:
        """The step callback fires after every persisted entry."""
        a = make_record("srv-1")
        b = make_record("srv-2")
        state.save(
            records=[],
            pending=[mutation(Operation.DELETE, a), mutation(Operation.DELETE, b)],
        )
        calls: list[int] = []

        MutationReplayer(FakeRemote(), state, on_step=lambda: calls.append(1)).drain()

        assert len(calls) == 2

    def test_repeated_remote_id_stays_unique(self, state: LocalSyncState) -> None:
        """A remote answering every create with the same id never duplicates ids."""
        one = make_record("loc-aaa", text="One")
        two = make_record("loc-bbb", text="Two")
        state.save(
            records=[one, two],
            pending=[mutation(Operation.CREATE, one), mutation(Operation.CREATE, two)],
        )

        class SameIdRemote(FakeRemote):
            def create_remote(self, record):  # type: ignore[no-untyped-def]
                super().create_remote(record)
                return "srv-101"

        result = MutationReplayer(SameIdRemote(), state).drain()

        ids = [r.id for r in state.get_records()]
        assert ids == ["srv-101", "srv-101-bbb"]
        assert [r.id for r in state.get_shadow()] == ids
        assert result.promoted == {"loc-aaa": "srv-101", "loc-bbb": "srv-101-bbb"}


class TestUniqueId:
    """Tests for unique_id()."""

    def test_free_id_is_kept(self) -> None:
        assert unique_id("srv-101", "loc-a", [make_record("loc-a")], []) == "srv-101"

    def test_id_taken_in_shadow(self) -> None:
        """An id only the shadow knows is still taken."""
        result = unique_id("srv-3", "loc-x", [], [make_record("srv-3")])
        assert result == "srv-3-x"
