"""Tests for local sync state management."""

from __future__ import annotations

from pathlib import Path

import pytest

from quotesync.client.state import (
    KEY_PENDING,
    KEY_RECORDS,
    KEY_SHADOW,
    LocalSyncState,
    MemoryStore,
    SQLiteStore,
)
from quotesync.core.errors import ValidationError
from quotesync.core.schemas import Conflict, StateSnapshot
from quotesync.core.types import Operation
from tests.fakes import make_record, mutation


class TestSQLiteStore:
    """Tests for the SQLite key-value backend."""

    def test_creates_database(self, tmp_path: Path) -> None:
        """Should create database file."""
        db_path = tmp_path / "state.db"
        store = SQLiteStore(db_path)

        assert db_path.exists()
        assert store.path == db_path
        store.close()

    def test_creates_parent_dirs(self, tmp_path: Path) -> None:
        """Should create parent directories."""
        db_path = tmp_path / "subdir" / "nested" / "state.db"
        store = SQLiteStore(db_path)

        assert db_path.exists()
        store.close()

    def test_get_missing_key(self, tmp_path: Path) -> None:
        """Unknown keys read as None."""
        store = SQLiteStore(tmp_path / "state.db")
        assert store.get("nope") is None
        store.close()

    def test_set_many_and_get(self, tmp_path: Path) -> None:
        """Values written together are all readable."""
        store = SQLiteStore(tmp_path / "state.db")
        store.set_many({"a": "1", "b": "2"})
        store.set_many({"a": "3"})

        assert store.get("a") == "3"
        assert store.get("b") == "2"
        store.close()


class TestLocalSyncStateDefaults:
    """Tests for empty state."""

    @pytest.fixture
    def state(self) -> LocalSyncState:
        """Create an in-memory state."""
        s = LocalSyncState(MemoryStore())
        yield s
        s.close()

    def test_empty_collections(self, state: LocalSyncState) -> None:
        """A fresh store reads as empty collections."""
        assert state.get_records() == []
        assert state.get_pending() == []
        assert state.get_shadow() == []
        assert state.get_conflicts() == []
        assert state.get_last_sync_at() is None


class TestLocalSyncStatePersistence:
    """Tests for reading back written collections."""

    @pytest.fixture
    def state(self, tmp_path: Path) -> LocalSyncState:
        """Create a SQLite-backed state."""
        s = LocalSyncState.open(tmp_path / "state.db")
        yield s
        s.close()

    def test_records_roundtrip(self, state: LocalSyncState) -> None:
        """Records are read back as written."""
        records = [make_record("loc-1"), make_record("srv-2", text="Other")]
        state.set_records(records)
        assert state.get_records() == records

    def test_pending_keeps_order(self, state: LocalSyncState) -> None:
        """Queue order survives persistence."""
        queue = [
            mutation(Operation.CREATE, make_record("loc-1")),
            mutation(Operation.DELETE, make_record("srv-2")),
            mutation(Operation.UPDATE, make_record("srv-3")),
        ]
        state.set_pending(queue)
        assert state.get_pending() == queue

    def test_last_sync_at(self, state: LocalSyncState) -> None:
        """Should store and retrieve last sync time."""
        state.set_last_sync_at(1234567890.5)
        assert state.get_last_sync_at() == 1234567890.5

    def test_conflicts(self, state: LocalSyncState) -> None:
        """Conflicts are persisted with both sides."""
        conflict = Conflict(
            id="srv-1",
            local=make_record("srv-1", text="Mine"),
            remote=make_record("srv-1", text="Theirs"),
            detected_at=5.0,
        )
        state.set_conflicts([conflict])
        assert state.get_conflicts() == [conflict]

    def test_save_leaves_other_collections(self, state: LocalSyncState) -> None:
        """Collections not passed to save() are untouched."""
        shadow = [make_record("srv-1")]
        state.set_shadow(shadow)
        state.save(records=[make_record("loc-1")])

        assert state.get_shadow() == shadow

    def test_survives_reopen(self, tmp_path: Path) -> None:
        """Should reopen existing database with data preserved."""
        db_path = tmp_path / "persist.db"
        record = make_record("loc-1", text="Kept")

        first = LocalSyncState.open(db_path)
        first.save(records=[record], pending=[mutation(Operation.CREATE, record)])
        first.close()

        second = LocalSyncState.open(db_path)
        assert second.get_records() == [record]
        assert len(second.get_pending()) == 1
        second.close()


class TestCorruption:
    """Tests for unreadable collections."""

    def test_invalid_json_resets_collection(self) -> None:
        """A collection that is not JSON reads as empty."""
        state = LocalSyncState(MemoryStore({KEY_RECORDS: "{not json"}))
        assert state.get_records() == []

    def test_wrong_shape_resets_collection(self) -> None:
        """A collection that fails validation reads as empty."""
        state = LocalSyncState(MemoryStore({KEY_PENDING: '[{"operation": "explode"}]'}))
        assert state.get_pending() == []

    def test_corruption_is_per_collection(self) -> None:
        """Only the broken collection is reset."""
        shadow = [make_record("srv-1")]
        store = MemoryStore({KEY_RECORDS: "garbage"})
        state = LocalSyncState(store)
        state.set_shadow(shadow)

        assert state.get_records() == []
        assert state.get_shadow() == shadow
        assert store.get(KEY_SHADOW) is not None


class TestValidation:
    """Tests for rejecting invalid writes."""

    def test_invalid_records_rejected(self) -> None:
        """Malformed records are never written."""
        store = MemoryStore()
        state = LocalSyncState(store)

        with pytest.raises(ValidationError):
            state.save(records=[{"id": "", "text": ""}])

        assert store.get(KEY_RECORDS) is None

    def test_nothing_written_when_one_collection_invalid(self) -> None:
        """A batch with an invalid collection writes nothing."""
        store = MemoryStore()
        state = LocalSyncState(store)

        with pytest.raises(ValidationError):
            state.save(records=[make_record("loc-1")], pending=[{"bad": True}])

        assert store.get(KEY_RECORDS) is None


class TestSnapshots:
    """Tests for snapshot and restore."""

    def test_snapshot_and_restore(self) -> None:
        """Restore replaces every collection."""
        source = LocalSyncState(MemoryStore())
        record = make_record("loc-1")
        source.save(
            records=[record],
            pending=[mutation(Operation.CREATE, record)],
            shadow=[make_record("srv-2")],
            last_sync_at=42.0,
        )
        snapshot = source.snapshot()

        target = LocalSyncState(MemoryStore())
        target.set_records([make_record("srv-9")])
        target.restore(snapshot)

        assert target.snapshot() == snapshot

    def test_restore_empty_snapshot_clears(self) -> None:
        """An empty snapshot wipes existing state."""
        state = LocalSyncState(MemoryStore())
        state.save(records=[make_record("loc-1")], last_sync_at=1.0)

        state.restore(StateSnapshot.empty())

        assert state.get_records() == []
        assert state.get_last_sync_at() is None
