"""Local state management for the sync client.

This module provides:
- KeyValueStore: Protocol for the persistence backend
- SQLiteStore: SQLite-backed key-value store
- MemoryStore: In-memory key-value store (tests, ephemeral sessions)
- LocalSyncState: Typed access to the persisted collections

Architecture:
    Each collection (records, pending queue, shadow, last sync timestamp,
    open conflicts) is a single JSON document stored under a stable key.
    Several collections written together go through one set_many() call,
    which the backends apply atomically.

    A collection that cannot be decoded is reset to its empty default.
    Callers must tolerate silently-reset state.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
from pathlib import Path
from typing import Any, Protocol, TypeVar

import pydantic
from pydantic import TypeAdapter

from quotesync.core.errors import StateCorruption, ValidationError
from quotesync.core.schemas import (
    SNAPSHOT_VERSION,
    Conflict,
    ConflictList,
    MutationList,
    PendingMutation,
    Record,
    RecordList,
    StateSnapshot,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

KEY_RECORDS = "records"
KEY_PENDING = "pending"
KEY_SHADOW = "shadow"
KEY_LAST_SYNC_AT = "last_sync_at"
KEY_CONFLICTS = "conflicts"

_Timestamp: TypeAdapter[float | None] = TypeAdapter(float | None)


class KeyValueStore(Protocol):
    """Persistence backend for the local collections."""

    def get(self, key: str) -> str | None:
        """Return the stored value, or None if the key was never written."""
        ...

    def set_many(self, items: dict[str, str]) -> None:
        """Write all items in one atomic step."""
        ...

    def close(self) -> None:
        """Release backend resources."""
        ...


class SQLiteStore:
    """SQLite-backed key-value store."""

    def __init__(self, db_path: Path) -> None:
        """Initialize the store database.

        Args:
            db_path: Path to SQLite database file.
        """
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

        # The auto-sync timer writes from its own thread
        self._lock = threading.RLock()

        self._conn = sqlite3.connect(
            str(self._db_path),
            check_same_thread=False,
            isolation_level=None,  # Explicit transactions in set_many
        )
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS kv_store (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            )
        """)

    @property
    def path(self) -> Path:
        return self._db_path

    def get(self, key: str) -> str | None:
        try:
            with self._lock:
                row = self._conn.execute(
                    "SELECT value FROM kv_store WHERE key = ?",
                    (key,),
                ).fetchone()
        except sqlite3.DatabaseError as e:
            raise StateCorruption(key, str(e)) from e
        return row[0] if row else None

    def set_many(self, items: dict[str, str]) -> None:
        if not items:
            return
        with self._lock:
            self._conn.execute("BEGIN IMMEDIATE")
            try:
                self._conn.executemany(
                    "INSERT OR REPLACE INTO kv_store (key, value) VALUES (?, ?)",
                    list(items.items()),
                )
            except Exception:
                self._conn.execute("ROLLBACK")
                raise
            self._conn.execute("COMMIT")

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()


class MemoryStore:
    """Dict-backed key-value store."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._lock = threading.RLock()
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._data.get(key)

    def set_many(self, items: dict[str, str]) -> None:
        with self._lock:
            self._data.update(items)

    def close(self) -> None:
        pass


class LocalSyncState:
    """Typed view over the persisted sync collections."""

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    @classmethod
    def open(cls, db_path: Path) -> LocalSyncState:
        """Open state backed by a SQLite file."""
        return cls(SQLiteStore(db_path))

    def close(self) -> None:
        self._store.close()

    # === Decoding ===

    def _load(self, key: str, adapter: TypeAdapter[T], default: T) -> T:
        """Read and validate one collection, resetting it if unreadable."""
        try:
            raw = self._store.get(key)
            if raw is None:
                return default
            try:
                return adapter.validate_python(json.loads(raw))
            except (json.JSONDecodeError, pydantic.ValidationError) as e:
                raise StateCorruption(key, str(e)) from e
        except StateCorruption as e:
            logger.warning("%s; resetting to empty default", e)
            return default

    @staticmethod
    def _encode(key: str, adapter: TypeAdapter[Any], value: Any) -> str:
        try:
            validated = adapter.validate_python(value)
        except pydantic.ValidationError as e:
            raise ValidationError(f"Refusing to store invalid {key}: {e}") from e
        return adapter.dump_json(validated).decode()

    # === Collections ===

    def get_records(self) -> list[Record]:
        return self._load(KEY_RECORDS, RecordList, [])

    def set_records(self, records: list[Record]) -> None:
        self.save(records=records)

    def get_pending(self) -> list[PendingMutation]:
        return self._load(KEY_PENDING, MutationList, [])

    def set_pending(self, pending: list[PendingMutation]) -> None:
        self.save(pending=pending)

    def get_shadow(self) -> list[Record]:
        return self._load(KEY_SHADOW, RecordList, [])

    def set_shadow(self, shadow: list[Record]) -> None:
        self.save(shadow=shadow)

    def get_conflicts(self) -> list[Conflict]:
        return self._load(KEY_CONFLICTS, ConflictList, [])

    def set_conflicts(self, conflicts: list[Conflict]) -> None:
        self.save(conflicts=conflicts)

    def get_last_sync_at(self) -> float | None:
        """Get timestamp of last successful sync."""
        return self._load(KEY_LAST_SYNC_AT, _Timestamp, None)

    def set_last_sync_at(self, timestamp: float) -> None:
        """Set timestamp of last successful sync."""
        self.save(last_sync_at=timestamp)

    def save(
        self,
        *,
        records: list[Record] | None = None,
        pending: list[PendingMutation] | None = None,
        shadow: list[Record] | None = None,
        conflicts: list[Conflict] | None = None,
        last_sync_at: float | None = None,
    ) -> None:
        """Write the given collections in one atomic step.

        Collections left as None are not touched. Every value is validated
        before anything is written.
        """
        items: dict[str, str] = {}
        if records is not None:
            items[KEY_RECORDS] = self._encode(KEY_RECORDS, RecordList, records)
        if pending is not None:
            items[KEY_PENDING] = self._encode(KEY_PENDING, MutationList, pending)
        if shadow is not None:
            items[KEY_SHADOW] = self._encode(KEY_SHADOW, RecordList, shadow)
        if conflicts is not None:
            items[KEY_CONFLICTS] = self._encode(KEY_CONFLICTS, ConflictList, conflicts)
        if last_sync_at is not None:
            items[KEY_LAST_SYNC_AT] = self._encode(
                KEY_LAST_SYNC_AT, _Timestamp, last_sync_at
            )
        self._store.set_many(items)

    # === Snapshots ===

    def snapshot(self) -> StateSnapshot:
        """Capture every collection."""
        return StateSnapshot(
            version=SNAPSHOT_VERSION,
            records=self.get_records(),
            pending=self.get_pending(),
            shadow=self.get_shadow(),
            last_sync_at=self.get_last_sync_at(),
            conflicts=self.get_conflicts(),
        )

    def restore(self, snapshot: StateSnapshot) -> None:
        """Replace every collection with the snapshot's content."""
        items = {
            KEY_RECORDS: RecordList.dump_json(snapshot.records).decode(),
            KEY_PENDING: MutationList.dump_json(snapshot.pending).decode(),
            KEY_SHADOW: RecordList.dump_json(snapshot.shadow).decode(),
            KEY_CONFLICTS: ConflictList.dump_json(snapshot.conflicts).decode(),
            KEY_LAST_SYNC_AT: json.dumps(snapshot.last_sync_at),
        }
        self._store.set_many(items)
