"""Sync engine facade used by the UI collaborator.

This module provides:
- SyncEngine: local mutations, sync triggers, conflict resolution,
  export/import, all over one LocalSyncState and one remote client
- validate_quote: input check applied before anything enters the engine

Every local mutation appends to the pending queue and is persisted
together with the record list in one atomic write. Mutations hold the
same lock as sync cycles, so they never interleave with a running cycle.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import TYPE_CHECKING, Any

import pydantic

from quotesync.client.notifications import log_notification
from quotesync.client.sync.coordinator import SyncCoordinator
from quotesync.client.sync.scheduler import AutoSyncScheduler
from quotesync.core.config import DEFAULT_AUTO_SYNC_INTERVAL
from quotesync.core.errors import ParseError, ValidationError
from quotesync.core.schemas import (
    PendingMutation,
    QuoteInputList,
    Record,
    StateSnapshot,
)
from quotesync.core.types import ConflictChoice, Operation, SyncMode

if TYPE_CHECKING:
    from quotesync.client.notifications import Notification
    from quotesync.client.state import LocalSyncState
    from quotesync.client.sync.coordinator import RemoteProtocol
    from quotesync.client.sync.types import NotifyCallback, RenderCallback, SyncReport
    from quotesync.core.schemas import Conflict
    from quotesync.core.types import SyncState

logger = logging.getLogger(__name__)


def validate_quote(text: str, category: str) -> tuple[str, str]:
    """Check user input for a quote.

    Returns:
        (text, category) stripped of surrounding whitespace.

    Raises:
        ValidationError: If text or category is blank.
    """
    text = (text or "").strip()
    category = (category or "").strip()
    if not text:
        raise ValidationError("Quote text is required")
    if not category:
        raise ValidationError("Quote category is required")
    return text, category


class SyncEngine:
    """Local-first quote collection synchronised with a remote.

    Usage:
        state = LocalSyncState.open(db_path)
        with RemoteClient(RemoteConfig()) as remote:
            engine = SyncEngine(state, remote, on_notify=print)
            engine.upsert_local("Stay hungry.", "Motivation")
            engine.trigger_sync()
    """

    def __init__(
        self,
        state: LocalSyncState,
        remote: RemoteProtocol,
        on_render: RenderCallback | None = None,
        on_notify: NotifyCallback | None = None,
        auto_sync_interval: float = DEFAULT_AUTO_SYNC_INTERVAL,
    ) -> None:
        """Initialize the engine.

        Args:
            state: Local state holding every collection.
            remote: Client for the remote collection.
            on_render: Called after every state-mutating step.
            on_notify: Called with user-facing notifications.
            auto_sync_interval: Seconds between timer-triggered cycles.
        """
        self._state = state
        self._remote = remote
        self._on_render = on_render
        self._on_notify = on_notify or log_notification
        self._lock = threading.RLock()
        self._coordinator = SyncCoordinator(
            state,
            remote,
            on_render=on_render,
            on_notify=self._on_notify,
            store_lock=self._lock,
        )
        self._scheduler = AutoSyncScheduler(
            lambda: self.trigger_sync(SyncMode.SILENT),
            interval=auto_sync_interval,
        )

    @property
    def sync_state(self) -> SyncState:
        return self._coordinator.state

    @property
    def auto_sync_enabled(self) -> bool:
        return self._scheduler.is_running

    def _render(self) -> None:
        if self._on_render:
            self._on_render()

    def _notify(self, notification: Notification) -> None:
        self._on_notify(notification)

    # === Read helpers ===

    def list_records(self) -> list[Record]:
        return self._state.get_records()

    def get_record(self, record_id: str) -> Record | None:
        for record in self._state.get_records():
            if record.id == record_id:
                return record
        return None

    def list_conflicts(self) -> list[Conflict]:
        return self._state.get_conflicts()

    def pending_count(self) -> int:
        return len(self._state.get_pending())

    def last_sync_at(self) -> float | None:
        return self._state.get_last_sync_at()

    # === Local mutations ===

    def upsert_local(
        self,
        text: str,
        category: str,
        author: str = "",
        record_id: str | None = None,
    ) -> Record:
        """Create or edit a record and queue the mutation.

        Args:
            text: Quote text.
            category: Quote category.
            author: Optional author.
            record_id: Id of the record to edit; None creates a new one.

        Returns:
            The stored record.

        Raises:
            ValidationError: If text or category is blank.
            KeyError: If record_id is given but unknown.
        """
        text, category = validate_quote(text, category)
        author = (author or "").strip()

        with self._lock:
            records = self._state.get_records()
            pending = self._state.get_pending()

            if record_id is None:
                record = Record.new_local(text, category, author)
                records.append(record)
                operation = Operation.CREATE
            else:
                index = next(
                    (i for i, r in enumerate(records) if r.id == record_id), None
                )
                if index is None:
                    raise KeyError(record_id)
                current = records[index]
                record = current.model_copy(
                    update={
                        "text": text,
                        "category": category,
                        "author": author,
                        "updated_at": time.time(),
                        "version": current.version + 1,
                        "conflicted": False,
                    }
                )
                records[index] = record
                operation = Operation.UPDATE

            pending.append(PendingMutation(operation=operation, record=record))
            self._state.save(records=records, pending=pending)

        logger.info("Queued %s of %s", operation.value, record.id)
        self._render()
        return record

    def delete_local(self, record_id: str) -> Record:
        """Remove a record and queue its deletion.

        Raises:
            KeyError: If the record is unknown.
        """
        with self._lock:
            records = self._state.get_records()
            index = next((i for i, r in enumerate(records) if r.id == record_id), None)
            if index is None:
                raise KeyError(record_id)
            removed = records.pop(index)
            pending = self._state.get_pending()
            pending.append(PendingMutation(operation=Operation.DELETE, record=removed))
            conflicts = [c for c in self._state.get_conflicts() if c.id != record_id]
            self._state.save(records=records, pending=pending, conflicts=conflicts)

        logger.info("Queued delete of %s", record_id)
        self._render()
        return removed

    # === Sync ===

    def trigger_sync(self, mode: SyncMode = SyncMode.VERBOSE) -> SyncReport | None:
        """Run a sync cycle now.

        Returns:
            The cycle's report, or None if a cycle was already running.
        """
        return self._coordinator.run_cycle(mode)

    def set_auto_sync(self, enabled: bool) -> None:
        """Start or stop the periodic silent sync."""
        if enabled:
            self._scheduler.start()
        else:
            self._scheduler.stop(wait=False)

    def shutdown(self) -> None:
        """Stop background work and wait for a running cycle to finish.

        State stays open; callers close it once this returns.
        """
        self._scheduler.stop(wait=True)
        # A manual cycle on another thread holds the lock until it ends
        with self._lock:
            pass

    # === Conflicts ===

    def resolve_conflict(self, record_id: str, choice: ConflictChoice) -> Record:
        """Apply a manual override to a flagged conflict.

        KEEP_REMOTE stores the server value and drops edits still queued
        for the record. KEEP_LOCAL restores the user's value and queues
        an update so it is pushed on the next sync.

        Returns:
            The stored record.

        Raises:
            KeyError: If no open conflict exists for record_id.
        """
        with self._lock:
            conflicts = self._state.get_conflicts()
            conflict = next((c for c in conflicts if c.id == record_id), None)
            if conflict is None:
                raise KeyError(record_id)

            records = self._state.get_records()
            pending = self._state.get_pending()
            current = next((r for r in records if r.id == record_id), None)
            version = current.version if current else conflict.local.version

            if choice == ConflictChoice.KEEP_REMOTE:
                record = conflict.remote.model_copy(update={"conflicted": False})
                pending = [
                    m
                    for m in pending
                    if not (m.record.id == record_id and m.operation == Operation.UPDATE)
                ]
            else:
                record = conflict.local.model_copy(
                    update={
                        "conflicted": False,
                        "updated_at": time.time(),
                        "version": max(version, conflict.local.version) + 1,
                    }
                )
                pending.append(PendingMutation(operation=Operation.UPDATE, record=record))

            if current is None:
                records.append(record)
            else:
                records = [record if r.id == record_id else r for r in records]
            conflicts = [c for c in conflicts if c.id != record_id]
            self._state.save(records=records, pending=pending, conflicts=conflicts)

        logger.info("Resolved conflict on %s (kept %s)", record_id, choice.value)
        self._render()
        return record

    # === Export / import ===

    def export_state(self) -> dict[str, Any]:
        """Serializable snapshot of every collection."""
        with self._lock:
            snapshot = self._state.snapshot()
        return snapshot.model_dump(mode="json")

    def import_state(self, snapshot: Any) -> int:
        """Load a snapshot produced by export_state(), or a list of quotes.

        A full snapshot replaces every collection. A bare list of
        {text, category, author?} objects adds each quote as a new local
        record queued for creation.

        Returns:
            Number of records imported.

        Raises:
            ParseError: If the snapshot is malformed; nothing is changed.
        """
        if isinstance(snapshot, list):
            return self._import_quotes(snapshot)

        try:
            parsed = StateSnapshot.model_validate(snapshot)
        except pydantic.ValidationError as e:
            raise ParseError(f"Invalid snapshot: {e}") from e

        with self._lock:
            self._state.restore(parsed)
        logger.info("Imported snapshot with %d records", len(parsed.records))
        self._render()
        return len(parsed.records)

    def _import_quotes(self, items: list[Any]) -> int:
        try:
            quotes = [
                (*validate_quote(q.text, q.category), q.author.strip())
                for q in QuoteInputList.validate_python(items)
            ]
        except (pydantic.ValidationError, ValidationError) as e:
            raise ParseError(f"Invalid quotes file: {e}") from e

        with self._lock:
            records = self._state.get_records()
            pending = self._state.get_pending()
            for text, category, author in quotes:
                record = Record.new_local(text, category, author)
                records.append(record)
                pending.append(PendingMutation(operation=Operation.CREATE, record=record))
            self._state.save(records=records, pending=pending)

        logger.info("Imported %d quotes", len(quotes))
        self._render()
        return len(quotes)
