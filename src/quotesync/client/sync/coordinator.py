"""Sync coordinator owning the sync cycle lifecycle.

This module provides:
- SyncCoordinator: runs pull -> reconcile -> persist -> drain -> clock
- VALID_TRANSITIONS: the coordinator state machine

States:
    IDLE -> SYNCING -> IDLE
                    -> FAILED -> IDLE

A cycle is entered only when no other cycle is in flight. A trigger that
finds a cycle running is dropped, never queued. A failed cycle emits one
notification and returns to IDLE; the next trigger is the retry.

Notifications:
    | Mode    | Applied server changes | Conflicts | Summary | Failure |
    |---------|------------------------|-----------|---------|---------|
    | VERBOSE | yes                    | yes       | yes     | yes     |
    | SILENT  | no                     | yes       | no      | yes     |
"""

from __future__ import annotations

import logging
import threading
import time
from typing import TYPE_CHECKING, Protocol

from quotesync.client.notifications import (
    change_notification,
    log_notification,
    sync_complete_notification,
    sync_failed_notification,
)
from quotesync.client.sync.reconciler import reconcile, upsert
from quotesync.client.sync.replay import MutationReplayer
from quotesync.client.sync.types import ChangeKind, ReconcileResult, SyncReport
from quotesync.core.errors import QuoteSyncError
from quotesync.core.types import SyncMode, SyncState

if TYPE_CHECKING:
    from quotesync.client.notifications import Notification
    from quotesync.client.state import LocalSyncState
    from quotesync.client.sync.types import NotifyCallback, RenderCallback
    from quotesync.core.schemas import Conflict, Record

logger = logging.getLogger(__name__)


VALID_TRANSITIONS: dict[SyncState, set[SyncState]] = {
    SyncState.IDLE: {SyncState.SYNCING},
    SyncState.SYNCING: {SyncState.IDLE, SyncState.FAILED},
    SyncState.FAILED: {SyncState.IDLE},
}


class InvalidTransitionError(Exception):
    """Raised when attempting invalid state transition."""


class RemoteProtocol(Protocol):
    """Remote operations a sync cycle needs."""

    def fetch_remote(self) -> list[Record]:
        ...

    def create_remote(self, record: Record) -> str:
        ...


def merge_conflicts(open_conflicts: list[Conflict], new: list[Conflict]) -> list[Conflict]:
    """Add newly detected conflicts, replacing older ones for the same id."""
    by_id = {c.id: c for c in open_conflicts}
    for conflict in new:
        by_id[conflict.id] = conflict
    return list(by_id.values())


class SyncCoordinator:
    """Runs sync cycles, one at a time.

    Usage:
        coordinator = SyncCoordinator(state, remote, on_notify=print)
        report = coordinator.run_cycle(SyncMode.VERBOSE)
        if report is None:
            ...  # another cycle was already running
    """

    def __init__(
        self,
        state: LocalSyncState,
        remote: RemoteProtocol,
        on_render: RenderCallback | None = None,
        on_notify: NotifyCallback | None = None,
        store_lock: threading.RLock | None = None,
    ) -> None:
        """Initialize the coordinator.

        Args:
            state: Local state to reconcile into.
            remote: Client for the remote collection.
            on_render: Called after every state-mutating step.
            on_notify: Called with each user-facing notification.
            store_lock: Lock serialising cycles with other local mutations.
        """
        self._state = state
        self._remote = remote
        self._on_render = on_render
        self._on_notify = on_notify or log_notification
        self._store_lock = store_lock or threading.RLock()

        # In-flight guard: acquired without blocking, so overlapping
        # triggers are dropped
        self._in_flight = threading.Lock()
        self._sync_state = SyncState.IDLE
        self._last_report: SyncReport | None = None

    @property
    def state(self) -> SyncState:
        """Get current coordinator state."""
        return self._sync_state

    @property
    def is_syncing(self) -> bool:
        return self._in_flight.locked()

    @property
    def last_report(self) -> SyncReport | None:
        return self._last_report

    def _transition(self, new_state: SyncState) -> None:
        if new_state not in VALID_TRANSITIONS[self._sync_state]:
            raise InvalidTransitionError(
                f"Cannot go from {self._sync_state.name} to {new_state.name}"
            )
        logger.debug("Sync state %s -> %s", self._sync_state.name, new_state.name)
        self._sync_state = new_state

    def _render(self) -> None:
        if self._on_render:
            self._on_render()

    def _notify(self, notification: Notification) -> None:
        self._on_notify(notification)

    def run_cycle(self, mode: SyncMode = SyncMode.VERBOSE) -> SyncReport | None:
        """Run one sync cycle unless one is already in flight.

        Args:
            mode: VERBOSE for manual triggers, SILENT for the timer.

        Returns:
            The cycle's report, or None if the trigger was dropped.
        """
        if not self._in_flight.acquire(blocking=False):
            logger.debug("Sync already in progress, %s trigger dropped", mode.value)
            return None
        try:
            with self._store_lock:
                return self._run(mode)
        finally:
            self._in_flight.release()

    def _run(self, mode: SyncMode) -> SyncReport:
        self._transition(SyncState.SYNCING)
        report = SyncReport(mode=mode)
        logger.info("Sync started (%s)", mode.value)

        try:
            report.reconcile = self._pull_and_reconcile(mode)
            replayer = MutationReplayer(self._remote, self._state, on_step=self._render)
            report.replay = replayer.drain()

            report.finished_at = time.time()
            self._state.set_last_sync_at(report.finished_at)
            self._render()
        except QuoteSyncError as e:
            report.error = str(e)
            self._transition(SyncState.FAILED)
            logger.error("Sync failed: %s", e)
            self._notify(sync_failed_notification(e))
        except Exception as e:
            report.error = str(e)
            self._transition(SyncState.FAILED)
            logger.exception("Unexpected error during sync")
            self._notify(sync_failed_notification(e))
            raise
        else:
            logger.info(
                "Sync complete: %d pushed, %d conflicts",
                report.replay.total,
                len(report.conflicts),
            )
            if mode == SyncMode.VERBOSE:
                self._notify(sync_complete_notification(report))
        finally:
            self._last_report = report
            self._transition(SyncState.IDLE)

        return report

    def _pull_and_reconcile(self, mode: SyncMode) -> ReconcileResult:
        """Fetch the remote, merge it, persist records, shadow and conflicts."""
        remote = self._remote.fetch_remote()
        shadow = self._state.get_shadow()

        result = reconcile(
            remote=remote,
            shadow=shadow,
            local=self._state.get_records(),
            pending=self._state.get_pending(),
        )

        for record in remote:
            shadow = upsert(shadow, record)

        self._state.save(
            records=result.records,
            shadow=shadow,
            conflicts=merge_conflicts(self._state.get_conflicts(), result.conflicts),
        )
        self._render()

        for change in result.changes:
            if change.kind != ChangeKind.CONFLICT and mode == SyncMode.SILENT:
                continue
            notification = change_notification(change)
            if notification is not None:
                self._notify(notification)

        return result
