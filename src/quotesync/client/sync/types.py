"""Shared types and dataclasses for sync operations.

This module provides:
- ChangeKind, Change: Classification of each remote record during reconcile
- ReconcileResult: Output of the reconciler
- ReplayResult: Output of the mutation queue replayer
- SyncReport: Overall result of a sync cycle
- Type aliases for engine callbacks
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from quotesync.core.types import ChangeKind, SyncMode

if TYPE_CHECKING:
    from quotesync.client.notifications import Notification
    from quotesync.core.schemas import Conflict, Record


@dataclass(frozen=True)
class Change:
    """One classified remote record."""

    kind: ChangeKind
    record: Record


@dataclass
class ReconcileResult:
    """Result of reconciling the remote snapshot against local state.

    Attributes:
        records: New local record list.
        conflicts: Conflicts detected during this pass.
        changes: Classification of every remote record, in remote order.
    """

    records: list[Record]
    conflicts: list[Conflict] = field(default_factory=list)
    changes: list[Change] = field(default_factory=list)

    def of_kind(self, kind: ChangeKind) -> list[Change]:
        return [c for c in self.changes if c.kind == kind]

    @property
    def applied(self) -> list[Change]:
        """Changes that rewrote or inserted a local record."""
        return [c for c in self.changes if c.kind != ChangeKind.UNCHANGED]


@dataclass
class ReplayResult:
    """Result of draining the pending mutation queue.

    Attributes:
        created: Ids assigned by the remote to promoted records.
        updated: Ids whose content was pushed.
        deleted: Ids removed from the shadow.
        promoted: Mapping of local id to remote id.
    """

    created: list[str] = field(default_factory=list)
    updated: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)
    promoted: dict[str, str] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return len(self.created) + len(self.updated) + len(self.deleted)


@dataclass
class SyncReport:
    """Result of one sync cycle."""

    mode: SyncMode
    started_at: float = field(default_factory=time.time)
    finished_at: float | None = None
    reconcile: ReconcileResult | None = None
    replay: ReplayResult | None = None
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None and self.finished_at is not None

    @property
    def conflicts(self) -> list[Conflict]:
        return self.reconcile.conflicts if self.reconcile else []


# Type aliases for engine -> UI callbacks
RenderCallback = Callable[[], None]
NotifyCallback = Callable[["Notification"], None]
