"""Sync operations for the quote collection.

Architecture:
    RemoteClient (pull) → reconcile → LocalSyncState → MutationReplayer (push)

Components:
- **reconcile**: Three-way merge of remote, shadow and local records
- **MutationReplayer**: Drains the pending queue, promotes local ids
- **SyncCoordinator**: One cycle at a time, state machine, notifications
- **AutoSyncScheduler**: Periodic silent sync
- **SyncEngine**: Facade for the UI collaborator

All public symbols are re-exported here.
"""

from quotesync.client.sync.types import (
    Change,
    ChangeKind,
    NotifyCallback,
    ReconcileResult,
    RenderCallback,
    ReplayResult,
    SyncReport,
)
from quotesync.client.sync.reconciler import reconcile, upsert
from quotesync.client.sync.replay import MutationReplayer, promote
from quotesync.client.sync.coordinator import (
    InvalidTransitionError,
    SyncCoordinator,
    merge_conflicts,
)
from quotesync.client.sync.scheduler import AutoSyncScheduler
from quotesync.client.sync.engine import SyncEngine, validate_quote

__all__ = [
    # Types
    "Change",
    "ChangeKind",
    "NotifyCallback",
    "ReconcileResult",
    "RenderCallback",
    "ReplayResult",
    "SyncReport",
    # Reconcile / replay
    "MutationReplayer",
    "promote",
    "reconcile",
    "upsert",
    # Coordinator
    "InvalidTransitionError",
    "SyncCoordinator",
    "merge_conflicts",
    # Scheduler
    "AutoSyncScheduler",
    # Engine
    "SyncEngine",
    "validate_quote",
]
