"""Shared types for quotesync.

This module defines enums used by the local state, the sync engine and
the command-line collaborator.
"""

from __future__ import annotations

from enum import Enum

LOCAL_ID_PREFIX = "loc-"
REMOTE_ID_PREFIX = "srv-"

# Category assigned to every record discovered on the remote side
REMOTE_CATEGORY = "Server"


class Origin(str, Enum):
    """Which side minted a record's id."""

    LOCAL = "local"
    REMOTE = "remote"


class Operation(str, Enum):
    """Kind of a queued local mutation."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class SyncState(str, Enum):
    """Lifecycle state of the sync orchestrator."""

    IDLE = "idle"
    SYNCING = "syncing"
    FAILED = "failed"


class SyncMode(str, Enum):
    """How a sync cycle reports its progress.

    VERBOSE is used for manual triggers and notifies every classified
    change. SILENT is used by the auto-sync timer and only reports
    conflicts and failures.
    """

    VERBOSE = "verbose"
    SILENT = "silent"


class ConflictChoice(str, Enum):
    """Manual override for a flagged conflict."""

    KEEP_REMOTE = "remote"
    KEEP_LOCAL = "local"


class ChangeKind(Enum):
    """How the reconciler classified a remote record."""

    NEW = "new"  # Unknown on both shadow and local side
    SERVER_WINS = "server_wins"  # Remote value overwrote the local one
    CONFLICT = "conflict"  # Edited on both sides, flagged for manual override
    RESURRECT = "resurrect"  # Deleted locally, re-inserted from remote
    UNCHANGED = "unchanged"  # Nothing to do
