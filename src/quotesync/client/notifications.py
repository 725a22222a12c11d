"""User-facing notifications emitted by the sync engine.

This module provides:
- Notification / NotificationType: a short human-readable message
- Builders for conflicts, applied server changes, sync summaries and failures
- log_notification: default sink when no UI collaborator is attached
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING

from quotesync.core.types import ChangeKind

if TYPE_CHECKING:
    from quotesync.client.sync.types import Change, SyncReport
    from quotesync.core.schemas import Record

logger = logging.getLogger(__name__)

# Longest quote excerpt shown in a message
EXCERPT_LENGTH = 40


class NotificationType(Enum):
    """Type of notification."""

    INFO = auto()
    WARNING = auto()
    ERROR = auto()
    CONFLICT = auto()


@dataclass
class Notification:
    """Represents a notification to display."""

    title: str
    message: str
    type: NotificationType = NotificationType.INFO

    def __str__(self) -> str:
        return f"{self.title}: {self.message}"


def excerpt(record: Record) -> str:
    """Quote text shortened for display."""
    text = record.text
    if len(text) > EXCERPT_LENGTH:
        text = text[: EXCERPT_LENGTH - 3] + "..."
    return f'"{text}"'


def conflict_notification(record: Record) -> Notification:
    """Notification for a record edited on both sides."""
    return Notification(
        title="Conflict Detected",
        message=(
            f"{excerpt(record)} ({record.id}) was edited both here and on the server. "
            f"Flagged for review; run 'quotesync resolve {record.id} --keep local|remote' "
            "to choose which version stays."
        ),
        type=NotificationType.CONFLICT,
    )


_CHANGE_MESSAGES = {
    ChangeKind.NEW: "New quote from server",
    ChangeKind.SERVER_WINS: "Quote updated from server",
    ChangeKind.RESURRECT: "Quote restored from server",
}


def change_notification(change: Change) -> Notification | None:
    """Notification for one applied server change.

    Returns:
        None for changes that need no message (unchanged records).
        Conflicts get conflict_notification().
    """
    if change.kind == ChangeKind.CONFLICT:
        return conflict_notification(change.record)
    title = _CHANGE_MESSAGES.get(change.kind)
    if title is None:
        return None
    return Notification(title=title, message=f"{excerpt(change.record)} ({change.record.id})")


def sync_complete_notification(report: SyncReport) -> Notification:
    """Summary of a successful cycle."""
    parts = []
    if report.reconcile is not None:
        applied = len(report.reconcile.applied) - len(report.reconcile.conflicts)
        if applied:
            parts.append(f"{applied} from server")
        if report.reconcile.conflicts:
            parts.append(f"{len(report.reconcile.conflicts)} conflicts")
    if report.replay is not None and report.replay.total:
        parts.append(f"{report.replay.total} pushed")

    return Notification(
        title="Sync Complete",
        message=", ".join(parts) if parts else "Already up to date",
    )


def sync_failed_notification(error: Exception) -> Notification:
    """The single notification emitted for a failed cycle."""
    return Notification(
        title="Sync Failed",
        message=f"{error}. Local changes are kept and will be retried on the next sync.",
        type=NotificationType.ERROR,
    )


def log_notification(notification: Notification) -> None:
    """Default notify sink: write the notification to the log."""
    if notification.type in (NotificationType.ERROR, NotificationType.CONFLICT):
        logger.warning("%s", notification)
    else:
        logger.info("%s", notification)
