"""Replay of queued local mutations against the remote.

This module provides:
- MutationReplayer: drains the pending queue in FIFO order
- promote: rewrites a locally minted id to its remote-assigned id
- unique_id: keeps promoted ids unique when the remote repeats itself

Entries are processed one at a time. After each applied entry the
records, the shadow and the remaining queue are persisted in a single
atomic write, so a failure leaves state as of the last applied entry.
A failed push stops the drain; the failing entry and everything after
it stay queued, in order, for the next cycle.

Per operation:
- CREATE with a local id: push, promote the record to the returned id
  (suffixed when that id is already taken) everywhere it appears,
  upsert the shadow
- CREATE with a remote id: upsert the shadow only
- UPDATE: push the content (acknowledgment only), upsert the shadow
- DELETE: drop the shadow entry; the remote offers no delete endpoint
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

from quotesync.client.sync.reconciler import upsert
from quotesync.client.sync.types import ReplayResult
from quotesync.core.types import LOCAL_ID_PREFIX, Operation, Origin

if TYPE_CHECKING:
    from quotesync.client.state import LocalSyncState
    from quotesync.client.sync.types import RenderCallback
    from quotesync.core.schemas import PendingMutation, Record

logger = logging.getLogger(__name__)


class RemoteWriter(Protocol):
    """The part of the remote client the replayer pushes through."""

    def create_remote(self, record: Record) -> str:
        """Push a record and return the remote-assigned id."""
        ...


def _promoted(record: Record, old_id: str, new_id: str) -> Record:
    if record.id != old_id:
        return record
    return record.model_copy(update={"id": new_id, "origin": Origin.REMOTE})


def unique_id(
    new_id: str,
    local_id: str,
    records: list[Record],
    shadow: list[Record],
) -> str:
    """Return new_id, or a variant of it if the id is already taken.

    Some remotes hand out the same id for every create. The variant keeps
    the remote prefix and appends the local suffix, so it stays unique.
    """
    taken = {r.id for r in records if r.id != local_id} | {s.id for s in shadow}
    if new_id not in taken:
        return new_id
    candidate = f"{new_id}-{local_id[len(LOCAL_ID_PREFIX):]}"
    logger.warning(
        "Remote assigned %s to %s but that id is taken; using %s",
        new_id,
        local_id,
        candidate,
    )
    return candidate


def promote(
    old_id: str,
    new_id: str,
    records: list[Record],
    queue: list[PendingMutation],
) -> tuple[list[Record], list[PendingMutation]]:
    """Rewrite old_id to new_id in the records and in queued entries.

    Queued entries are rewritten in place, keeping their position.

    Returns:
        (records, queue) with the id rewritten.
    """
    new_records = [_promoted(r, old_id, new_id) for r in records]
    new_queue = [
        m.model_copy(update={"record": _promoted(m.record, old_id, new_id)})
        if m.record.id == old_id
        else m
        for m in queue
    ]
    return new_records, new_queue


class MutationReplayer:
    """Drains the pending mutation queue against the remote."""

    def __init__(
        self,
        remote: RemoteWriter,
        state: LocalSyncState,
        on_step: RenderCallback | None = None,
    ) -> None:
        """Initialize the replayer.

        Args:
            remote: Client used to push content.
            state: Local state holding records, shadow and queue.
            on_step: Optional callback invoked after each persisted entry.
        """
        self._remote = remote
        self._state = state
        self._on_step = on_step

    def drain(self) -> ReplayResult:
        """Replay every queued mutation, oldest first.

        Returns:
            ReplayResult describing what was applied.

        Raises:
            TransportError: If a push fails; the queue keeps the remaining
                entries, starting with the failing one.
            ParseError: If a create response carries no usable id.
        """
        queue = self._state.get_pending()
        records = self._state.get_records()
        shadow = self._state.get_shadow()
        result = ReplayResult()

        if not queue:
            logger.debug("Pending queue is empty")
            return result

        logger.info("Replaying %d pending mutations", len(queue))

        while queue:
            mutation, rest = queue[0], queue[1:]
            record = mutation.record.model_copy(update={"conflicted": False})

            if mutation.operation == Operation.CREATE:
                if record.is_local:
                    new_id = unique_id(
                        self._remote.create_remote(record), record.id, records, shadow
                    )
                    records, rest = promote(record.id, new_id, records, rest)
                    shadow = upsert(shadow, _promoted(record, record.id, new_id))
                    result.created.append(new_id)
                    result.promoted[record.id] = new_id
                    logger.info("Promoted %s to %s", record.id, new_id)
                else:
                    shadow = upsert(shadow, record)
                    logger.debug("Create of remote id %s recorded in shadow", record.id)

            elif mutation.operation == Operation.UPDATE:
                if record.is_local:
                    logger.debug("Update of unpromoted %s kept local", record.id)
                else:
                    self._remote.create_remote(record)
                shadow = upsert(shadow, record)
                result.updated.append(record.id)

            elif mutation.operation == Operation.DELETE:
                shadow = [s for s in shadow if s.id != record.id]
                result.deleted.append(record.id)
                logger.debug("Dropped %s from shadow", record.id)

            queue = rest
            self._state.save(records=records, pending=queue, shadow=shadow)
            if self._on_step:
                self._on_step()

        return result
