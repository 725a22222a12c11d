"""Three-way reconciliation of remote, shadow and local records.

Every remote record is classified by whether its id is known to the
shadow (the remote as seen at the end of the previous sync), whether it
exists locally, and whether a local edit is still queued for it:

| In shadow | In local              | Pending edit | Action                          |
|-----------|-----------------------|--------------|---------------------------------|
| no        | no                    | -            | Insert remote (NEW)             |
| no        | yes                   | yes          | Keep local, flag (CONFLICT)     |
| no        | yes                   | no           | Overwrite (SERVER_WINS)         |
| yes       | no                    | -            | Re-insert remote (RESURRECT)    |
| yes       | yes, remote unchanged | -            | No-op (UNCHANGED)               |
| yes       | yes, remote changed   | yes          | Overwrite and flag (CONFLICT)   |
| yes       | yes, remote changed   | no           | Overwrite (SERVER_WINS)         |

The remote value always becomes the stored value, except when the record
was never seen remotely and the user has an edit queued for it. Any case
where the server changed content the user also edited is flagged and
recorded as a Conflict for optional manual override.

"Remote changed" compares record content with the shadow entry. Remote
timestamps are synthesized at fetch time and never take part.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from quotesync.client.sync.types import Change, ChangeKind, ReconcileResult
from quotesync.core.schemas import Conflict
from quotesync.core.types import Operation

if TYPE_CHECKING:
    from quotesync.core.schemas import PendingMutation, Record

logger = logging.getLogger(__name__)

EDIT_OPERATIONS = frozenset({Operation.CREATE, Operation.UPDATE})


def pending_edit_ids(pending: list[PendingMutation]) -> set[str]:
    """Ids with a queued create or update."""
    return {m.record.id for m in pending if m.operation in EDIT_OPERATIONS}


def upsert(records: list[Record], record: Record) -> list[Record]:
    """Return a copy of records with record replaced by id, or appended."""
    result = list(records)
    for i, existing in enumerate(result):
        if existing.id == record.id:
            result[i] = record
            return result
    result.append(record)
    return result


def reconcile(
    remote: list[Record],
    shadow: list[Record],
    local: list[Record],
    pending: list[PendingMutation],
) -> ReconcileResult:
    """Merge the remote snapshot into the local records.

    This function is pure: inputs are left untouched.

    Args:
        remote: Records just fetched from the remote.
        shadow: Remote snapshot from the end of the previous sync.
        local: Current local records.
        pending: Current pending mutation queue.

    Returns:
        ReconcileResult with the new local records, the detected conflicts
        and one Change per remote record.
    """
    shadow_by_id = {r.id: r for r in shadow}
    edited = pending_edit_ids(pending)

    records = list(local)
    index = {r.id: i for i, r in enumerate(records)}
    result = ReconcileResult(records=records)

    def record_change(kind: ChangeKind, record: Record) -> None:
        result.changes.append(Change(kind=kind, record=record))

    def insert(record: Record, kind: ChangeKind) -> None:
        index[record.id] = len(records)
        records.append(record)
        record_change(kind, record)

    def overwrite(i: int, record: Record) -> None:
        current = records[i]
        if current.same_content(record) and not current.conflicted:
            record_change(ChangeKind.UNCHANGED, current)
            return
        records[i] = record
        record_change(ChangeKind.SERVER_WINS, record)

    def flag(i: int, kept: Record, server: Record) -> None:
        user_value = records[i].model_copy(update={"conflicted": False})
        records[i] = kept.model_copy(update={"conflicted": True})
        result.conflicts.append(
            Conflict(id=server.id, local=user_value, remote=server)
        )
        record_change(ChangeKind.CONFLICT, records[i])
        logger.warning("Conflict on %s: edited locally and remotely", server.id)

    for r in remote:
        base = shadow_by_id.get(r.id)
        i = index.get(r.id)

        if base is None:
            if i is None:
                insert(r, ChangeKind.NEW)
            elif r.id in edited:
                flag(i, kept=records[i], server=r)
            else:
                overwrite(i, r)
            continue

        if i is None:
            insert(r, ChangeKind.RESURRECT)
        elif r.same_content(base):
            record_change(ChangeKind.UNCHANGED, records[i])
        elif r.id in edited:
            flag(i, kept=r, server=r)
        else:
            overwrite(i, r)

    logger.debug(
        "Reconciled %d remote records: %d applied, %d conflicts",
        len(remote),
        len(result.applied) - len(result.conflicts),
        len(result.conflicts),
    )
    return result
