"""Pydantic schemas for records, queued mutations and snapshots.

Every collection that crosses the local store boundary goes through
these models, so malformed data is rejected there instead of travelling
inward as missing fields.
"""

from __future__ import annotations

import time
import uuid

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

from quotesync.core.types import LOCAL_ID_PREFIX, Operation, Origin

SNAPSHOT_VERSION = 1


class Record(BaseModel):
    """A quote held locally, in the shadow, or on the remote side."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str = Field(min_length=1)
    text: str = Field(min_length=1)
    author: str = ""
    category: str = Field(min_length=1)
    updated_at: float
    version: int = Field(default=1, ge=1)
    origin: Origin
    conflicted: bool = False

    @classmethod
    def new_local(cls, text: str, category: str, author: str = "") -> Record:
        """Create a record with a freshly minted local id."""
        return cls(
            id=f"{LOCAL_ID_PREFIX}{uuid.uuid4().hex[:12]}",
            text=text,
            author=author,
            category=category,
            updated_at=time.time(),
            version=1,
            origin=Origin.LOCAL,
        )

    @property
    def is_local(self) -> bool:
        """True while the record still carries a locally minted id."""
        return self.id.startswith(LOCAL_ID_PREFIX)

    def content(self) -> tuple[str, str, str, str, Origin]:
        """Fields compared when deciding whether a record changed.

        updated_at is synthesized at fetch time for remote records and
        version is informational, so neither takes part.
        """
        return (self.id, self.text, self.author, self.category, self.origin)

    def same_content(self, other: Record) -> bool:
        return self.content() == other.content()


class PendingMutation(BaseModel):
    """A local mutation waiting to be replayed against the remote."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    operation: Operation
    record: Record


class Conflict(BaseModel):
    """A record edited on both sides, kept for manual override.

    Attributes:
        id: Record id the conflict is about.
        local: The user's value at detection time.
        remote: The server value at detection time.
        detected_at: Detection timestamp.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str = Field(min_length=1)
    local: Record
    remote: Record
    detected_at: float = Field(default_factory=time.time)


class StateSnapshot(BaseModel):
    """Serializable export of every persisted collection.

    Every collection is required, so a partial document can never
    replace state it does not mention.
    """

    model_config = ConfigDict(extra="forbid")

    version: int
    records: list[Record]
    pending: list[PendingMutation]
    shadow: list[Record]
    last_sync_at: float | None
    conflicts: list[Conflict]

    @field_validator("version")
    @classmethod
    def check_version(cls, v: int) -> int:
        if v != SNAPSHOT_VERSION:
            raise ValueError(f"unsupported snapshot version {v}, expected {SNAPSHOT_VERSION}")
        return v

    @classmethod
    def empty(cls) -> StateSnapshot:
        """Snapshot of a fresh store."""
        return cls(
            version=SNAPSHOT_VERSION,
            records=[],
            pending=[],
            shadow=[],
            last_sync_at=None,
            conflicts=[],
        )


class QuoteInput(BaseModel):
    """A bare quote as found in an exported quotes file."""

    model_config = ConfigDict(extra="ignore")

    text: str = Field(min_length=1)
    category: str = Field(min_length=1)
    author: str = ""


RecordList = TypeAdapter(list[Record])
MutationList = TypeAdapter(list[PendingMutation])
ConflictList = TypeAdapter(list[Conflict])
QuoteInputList = TypeAdapter(list[QuoteInput])
