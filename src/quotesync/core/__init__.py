"""Core module - Shared types, schemas, errors and configuration."""

from quotesync.core.config import RemoteConfig
from quotesync.core.errors import (
    ParseError,
    QuoteSyncError,
    StateCorruption,
    TransportError,
    ValidationError,
)
from quotesync.core.schemas import Conflict, PendingMutation, Record, StateSnapshot
from quotesync.core.types import (
    ConflictChoice,
    Operation,
    Origin,
    SyncMode,
    SyncState,
)

__all__ = [
    # Config
    "RemoteConfig",
    # Errors
    "ParseError",
    "QuoteSyncError",
    "StateCorruption",
    "TransportError",
    "ValidationError",
    # Schemas
    "Conflict",
    "PendingMutation",
    "Record",
    "StateSnapshot",
    # Types
    "ConflictChoice",
    "Operation",
    "Origin",
    "SyncMode",
    "SyncState",
]
