"""Exception hierarchy for quotesync.

Transport and parse errors abort a sync cycle. StateCorruption is
recovered by the local state layer and never escapes it. ValidationError
is raised at the user-input boundary, before anything enters the engine.
"""

from __future__ import annotations


class QuoteSyncError(Exception):
    """Base exception for quotesync errors."""


class TransportError(QuoteSyncError):
    """A remote fetch or create failed (network error or non-success status)."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ParseError(QuoteSyncError):
    """A remote payload or an imported snapshot is malformed."""


class StateCorruption(QuoteSyncError):
    """A persisted collection could not be decoded.

    Attributes:
        key: Logical name of the unreadable collection.
    """

    def __init__(self, key: str, reason: str) -> None:
        super().__init__(f"Collection '{key}' is unreadable: {reason}")
        self.key = key
        self.reason = reason


class ValidationError(QuoteSyncError):
    """User input or a record is missing required fields."""
