from __future__ import annotations


class RosterError(Exception):
    """Base class for failures the roster core reports to its callers."""

    kind = "roster_error"

    def __init__(self, message: str, **context: object) -> None:
        super().__init__(message)
        self.message = message
        self.context = context


class InvalidInput(RosterError):
    kind = "invalid_input"


class ConflictRetry(RosterError):
    """A unique constraint rejected a write because another caller got there first."""

    kind = "conflict_retry"


class StaleReference(RosterError):
    """The targeted row no longer exists."""

    kind = "stale_reference"


class StorageUnavailable(RosterError):
    kind = "storage_unavailable"
