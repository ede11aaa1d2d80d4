"""Exceptions raised by collection sync.

Remote failures are classified into a small taxonomy so callers can decide
between retry affordances, re-authentication and conflict messages.
"""


class SyncError(Exception):
    """Base class for all sync-related errors."""

    def __init__(self, message: str, collection: str | None = None) -> None:
        self.message = message
        self.collection = collection
        super().__init__(message)


class RemoteUnavailable(SyncError):
    """Raised when the backend cannot be reached or fails with a server error."""

    pass


class Unauthorized(SyncError):
    """Raised when there is no session or the owner does not match."""

    pass


class Conflict(SyncError):
    """Raised when the backend rejects a write (constraint, missing record)."""

    pass


class MalformedEvent(SyncError):
    """Raised when a change payload cannot be turned into a change event."""

    pass


class RecordNotFoundError(SyncError):
    """Raised when an intent targets a record the store does not hold."""

    def __init__(self, record_id: str, collection: str | None = None) -> None:
        self.record_id = record_id
        super().__init__(f"Record '{record_id}' not found", collection=collection)


class StoreDisposedError(SyncError):
    """Raised when an intent is issued on a disposed store."""

    pass
