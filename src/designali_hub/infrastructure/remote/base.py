"""Base abstractions for remote collection clients."""

from abc import ABC, abstractmethod
from typing import Any, Callable, Mapping

# Receives normalized change payloads: {"kind": ..., "record": {...}}
ChangeCallback = Callable[[Mapping[str, Any]], None]


class SubscriptionHandle(ABC):
    """Disposable handle of a change subscription."""

    @abstractmethod
    def dispose(self) -> None:
        """Stop delivery. Synchronous and idempotent."""
        ...

    @property
    @abstractmethod
    def active(self) -> bool:
        """Whether the subscription still delivers changes."""
        ...


class CallbackSubscription(SubscriptionHandle):
    """Handle that runs a release callback once on dispose."""

    def __init__(self, collection: str, release: Callable[[], None]) -> None:
        self.collection = collection
        self._release: Callable[[], None] | None = release

    def dispose(self) -> None:
        release, self._release = self._release, None
        if release is not None:
            release()

    @property
    def active(self) -> bool:
        return self._release is not None


class RemoteCollectionClient(ABC):
    """Abstract base class for the managed backend's collection API.

    Rows are plain dicts keyed by backend column names. Every coroutine may
    raise RemoteUnavailable, Unauthorized or Conflict.
    """

    # Whether subscribe_changes can filter by owner on the server side.
    supports_owner_filter: bool = False

    @abstractmethod
    async def select(self, collection: str, owner_id: str) -> list[dict[str, Any]]:
        """Fetch every row of a collection owned by owner_id."""
        ...

    @abstractmethod
    async def insert(self, collection: str, record: Mapping[str, Any]) -> dict[str, Any]:
        """Insert a row and return it as stored (with its backend id)."""
        ...

    @abstractmethod
    async def update(
        self,
        collection: str,
        record_id: str,
        fields: Mapping[str, Any],
    ) -> dict[str, Any]:
        """Apply a partial update and return the updated row."""
        ...

    @abstractmethod
    async def delete(self, collection: str, record_id: str) -> None:
        """Delete a row."""
        ...

    @abstractmethod
    async def subscribe_changes(
        self,
        collection: str,
        callback: ChangeCallback,
        owner_id: str | None = None,
    ) -> SubscriptionHandle:
        """Open a change feed for a collection.

        Completes once the backend has acknowledged the subscription.
        owner_id is only honoured when supports_owner_filter is True.
        """
        ...

    async def close(self) -> None:
        """Release connections held by the client."""
        return None
