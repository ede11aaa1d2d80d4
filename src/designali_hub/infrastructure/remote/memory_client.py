"""In-process backend used for offline mode and tests.

Rows live in per-collection dicts. Every successful write is broadcast to
the collection's subscribers on the next event-loop iteration, the way a
realtime feed would echo it, filtered by owner when the subscriber asked
for it.
"""

import asyncio
import copy
import uuid
from typing import Any, Mapping

from designali_hub.core.exceptions import Conflict, Unauthorized
from designali_hub.core.logging import get_logger
from designali_hub.infrastructure.remote.base import (
    CallbackSubscription,
    ChangeCallback,
    RemoteCollectionClient,
    SubscriptionHandle,
)

logger = get_logger(__name__)


class InMemoryCollectionClient(RemoteCollectionClient):
    """Dict-backed RemoteCollectionClient.

    Args:
        owner_column: Column holding the owner id in every collection.
    """

    supports_owner_filter = True

    def __init__(self, owner_column: str = "user_id") -> None:
        self.owner_column = owner_column
        self._rows: dict[str, dict[str, dict[str, Any]]] = {}
        self._subscribers: dict[str, dict[int, tuple[ChangeCallback, str | None]]] = {}
        self._next_subscriber = 0

    def rows(self, collection: str) -> list[dict[str, Any]]:
        """Copy of the stored rows of a collection."""
        return [copy.deepcopy(row) for row in self._rows.get(collection, {}).values()]

    def subscriber_count(self, collection: str) -> int:
        return len(self._subscribers.get(collection, {}))

    async def select(self, collection: str, owner_id: str) -> list[dict[str, Any]]:
        if not owner_id:
            raise Unauthorized("Missing owner", collection=collection)
        return [
            copy.deepcopy(row)
            for row in self._rows.get(collection, {}).values()
            if row.get(self.owner_column) == owner_id
        ]

    async def insert(self, collection: str, record: Mapping[str, Any]) -> dict[str, Any]:
        if not record.get(self.owner_column):
            raise Unauthorized(f"Row without {self.owner_column}", collection=collection)
        row = copy.deepcopy(dict(record))
        row.setdefault("id", str(uuid.uuid4()))
        table = self._rows.setdefault(collection, {})
        if row["id"] in table:
            raise Conflict(f"Duplicate id '{row['id']}'", collection=collection)
        table[row["id"]] = row
        self._broadcast(collection, "inserted", row)
        return copy.deepcopy(row)

    async def update(
        self,
        collection: str,
        record_id: str,
        fields: Mapping[str, Any],
    ) -> dict[str, Any]:
        table = self._rows.get(collection, {})
        if record_id not in table:
            raise Conflict(f"Record '{record_id}' does not exist", collection=collection)
        changes = {key: value for key, value in fields.items() if key not in ("id", self.owner_column)}
        table[record_id].update(copy.deepcopy(changes))
        row = table[record_id]
        self._broadcast(collection, "updated", row)
        return copy.deepcopy(row)

    async def delete(self, collection: str, record_id: str) -> None:
        table = self._rows.get(collection, {})
        row = table.pop(record_id, None)
        if row is None:
            raise Conflict(f"Record '{record_id}' does not exist", collection=collection)
        self._broadcast(collection, "deleted", row)

    async def subscribe_changes(
        self,
        collection: str,
        callback: ChangeCallback,
        owner_id: str | None = None,
    ) -> SubscriptionHandle:
        self._next_subscriber += 1
        key = self._next_subscriber
        self._subscribers.setdefault(collection, {})[key] = (callback, owner_id)
        logger.debug("Change subscription opened", collection=collection, owner_id=owner_id)

        def release() -> None:
            self._subscribers.get(collection, {}).pop(key, None)

        return CallbackSubscription(collection, release)

    def inject(self, collection: str, payload: Any) -> None:
        """Deliver a raw payload to every subscriber, ignoring owner filters.

        Stands in for a misbehaving feed: foreign owners, malformed frames.
        """
        loop = asyncio.get_running_loop()
        for key, (callback, _) in list(self._subscribers.get(collection, {}).items()):
            loop.call_soon(self._deliver, collection, key, callback, payload)

    def _broadcast(self, collection: str, kind: str, row: dict[str, Any]) -> None:
        subscribers = self._subscribers.get(collection)
        if not subscribers:
            return
        loop = asyncio.get_running_loop()
        owner = row.get(self.owner_column)
        for key, (callback, owner_filter) in list(subscribers.items()):
            if owner_filter is not None and owner_filter != owner:
                continue
            payload = {"kind": kind, "record": copy.deepcopy(row)}
            loop.call_soon(self._deliver, collection, key, callback, payload)

    def _deliver(self, collection: str, key: int, callback: ChangeCallback, payload: dict[str, Any]) -> None:
        # Disposed between scheduling and delivery.
        if key not in self._subscribers.get(collection, {}):
            return
        try:
            callback(payload)
        except Exception as e:
            logger.error("Change callback failed", collection=collection, error=str(e))
