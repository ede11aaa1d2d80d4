"""Pytest configuration for unit tests.

ControlledClient is a scripted backend: every call is recorded, chosen
methods can be failed or held open until the test resolves them, and
change payloads can be pushed to every subscriber (disposed or not).
"""

import asyncio
import itertools
from typing import Any, Mapping

import pytest

from designali_hub.domain.catalog import TOOLS
from designali_hub.domain.services.collection_store import CollectionStore, WritePolicy
from designali_hub.domain.services.notifier import Notifier
from designali_hub.infrastructure.remote.base import (
    CallbackSubscription,
    ChangeCallback,
    RemoteCollectionClient,
    SubscriptionHandle,
)

OWNER = "user-1"
OTHER_OWNER = "user-2"


def tool_row(record_id: str, owner: str = OWNER, **fields: Any) -> dict[str, Any]:
    """Backend row of the tools collection."""
    row = {
        "id": record_id,
        "user_id": owner,
        "name": f"Tool {record_id}",
        "url": f"https://example.com/{record_id}",
        "category": "Design",
        "description": "",
        "icon": None,
        "is_favorite": False,
        "created_at": "2024-01-01T00:00:00+00:00",
        "updated_at": "2024-01-01T00:00:00+00:00",
    }
    row.update(fields)
    return row


class PendingCall:
    """A held client call the test completes explicitly."""

    def __init__(self, method: str, args: tuple, result: Any) -> None:
        self.method = method
        self.args = args
        self.result = result
        self.future: asyncio.Future = asyncio.get_running_loop().create_future()

    def succeed(self) -> None:
        self.future.set_result(self.result)

    def fail(self, error: Exception) -> None:
        self.future.set_exception(error)


class ControlledClient(RemoteCollectionClient):
    """Scripted RemoteCollectionClient for store tests."""

    supports_owner_filter = False

    def __init__(self) -> None:
        self.rows: dict[str, list[dict[str, Any]]] = {}
        self.calls: list[tuple] = []
        self.pending: list[PendingCall] = []
        self.hold: set[str] = set()
        self.fail_with: dict[str, Exception] = {}
        self.subscribers: list[tuple[str, ChangeCallback, CallbackSubscription]] = []
        self._ids = itertools.count(1)

    async def _call(self, method: str, result: Any, *args: Any) -> Any:
        self.calls.append((method, *args))
        if method in self.fail_with:
            raise self.fail_with[method]
        if method in self.hold:
            call = PendingCall(method, args, result)
            self.pending.append(call)
            return await call.future
        return result

    def _find(self, collection: str, record_id: str) -> dict[str, Any] | None:
        for row in self.rows.get(collection, []):
            if row["id"] == record_id:
                return row
        return None

    async def select(self, collection: str, owner_id: str) -> list[dict[str, Any]]:
        rows = [dict(row) for row in self.rows.get(collection, [])]
        return await self._call("select", rows, collection, owner_id)

    async def insert(self, collection: str, record: Mapping[str, Any]) -> dict[str, Any]:
        row = {"id": f"id-{next(self._ids)}", **record}
        return await self._call("insert", row, collection, dict(record))

    async def update(self, collection: str, record_id: str, fields: Mapping[str, Any]) -> dict[str, Any]:
        base = self._find(collection, record_id) or {"id": record_id, "user_id": OWNER}
        row = {**base, **fields}
        return await self._call("update", row, collection, record_id, dict(fields))

    async def delete(self, collection: str, record_id: str) -> None:
        await self._call("delete", None, collection, record_id)

    async def subscribe_changes(
        self,
        collection: str,
        callback: ChangeCallback,
        owner_id: str | None = None,
    ) -> SubscriptionHandle:
        self.calls.append(("subscribe", collection, owner_id))
        if "subscribe" in self.fail_with:
            raise self.fail_with["subscribe"]
        handle = CallbackSubscription(collection, lambda: None)
        self.subscribers.append((collection, callback, handle))
        return handle

    def push(self, collection: str, payload: Any) -> None:
        """Deliver a payload to every callback ever subscribed."""
        for name, callback, _ in list(self.subscribers):
            if name == collection:
                callback(payload)

    def calls_of(self, method: str) -> list[tuple]:
        return [call for call in self.calls if call[0] == method]


async def settle() -> None:
    """Let scheduled callbacks and started tasks run until they block."""
    for _ in range(5):
        await asyncio.sleep(0)


@pytest.fixture
def client() -> ControlledClient:
    return ControlledClient()


@pytest.fixture
def notifier() -> Notifier:
    return Notifier()


@pytest.fixture
def tools_store(client: ControlledClient, notifier: Notifier) -> CollectionStore:
    """Pessimistic tools store of OWNER."""
    return CollectionStore(TOOLS, client, OWNER, notifier=notifier)


@pytest.fixture
def optimistic_tools_store(client: ControlledClient, notifier: Notifier) -> CollectionStore:
    """Optimistic tools store of OWNER."""
    return CollectionStore(TOOLS, client, OWNER, notifier=notifier, write_policy=WritePolicy.OPTIMISTIC)
