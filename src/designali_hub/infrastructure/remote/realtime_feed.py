"""Realtime change feed over the backend's websocket endpoint.

Protocol:
    client -> {"action": "subscribe", "collection": "tools"}
    server -> {"status": "subscribed", "collection": "tools"}
    server -> {"type": "tools.create", "timestamp": "...", "data": {...}}
    server -> {"type": "heartbeat", "timestamp": "..."}
    client -> {"action": "unsubscribe", "collection": "tools"}

One websocket connection is shared by every collection. Data frames are
normalized to ``{"kind": ..., "record": ...}`` before reaching callbacks.
There is no automatic reconnect: when the connection drops, subscribers
stop receiving changes until they subscribe again.
"""

import asyncio
import json
from typing import Any, Awaitable, Callable
from urllib.parse import urlencode

import websockets
from pydantic import ValidationError
from websockets.exceptions import ConnectionClosed, WebSocketException

from designali_hub.core.config import Settings
from designali_hub.core.exceptions import Conflict, RemoteUnavailable
from designali_hub.core.logging import get_logger
from designali_hub.infrastructure.remote.base import (
    CallbackSubscription,
    ChangeCallback,
    SubscriptionHandle,
)
from designali_hub.infrastructure.remote.schemas import RealtimeMessage

logger = get_logger(__name__)

Connector = Callable[[str], Awaitable[Any]]


class RealtimeFeed:
    """Shared websocket connection dispatching change frames per collection.

    Args:
        url: Websocket endpoint, e.g. "ws://localhost:8000/api/v1/realtime/ws".
        token: Access token passed as the ``token`` query parameter.
        handshake_timeout: Seconds to wait for a subscription acknowledgement.
        connector: Coroutine function opening the connection. Defaults to
            ``websockets.connect``.
    """

    def __init__(
        self,
        url: str,
        token: str | None = None,
        handshake_timeout: float = 5.0,
        connector: Connector | None = None,
    ) -> None:
        self.url = url
        self.token = token
        self.handshake_timeout = handshake_timeout
        self._connector = connector or websockets.connect
        self._ws: Any = None
        self._reader: asyncio.Task | None = None
        self._listeners: dict[str, dict[int, ChangeCallback]] = {}
        self._subscribed: set[str] = set()
        self._acks: dict[str, asyncio.Future] = {}
        self._background: set[asyncio.Task] = set()
        self._next_key = 0
        self._lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, settings: Settings) -> "RealtimeFeed":
        return cls(
            url=settings.realtime_url,
            token=settings.api_token,
            handshake_timeout=settings.realtime_handshake_timeout_seconds,
        )

    @property
    def connected(self) -> bool:
        return self._ws is not None

    def listener_count(self, collection: str) -> int:
        return len(self._listeners.get(collection, {}))

    async def connect(self) -> None:
        """Open the websocket if it is not open yet.

        Raises:
            RemoteUnavailable: If the connection cannot be established.
        """
        if self._ws is not None:
            return
        target = self.url
        if self.token:
            target = f"{self.url}?{urlencode({'token': self.token})}"
        try:
            self._ws = await self._connector(target)
        except (OSError, WebSocketException, asyncio.TimeoutError) as e:
            logger.warning("Realtime connection failed", url=self.url, error=str(e))
            raise RemoteUnavailable(f"Realtime connection failed: {e}") from e

        logger.info("Realtime connected", url=self.url)
        self._reader = asyncio.create_task(self._read_loop(self._ws))

    async def subscribe(self, collection: str, callback: ChangeCallback) -> SubscriptionHandle:
        """Register callback for a collection's changes.

        The first subscriber of a collection performs the subscribe
        handshake; the call completes once the server acknowledged it.

        Raises:
            RemoteUnavailable: If the connection or acknowledgement fails.
            Conflict: If the server rejects the subscription.
        """
        async with self._lock:
            await self.connect()
            if collection not in self._subscribed:
                await self._handshake(collection)
            self._next_key += 1
            key = self._next_key
            self._listeners.setdefault(collection, {})[key] = callback

        return CallbackSubscription(collection, lambda: self._release(collection, key))

    async def _handshake(self, collection: str) -> None:
        future = asyncio.get_running_loop().create_future()
        self._acks[collection] = future
        try:
            await self._send({"action": "subscribe", "collection": collection})
            await asyncio.wait_for(future, timeout=self.handshake_timeout)
        except asyncio.TimeoutError as e:
            raise RemoteUnavailable("Subscription was not acknowledged", collection=collection) from e
        finally:
            self._acks.pop(collection, None)
        self._subscribed.add(collection)
        logger.debug("Realtime subscription acknowledged", collection=collection)

    async def ping(self) -> None:
        await self._send({"action": "ping"})

    async def _send(self, message: dict[str, Any]) -> None:
        if self._ws is None:
            raise RemoteUnavailable("Realtime connection is not open", collection=message.get("collection"))
        try:
            await self._ws.send(json.dumps(message))
        except ConnectionClosed as e:
            raise RemoteUnavailable(f"Realtime connection closed: {e}", collection=message.get("collection")) from e

    def _release(self, collection: str, key: int) -> None:
        listeners = self._listeners.get(collection, {})
        listeners.pop(key, None)
        if listeners or collection not in self._subscribed:
            return
        self._subscribed.discard(collection)
        self._listeners.pop(collection, None)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running loop, server subscription left to expire", collection=collection)
            return
        task = loop.create_task(self._unsubscribe(collection))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _unsubscribe(self, collection: str) -> None:
        try:
            await self._send({"action": "unsubscribe", "collection": collection})
        except RemoteUnavailable as e:
            logger.debug("Unsubscribe not sent", collection=collection, error=e.message)

    async def _read_loop(self, ws: Any) -> None:
        try:
            while True:
                raw = await ws.recv()
                self.handle_message(raw)
        except ConnectionClosed as e:
            logger.warning("Realtime connection closed", url=self.url, error=str(e))
        finally:
            if self._ws is ws:
                self._ws = None
                self._subscribed.clear()
            self._fail_acks(RemoteUnavailable("Realtime connection closed"))

    def handle_message(self, raw: str | bytes) -> None:
        """Dispatch one received frame. Never raises."""
        try:
            data = json.loads(raw)
        except (TypeError, ValueError):
            logger.warning("Dropped unparseable realtime frame", frame=str(raw)[:200])
            return
        if not isinstance(data, dict):
            logger.warning("Dropped non-object realtime frame", frame=str(raw)[:200])
            return
        try:
            message = RealtimeMessage.model_validate(data)
        except ValidationError as e:
            logger.warning("Dropped invalid realtime frame", error=str(e))
            return

        if message.status == "subscribed":
            future = self._acks.get(message.collection or "")
            if future is not None and not future.done():
                future.set_result(None)
            return
        if message.status == "unsubscribed":
            logger.debug("Realtime unsubscribe acknowledged", collection=message.collection)
            return
        if message.error:
            logger.warning("Realtime server error", error=message.error)
            self._fail_acks(Conflict(message.error))
            return
        if message.is_keepalive:
            return

        change = message.change()
        if change is None:
            logger.warning("Dropped unknown realtime frame", frame_type=message.type)
            return

        collection, payload = change
        for callback in list(self._listeners.get(collection, {}).values()):
            try:
                callback(payload)
            except Exception as e:
                logger.error("Change callback failed", collection=collection, error=str(e))

    def _fail_acks(self, error: Exception) -> None:
        for future in self._acks.values():
            if not future.done():
                future.set_exception(error)

    async def close(self) -> None:
        """Close the connection and drop every listener."""
        ws, self._ws = self._ws, None
        self._listeners.clear()
        self._subscribed.clear()
        if self._reader is not None:
            self._reader.cancel()
            await asyncio.gather(self._reader, return_exceptions=True)
            self._reader = None
        if ws is not None:
            try:
                await ws.close()
            except WebSocketException as e:
                logger.debug("Realtime close failed", error=str(e))
        logger.info("Realtime disconnected", url=self.url)
