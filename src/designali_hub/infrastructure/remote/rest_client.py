"""RemoteCollectionClient over the backend's records REST API.

Endpoints (relative to ``{backend_url}{api_prefix}``):

    GET    /records/{collection}?skip=&limit=&user_id=   paginated list
    POST   /records/{collection}                         create
    PATCH  /records/{collection}/{id}                    partial update
    DELETE /records/{collection}/{id}                    delete (204)

Change feeds are delegated to a RealtimeFeed when one is configured.
"""

from typing import Any, Mapping

import httpx
from pydantic import ValidationError

from designali_hub.core.config import Settings
from designali_hub.core.exceptions import Conflict, RemoteUnavailable, Unauthorized
from designali_hub.core.logging import get_logger
from designali_hub.infrastructure.remote.base import (
    ChangeCallback,
    RemoteCollectionClient,
    SubscriptionHandle,
)
from designali_hub.infrastructure.remote.realtime_feed import RealtimeFeed
from designali_hub.infrastructure.remote.schemas import RecordListPage

logger = get_logger(__name__)

CONFLICT_STATUSES = (400, 404, 409, 422)
AUTH_STATUSES = (401, 403)


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict):
        detail = body.get("detail") or body.get("error") or body.get("message")
        if detail:
            return str(detail)
    return response.text or response.reason_phrase


def raise_for_status(response: httpx.Response, collection: str | None = None) -> None:
    """Map an unsuccessful response onto the sync error taxonomy.

    Raises:
        Unauthorized: On 401/403.
        Conflict: On 400/404/409/422.
        RemoteUnavailable: On any other error status.
    """
    if response.is_success:
        return
    detail = _error_detail(response)
    message = f"{response.status_code}: {detail}"
    if response.status_code in AUTH_STATUSES:
        raise Unauthorized(message, collection=collection)
    if response.status_code in CONFLICT_STATUSES:
        raise Conflict(message, collection=collection)
    raise RemoteUnavailable(message, collection=collection)


class RestCollectionClient(RemoteCollectionClient):
    """httpx-based client for the records API.

    Args:
        base_url: Records endpoint, e.g. "http://localhost:8000/api/v1/records".
        token: Bearer token sent with every request.
        timeout: Request timeout in seconds.
        page_size: Page size for list requests (max 100).
        feed: Realtime feed used by subscribe_changes.
        owner_param: Query parameter used to filter lists by owner.
        http_client: Pre-built AsyncClient (tests, connection sharing).
    """

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        timeout: float = 10.0,
        page_size: int = 100,
        feed: RealtimeFeed | None = None,
        owner_param: str = "user_id",
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.page_size = page_size
        self.feed = feed
        self.owner_param = owner_param
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(headers=headers, timeout=timeout)
        if http_client is not None:
            self._client.headers.update(headers)

    @classmethod
    def from_settings(cls, settings: Settings, feed: RealtimeFeed | None = None) -> "RestCollectionClient":
        return cls(
            base_url=settings.records_url,
            token=settings.api_token,
            timeout=settings.request_timeout_seconds,
            page_size=settings.page_size,
            feed=feed,
        )

    async def _request(
        self,
        method: str,
        path: str,
        collection: str,
        **kwargs: Any,
    ) -> httpx.Response:
        url = f"{self.base_url}/{path}"
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.warning("Backend request failed", method=method, url=url, error=str(e))
            raise RemoteUnavailable(f"{method} {url} failed: {e}", collection=collection) from e
        raise_for_status(response, collection)
        return response

    @staticmethod
    def _json_row(response: httpx.Response, collection: str) -> dict[str, Any]:
        try:
            body = response.json()
        except ValueError as e:
            raise RemoteUnavailable("Backend returned invalid JSON", collection=collection) from e
        if not isinstance(body, dict):
            raise RemoteUnavailable("Backend returned a non-object record", collection=collection)
        return body

    async def select(self, collection: str, owner_id: str) -> list[dict[str, Any]]:
        if not owner_id:
            raise Unauthorized("Missing owner", collection=collection)

        rows: list[dict[str, Any]] = []
        skip = 0
        while True:
            params = {"skip": skip, "limit": self.page_size, self.owner_param: owner_id}
            response = await self._request("GET", collection, collection, params=params)
            try:
                page = RecordListPage.model_validate(response.json())
            except (ValueError, ValidationError) as e:
                raise RemoteUnavailable(f"Unexpected list response: {e}", collection=collection) from e

            rows.extend(page.items)
            skip += len(page.items)
            if not page.items or skip >= page.total:
                break

        logger.debug("Rows fetched", collection=collection, count=len(rows))
        return rows

    async def insert(self, collection: str, record: Mapping[str, Any]) -> dict[str, Any]:
        response = await self._request("POST", collection, collection, json=dict(record))
        return self._json_row(response, collection)

    async def update(
        self,
        collection: str,
        record_id: str,
        fields: Mapping[str, Any],
    ) -> dict[str, Any]:
        response = await self._request("PATCH", f"{collection}/{record_id}", collection, json=dict(fields))
        return self._json_row(response, collection)

    async def delete(self, collection: str, record_id: str) -> None:
        await self._request("DELETE", f"{collection}/{record_id}", collection)

    async def subscribe_changes(
        self,
        collection: str,
        callback: ChangeCallback,
        owner_id: str | None = None,
    ) -> SubscriptionHandle:
        if self.feed is None:
            raise RemoteUnavailable("No realtime feed configured", collection=collection)
        return await self.feed.subscribe(collection, callback)

    async def close(self) -> None:
        if self.feed is not None:
            await self.feed.close()
        if self._owns_client:
            await self._client.aclose()

