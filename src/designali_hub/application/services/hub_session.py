"""Hub session: everything the dashboard needs for one signed-in user.

A session owns one store per collection, plus the inbox, preferences,
search and statistics built on those same stores. Stores are bound to the
session's owner; switching users closes the session and builds a new one
instead of re-pointing existing stores.
"""

import asyncio
import uuid
from typing import Any

from designali_hub.core.config import Settings, get_settings
from designali_hub.core.exceptions import SyncError, Unauthorized
from designali_hub.core.hooks import HookRegistry
from designali_hub.core.logging import bind_session_context, clear_context, configure_logging, get_logger
from designali_hub.domain.catalog import CONTENT_COLLECTIONS, DEFAULT_GROUPINGS, NOTIFICATIONS, USER_PROFILES
from designali_hub.domain.entities.aggregate_stats import DashboardSummary
from designali_hub.domain.entities.collection_spec import CollectionSpec
from designali_hub.domain.services.collection_store import CollectionStore, WritePolicy
from designali_hub.domain.services.notification_inbox import NotificationInbox
from designali_hub.domain.services.notifier import Notifier
from designali_hub.domain.services.preferences_service import PreferencesService
from designali_hub.domain.services.search_index import DebouncedSearch, SearchIndex, SearchSource
from designali_hub.domain.services.statistics_aggregator import StatisticsAggregator
from designali_hub.domain.services.suggestion_service import SuggestionService
from designali_hub.infrastructure.remote.base import RemoteCollectionClient
from designali_hub.infrastructure.remote.realtime_feed import RealtimeFeed
from designali_hub.infrastructure.remote.rest_client import RestCollectionClient

logger = get_logger(__name__)


class HubSession:
    """Stores and derived services of one signed-in user.

    Example:
        async with HubSession(client, owner_id="user-1") as session:
            tools = session.store("tools")
            await tools.create({"name": "Figma", "url": "https://figma.com", "category": "Design"})
            session.dashboard.tools  # 1
    """

    def __init__(
        self,
        client: RemoteCollectionClient,
        owner_id: str | None,
        settings: Settings | None = None,
        hooks: HookRegistry | None = None,
        session_id: str | None = None,
    ) -> None:
        if not owner_id:
            raise Unauthorized("A signed-in owner is required to start a session")

        self.client = client
        self.owner_id = owner_id
        self.settings = settings or get_settings()
        self.session_id = session_id or uuid.uuid4().hex
        self.hooks = hooks or HookRegistry()
        self.notifier = Notifier(history_size=self.settings.toast_history_size, hooks=self.hooks)

        policy = WritePolicy(self.settings.structural_write_policy)
        self.stores: dict[str, CollectionStore] = {
            spec.name: self._build_store(spec, policy) for spec in CONTENT_COLLECTIONS
        }
        self.notifications = self._build_store(NOTIFICATIONS, policy)
        self.profiles = self._build_store(USER_PROFILES, policy, notify_external_inserts=False)

        self.inbox = NotificationInbox(self.notifications, limit=self.settings.notification_limit)
        self.preferences = PreferencesService(self.profiles, default_dark_mode=self.settings.default_dark_mode)
        self.suggestions = SuggestionService(self.stores["tools"])
        self.search_index = SearchIndex(
            [
                SearchSource(store, snippet_length=self.settings.search_snippet_length)
                for store in self.stores.values()
            ]
        )
        self.search = DebouncedSearch(
            self.search_index,
            delay=self.settings.search_debounce_seconds,
            hooks=self.hooks,
        )
        self.stats = StatisticsAggregator(self.stores.values(), DEFAULT_GROUPINGS, hooks=self.hooks)

        self._started = False
        self._closed = False

    @classmethod
    def connect(cls, owner_id: str, settings: Settings | None = None) -> "HubSession":
        """Build a session against the configured backend (REST + websocket)."""
        settings = settings or get_settings()
        configure_logging(settings)
        feed = RealtimeFeed.from_settings(settings)
        client = RestCollectionClient.from_settings(settings, feed=feed)
        return cls(client, owner_id, settings)

    def _build_store(
        self,
        spec: CollectionSpec,
        policy: WritePolicy,
        notify_external_inserts: bool | None = None,
    ) -> CollectionStore:
        if notify_external_inserts is None:
            notify_external_inserts = self.settings.notify_external_inserts
        return CollectionStore(
            spec,
            self.client,
            self.owner_id,
            write_policy=policy,
            notifier=self.notifier,
            hooks=self.hooks,
            notify_external_inserts=notify_external_inserts,
        )

    @property
    def all_stores(self) -> list[CollectionStore]:
        return [*self.stores.values(), self.notifications, self.profiles]

    @property
    def started(self) -> bool:
        return self._started

    @property
    def closed(self) -> bool:
        return self._closed

    def store(self, name: str) -> CollectionStore:
        """Store of a collection by name.

        Raises:
            KeyError: If the session has no such collection.
        """
        for store in self.all_stores:
            if store.spec.name == name:
                return store
        raise KeyError(f"Unknown collection '{name}'")

    @property
    def dashboard(self) -> DashboardSummary:
        return self.stats.dashboard_summary()

    async def start(self) -> dict[str, SyncError]:
        """Subscribe and load every store concurrently.

        A collection that fails to load or subscribe does not stop the
        others; its error is returned and was already shown as a toast.

        Returns:
            Collection name -> error, for the collections that failed.
        """
        if self._closed:
            raise RuntimeError("Session is closed")
        bind_session_context(self.owner_id, self.session_id)
        outcomes = await asyncio.gather(*(self._start_store(store) for store in self.all_stores))
        failures = {name: error for name, error in outcomes if error is not None}
        self._started = True
        logger.info(
            "Session started",
            collections=len(outcomes),
            failed=sorted(failures),
        )
        return failures

    async def _start_store(self, store: CollectionStore) -> tuple[str, SyncError | None]:
        # Subscribe before loading: changes committed after the snapshot are
        # delivered by the feed, and those arriving mid-load are replayed.
        subscribe_error: SyncError | None = None
        try:
            await store.subscribe()
        except SyncError as e:
            logger.warning("Collection not subscribed", collection=store.spec.name, error=e.message)
            self.notifier.warning(f"Live updates unavailable for {store.spec.plural}", collection=store.spec.name)
            subscribe_error = e

        try:
            await store.load()
        except SyncError as e:
            logger.warning("Collection not loaded", collection=store.spec.name, error=e.message)
            return store.spec.name, e
        return store.spec.name, subscribe_error

    async def close(self, close_client: bool = False) -> None:
        """Dispose every store and derived service. Idempotent."""
        if self._closed:
            return
        self._closed = True
        self.search.close()
        self.stats.dispose()
        for store in self.all_stores:
            store.dispose()
        if close_client:
            await self.client.close()
        logger.info("Session closed")
        clear_context()

    async def switch_user(self, owner_id: str) -> "HubSession":
        """Close this session and start a new one for another user."""
        await self.close()
        session = HubSession(self.client, owner_id, self.settings)
        await session.start()
        return session

    async def __aenter__(self) -> "HubSession":
        await self.start()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()
