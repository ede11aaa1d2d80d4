"""Collection store: the local mirror of one remote collection.

A CollectionStore holds the records of one owner for one collection. It
loads them once, keeps them current from the realtime feed and turns user
intents (create, update, delete, toggle) into remote writes, applying them
locally either after confirmation (pessimistic) or right away with rollback
on failure (optimistic).

Every mutation of the local map goes through ``_upsert``/``_remove``, which
compare against the current value so that the echo of a write this client
already applied is a no-op. Change application is synchronous and never
awaits, so one event is always applied completely before the next.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Iterator, Mapping
from uuid import uuid4

from designali_hub.core.exceptions import (
    Conflict,
    MalformedEvent,
    RecordNotFoundError,
    RemoteUnavailable,
    StoreDisposedError,
    SyncError,
    Unauthorized,
)
from designali_hub.core.hooks import HookEvent, HookRegistry
from designali_hub.core.logging import get_logger
from designali_hub.domain.entities.change_event import (
    ChangeEvent,
    RecordDeleted,
    RecordInserted,
    RecordUpdated,
    parse_change_event,
)
from designali_hub.domain.entities.collection_spec import CollectionSpec
from designali_hub.domain.entities.record import PROVISIONAL_PREFIX, Record, utc_now
from designali_hub.domain.services.notifier import Notifier
from designali_hub.domain.services.projections import RecordFilter, distinct_values, sort_records
from designali_hub.domain.services.record_validator import RecordValidator
from designali_hub.domain.services.toggle_policy import TogglePolicy, restore_fields
from designali_hub.infrastructure.remote.base import RemoteCollectionClient, SubscriptionHandle

logger = get_logger(__name__)

STORE_EVENTS = (
    HookEvent.STORE_LOADED,
    HookEvent.RECORD_INSERTED,
    HookEvent.RECORD_UPDATED,
    HookEvent.RECORD_DELETED,
    HookEvent.STORE_DISPOSED,
)


class WritePolicy(str, Enum):
    """How structural writes (create/update/delete) touch local state."""

    PESSIMISTIC = "pessimistic"
    OPTIMISTIC = "optimistic"


@dataclass(frozen=True)
class ChangeNotice:
    """Payload dispatched to store listeners.

    Attributes:
        collection: Collection name.
        event: HookEvent name of the change.
        record: Record after the change (None for deletions and store events).
        previous: Record before the change, if there was one.
        origin: "local" for intents, "remote" for feed events, "load" for loads.
    """

    collection: str
    event: str
    record: Record | None = None
    previous: Record | None = None
    origin: str = "remote"

    @property
    def record_id(self) -> str | None:
        if self.record is not None:
            return self.record.id
        if self.previous is not None:
            return self.previous.id
        return None


def _classify(exc: BaseException, collection: str) -> SyncError:
    if isinstance(exc, SyncError):
        return exc
    return RemoteUnavailable(str(exc) or type(exc).__name__, collection=collection)


class CollectionStore:
    """Local mirror of one collection for one owner.

    Example:
        store = CollectionStore(TOOLS, client, owner_id="user-1")
        await store.subscribe()
        await store.load()
        tool = await store.create({"name": "Figma", "url": "https://figma.com", "category": "Design"})
        await store.toggle_favorite(tool.id)
        store.dispose()
    """

    def __init__(
        self,
        spec: CollectionSpec,
        client: RemoteCollectionClient,
        owner_id: str | None,
        *,
        write_policy: WritePolicy = WritePolicy.PESSIMISTIC,
        notifier: Notifier | None = None,
        hooks: HookRegistry | None = None,
        notify_external_inserts: bool = True,
    ) -> None:
        if not owner_id:
            raise Unauthorized("A signed-in owner is required", collection=spec.name)

        self.spec = spec
        self.client = client
        self.owner_id = owner_id
        self.write_policy = WritePolicy(write_policy)
        self.hooks = hooks or HookRegistry()
        self.notifier = notifier or Notifier(hooks=self.hooks)
        self.notify_external_inserts = notify_external_inserts
        self.toggles = TogglePolicy()

        self._records: dict[str, Record] = {}
        self._loaded = False
        self._disposed = False
        self._load_generation = 0
        # Events received while a load is in flight, replayed once it lands.
        self._buffer: list[ChangeEvent] | None = None
        self._subscription: SubscriptionHandle | None = None
        self._subscription_generation = 0
        self._inflight_creates = 0
        self._unconfirmed_inserts: list[str] = []

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def name(self) -> str:
        return self.spec.name

    @property
    def loaded(self) -> bool:
        return self._loaded

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def subscribed(self) -> bool:
        return self._subscription is not None and self._subscription.active

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._records

    def get(self, record_id: str) -> Record | None:
        return self._records.get(record_id)

    def require(self, record_id: str) -> Record:
        """Return a confirmed record or raise.

        Raises:
            StoreDisposedError: If the store was disposed.
            RecordNotFoundError: If the store does not hold the record.
            Conflict: If the record is still a provisional optimistic entry.
        """
        self._ensure_active()
        record = self._records.get(record_id)
        if record is None:
            raise RecordNotFoundError(record_id, collection=self.spec.name)
        if record.is_provisional:
            raise Conflict(f"Record '{record_id}' is still being created", collection=self.spec.name)
        return record

    def query(self, predicate: Callable[[Record], bool] | None = None) -> Iterator[Record]:
        """Lazily iterate records matching predicate.

        Iterates a snapshot taken at call time, so changes applied while a
        consumer iterates never invalidate the iterator.
        """
        snapshot = tuple(self._records.values())
        return (record for record in snapshot if predicate is None or predicate(record))

    @property
    def records(self) -> list[Record]:
        return list(self._records.values())

    def project(
        self,
        record_filter: RecordFilter | None = None,
        sort_by: str | None = None,
        descending: bool = False,
    ) -> list[Record]:
        """Filtered, sorted view of the records for a page."""
        record_filter = record_filter or RecordFilter()
        matches = self.query(lambda record: record_filter.matches(self.spec, record))
        if sort_by is None and self.spec.default_sort is not None:
            sort_by, descending = self.spec.default_sort
        if sort_by is None:
            return list(matches)
        return sort_records(matches, sort_by, descending)

    def distinct(self, field_name: str) -> list[Any]:
        """Distinct values of a field across the records (for filter pickers)."""
        return distinct_values(self.query(), field_name)

    def on_change(self, listener: Callable[[ChangeNotice], None]) -> Callable[[], None]:
        """Call listener after every change to this store.

        Returns:
            A callable that removes the listener.
        """
        hook_ids = [
            self.hooks.register(
                event,
                lambda event_name, notice: listener(notice),
                filters={"collection": self.spec.name},
            )
            for event in STORE_EVENTS
        ]

        def unsubscribe() -> None:
            for hook_id in hook_ids:
                self.hooks.unregister(hook_id)

        return unsubscribe

    # ------------------------------------------------------------------
    # Load and subscribe
    # ------------------------------------------------------------------

    async def load(self, owner_id: str | None = None) -> list[Record]:
        """Replace local contents with the owner's records.

        Change events arriving while the load is in flight are buffered and
        applied on top of the loaded snapshot. When several loads overlap,
        only the most recently started one replaces the contents.

        Raises:
            Unauthorized: If owner_id is empty or not the store's owner.
            RemoteUnavailable: If the backend cannot be reached.
        """
        self._ensure_active()
        owner = self._resolve_owner(owner_id)

        self._load_generation += 1
        generation = self._load_generation
        if self._buffer is None:
            self._buffer = []

        logger.debug("Loading collection", collection=self.spec.name, owner_id=owner)

        try:
            rows = await self.client.select(self.spec.name, owner)
        except Exception as e:
            error = _classify(e, self.spec.name)
            if not self._disposed:
                if generation == self._load_generation:
                    self._flush_buffer()
                logger.warning(
                    "Collection load failed",
                    collection=self.spec.name,
                    error=error.message,
                    error_type=type(error).__name__,
                )
                self.notifier.error(
                    f"Could not load {self.spec.plural}: {error.message}",
                    collection=self.spec.name,
                )
            if error is e:
                raise
            raise error from e

        if self._disposed or generation != self._load_generation:
            logger.debug("Discarded superseded load", collection=self.spec.name, generation=generation)
            return self.records

        records: dict[str, Record] = {}
        for row in rows:
            try:
                record = self.spec.from_remote(row)
            except MalformedEvent as e:
                logger.warning("Skipped malformed row", collection=self.spec.name, error=e.message)
                continue
            if record.owner_id != owner:
                logger.warning("Skipped row of another owner", collection=self.spec.name, record_id=record.id)
                continue
            records[record.id] = record

        self._records = records
        self._loaded = True
        logger.info("Collection loaded", collection=self.spec.name, count=len(records))
        self._emit(HookEvent.STORE_LOADED, ChangeNotice(self.spec.name, HookEvent.STORE_LOADED, origin="load"))
        self._flush_buffer()
        return self.records

    async def subscribe(self, owner_id: str | None = None) -> SubscriptionHandle:
        """Start applying realtime changes. Replaces any prior subscription.

        Deliveries from a replaced or disposed subscription are ignored.

        Raises:
            Unauthorized: If owner_id is empty or not the store's owner.
            RemoteUnavailable: If the feed cannot be opened.
        """
        self._ensure_active()
        owner = self._resolve_owner(owner_id)

        self._release_subscription()
        self._subscription_generation += 1
        generation = self._subscription_generation

        def deliver(payload: Mapping[str, Any]) -> None:
            if self._disposed or generation != self._subscription_generation:
                logger.debug("Ignored change from superseded subscription", collection=self.spec.name)
                return
            self.apply_change(payload)

        server_filter = owner if self.client.supports_owner_filter else None
        try:
            handle = await self.client.subscribe_changes(self.spec.name, deliver, owner_id=server_filter)
        except Exception as e:
            error = _classify(e, self.spec.name)
            logger.warning("Subscription failed", collection=self.spec.name, error=error.message)
            if error is e:
                raise
            raise error from e

        if self._disposed:
            handle.dispose()
            raise StoreDisposedError("Store disposed while subscribing", collection=self.spec.name)
        if generation != self._subscription_generation:
            # A newer subscribe call won the race.
            handle.dispose()
            return handle

        self._subscription = handle
        logger.info("Subscribed to changes", collection=self.spec.name, server_filter=server_filter is not None)
        return handle

    # ------------------------------------------------------------------
    # Change application
    # ------------------------------------------------------------------

    def apply_change(self, event: ChangeEvent | Mapping[str, Any]) -> bool:
        """Apply one change event. Never raises.

        Malformed payloads are logged and dropped. Events for other owners
        are dropped silently. Updates for unknown records are treated as
        inserts; deletes for unknown records are no-ops.

        Returns:
            True if local state changed.
        """
        if self._disposed:
            return False
        try:
            if not isinstance(event, (RecordInserted, RecordUpdated, RecordDeleted)):
                event = parse_change_event(self.spec, event)
            if self._buffer is not None:
                self._buffer.append(event)
                return False
            return self._apply(event)
        except MalformedEvent as e:
            logger.warning("Dropped malformed change event", collection=self.spec.name, error=e.message)
            return False
        except Exception as e:
            logger.warning(
                "Dropped change event that failed to apply",
                collection=self.spec.name,
                error=str(e),
                error_type=type(e).__name__,
            )
            return False

    def _apply(self, event: ChangeEvent) -> bool:
        match event:
            case RecordInserted(record=record) | RecordUpdated(record=record):
                if record.owner_id != self.owner_id:
                    logger.debug("Dropped change of another owner", collection=self.spec.name, record_id=record.id)
                    return False
                is_new = record.id not in self._records
                changed = self._upsert(record, origin="remote")
                if changed and is_new and isinstance(event, RecordInserted):
                    self._note_remote_insert(record)
                return changed
            case RecordDeleted(record_id=record_id, owner_id=owner_id):
                if owner_id is not None and owner_id != self.owner_id:
                    logger.debug("Dropped delete of another owner", collection=self.spec.name, record_id=record_id)
                    return False
                return self._remove(record_id, origin="remote")
            case _:
                logger.warning(
                    "Dropped unknown change event",
                    collection=self.spec.name,
                    event_type=type(event).__name__,
                )
                return False

    def _flush_buffer(self) -> None:
        buffered, self._buffer = self._buffer or [], None
        for event in buffered:
            try:
                self._apply(event)
            except Exception as e:
                logger.warning("Dropped buffered change event", collection=self.spec.name, error=str(e))

    def _note_remote_insert(self, record: Record) -> None:
        if not self.notify_external_inserts:
            return
        if self._inflight_creates:
            # Might be the echo of our own create; decide once it settles.
            self._unconfirmed_inserts.append(record.id)
            return
        self._announce_insert(record)

    def _announce_insert(self, record: Record) -> None:
        title = self.spec.title_of(record)
        self.notifier.info(f"New {self.spec.label} added: {title}", collection=self.spec.name)

    def _finish_create(self, confirmed_id: str | None) -> None:
        self._inflight_creates -= 1
        if confirmed_id in self._unconfirmed_inserts:
            self._unconfirmed_inserts.remove(confirmed_id)
        if self._inflight_creates:
            return
        pending, self._unconfirmed_inserts = self._unconfirmed_inserts, []
        for record_id in pending:
            record = self._records.get(record_id)
            if record is not None:
                self._announce_insert(record)

    def _upsert(self, record: Record, origin: str) -> bool:
        previous = self._records.get(record.id)
        if previous == record:
            return False
        self._records[record.id] = record
        event = HookEvent.RECORD_INSERTED if previous is None else HookEvent.RECORD_UPDATED
        self._emit(event, ChangeNotice(self.spec.name, event, record=record, previous=previous, origin=origin))
        return True

    def _remove(self, record_id: str, origin: str) -> bool:
        previous = self._records.pop(record_id, None)
        if previous is None:
            return False
        self._emit(
            HookEvent.RECORD_DELETED,
            ChangeNotice(self.spec.name, HookEvent.RECORD_DELETED, previous=previous, origin=origin),
        )
        return True

    def _apply_local(self, record: Record) -> bool:
        """Write a locally derived record into the mirror (toggle policy)."""
        if self._disposed:
            return False
        return self._upsert(record, origin="local")

    def _emit(self, event: str, notice: ChangeNotice) -> None:
        self.hooks.emit(event, notice, filters={"collection": self.spec.name})

    # ------------------------------------------------------------------
    # Intents
    # ------------------------------------------------------------------

    async def create(self, fields: Mapping[str, Any], *, notify: bool = True) -> Record:
        """Create a record from client field values.

        Spec defaults fill in missing fields. Values are validated before
        anything is sent.

        Raises:
            RecordValidationFailed: If the values are invalid.
            SyncError: If the remote insert failed.
        """
        self._ensure_active()
        values = {**self.spec.defaults, **fields}
        if self.spec.favorite_column is not None:
            values.setdefault("favorite", False)
        RecordValidator.ensure_valid(self.spec, values)

        now = utc_now()
        row = self.spec.to_remote(values)
        row[self.spec.owner_column] = self.owner_id
        row["created_at"] = now
        row["updated_at"] = now

        provisional = None
        if self.write_policy is WritePolicy.OPTIMISTIC:
            provisional = Record(
                id=f"{PROVISIONAL_PREFIX}{uuid4().hex}",
                owner_id=self.owner_id,
                created_at=now,
                updated_at=now,
            ).with_fields(values)
            self._upsert(provisional, origin="local")

        self._inflight_creates += 1
        try:
            stored = await self.client.insert(self.spec.name, row)
            record = self.spec.from_remote(stored)
            if record.owner_id != self.owner_id:
                raise Unauthorized("Backend returned a record of another owner", collection=self.spec.name)
        except Exception as e:
            error = _classify(e, self.spec.name)
            self._finish_create(None)
            if provisional is not None and not self._disposed:
                self._remove(provisional.id, origin="local")
            self._report_failure(f"Could not create {self.spec.label}", error, notify)
            if error is e:
                raise
            raise error from e

        if not self._disposed:
            if provisional is not None:
                self._remove(provisional.id, origin="local")
            self._upsert(record, origin="local")
        self._finish_create(record.id)

        logger.info("Record created", collection=self.spec.name, record_id=record.id)
        if notify:
            self.notifier.success(f"{self.spec.label.capitalize()} created", collection=self.spec.name)
        return record

    async def update(self, record_id: str, fields: Mapping[str, Any], *, notify: bool = True) -> Record:
        """Apply a partial update to a record.

        Raises:
            RecordNotFoundError: If the store does not hold the record.
            RecordValidationFailed: If the values are invalid.
            SyncError: If the remote update failed.
        """
        current = self.require(record_id)
        RecordValidator.ensure_valid(self.spec, fields, partial=True)
        changes = {**fields, "updated_at": utc_now()}

        ticket = self.toggles.begin(record_id, fields)
        if self.write_policy is WritePolicy.OPTIMISTIC:
            self._upsert(current.with_fields(changes), origin="local")

        try:
            stored = await self._send_update(record_id, changes)
            confirmed = self.spec.from_remote(stored)
        except Exception as e:
            error = _classify(e, self.spec.name)
            if self.write_policy is WritePolicy.OPTIMISTIC and not self._disposed:
                restorable = self.toggles.restorable_fields(ticket)
                latest = self._records.get(record_id)
                if restorable and latest is not None:
                    self._upsert(restore_fields(latest, current, restorable), origin="local")
            self._report_failure(f"Could not update {self.spec.label}", error, notify)
            if error is e:
                raise
            raise error from e

        if not self._disposed and confirmed.owner_id == self.owner_id:
            latest = self._records.get(record_id)
            if self.toggles.is_latest(ticket):
                self._upsert(confirmed, origin="local")
            elif latest is not None:
                # A newer write is in flight: keep its values, take ours where still current.
                self._upsert(restore_fields(latest, confirmed, self.toggles.current_fields(ticket)), origin="local")

        logger.info("Record updated", collection=self.spec.name, record_id=record_id, fields=sorted(fields))
        if notify:
            self.notifier.success(f"{self.spec.label.capitalize()} updated", collection=self.spec.name)
        return self._records.get(record_id, confirmed)

    async def delete(self, record_id: str, *, notify: bool = True) -> None:
        """Delete a record.

        Raises:
            RecordNotFoundError: If the store does not hold the record.
            SyncError: If the remote delete failed.
        """
        current = self.require(record_id)
        self.toggles.invalidate(record_id)
        if self.write_policy is WritePolicy.OPTIMISTIC:
            self._remove(record_id, origin="local")

        try:
            await self.client.delete(self.spec.name, record_id)
        except Exception as e:
            error = _classify(e, self.spec.name)
            if (
                self.write_policy is WritePolicy.OPTIMISTIC
                and not self._disposed
                and record_id not in self._records
            ):
                self._upsert(current, origin="local")
            self._report_failure(f"Could not delete {self.spec.label}", error, notify)
            if error is e:
                raise
            raise error from e

        if not self._disposed:
            self._remove(record_id, origin="local")
        self.toggles.forget(record_id)

        logger.info("Record deleted", collection=self.spec.name, record_id=record_id)
        if notify:
            self.notifier.success(f"{self.spec.label.capitalize()} deleted", collection=self.spec.name)

    async def toggle_favorite(self, record_id: str) -> Record:
        """Flip the favorite flag optimistically."""
        if self.spec.favorite_column is None:
            raise ValueError(f"Collection '{self.spec.name}' has no favorite flag")
        return await self.toggles.toggle(
            self,
            record_id,
            "favorite",
            lambda value: not value,
            describe=lambda value: "Added to favorites" if value else "Removed from favorites",
        )

    async def set_field(
        self,
        record_id: str,
        field_name: str,
        value: Any,
        describe: Callable[[Any], str] | None = None,
        notify: bool = True,
    ) -> Record:
        """Set one field optimistically with version-guarded rollback."""
        RecordValidator.ensure_valid(self.spec, {field_name: value}, partial=True)
        return await self.toggles.toggle(
            self, record_id, field_name, lambda _: value, describe=describe, notify=notify
        )

    async def _send_update(self, record_id: str, changes: Mapping[str, Any]) -> dict[str, Any]:
        """Send a partial update without touching local state."""
        row = self.spec.to_remote(changes)
        try:
            return await self.client.update(self.spec.name, record_id, row)
        except SyncError:
            raise
        except Exception as e:
            raise _classify(e, self.spec.name) from e

    def _report_failure(self, message: str, error: SyncError, notify: bool) -> None:
        logger.warning(
            "Remote write failed",
            collection=self.spec.name,
            error=error.message,
            error_type=type(error).__name__,
        )
        if notify:
            self.notifier.error(f"{message}: {error.message}", collection=self.spec.name)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def dispose(self) -> None:
        """Release the subscription and stop applying changes. Idempotent."""
        if self._disposed:
            return
        self._release_subscription()
        self._subscription_generation += 1
        self._buffer = None
        self._disposed = True
        logger.debug("Store disposed", collection=self.spec.name)
        self._emit(HookEvent.STORE_DISPOSED, ChangeNotice(self.spec.name, HookEvent.STORE_DISPOSED, origin="local"))

    def _release_subscription(self) -> None:
        handle, self._subscription = self._subscription, None
        if handle is not None:
            handle.dispose()

    def _resolve_owner(self, owner_id: str | None) -> str:
        if owner_id is None:
            return self.owner_id
        if not owner_id:
            raise Unauthorized("A signed-in owner is required", collection=self.spec.name)
        if owner_id != self.owner_id:
            raise Unauthorized(
                f"Store is bound to another owner than '{owner_id}'",
                collection=self.spec.name,
            )
        return owner_id

    def _ensure_active(self) -> None:
        if self._disposed:
            raise StoreDisposedError(f"Store '{self.spec.name}' is disposed", collection=self.spec.name)
