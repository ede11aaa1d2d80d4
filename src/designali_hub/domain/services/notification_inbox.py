"""Notification inbox shown in the header.

Wraps the notifications store with the inbox operations: unread count,
recent list, read markers and link resolution to dashboard views.
"""

import asyncio
from datetime import datetime, timezone

from designali_hub.core.exceptions import SyncError
from designali_hub.core.logging import get_logger
from designali_hub.domain.entities.record import Record
from designali_hub.domain.entities.view import LINK_SLUGS, View
from designali_hub.domain.services.collection_store import CollectionStore

logger = get_logger(__name__)


def format_age(timestamp: str | None, now: datetime | None = None) -> str:
    """Short relative age of a notification, e.g. "5m ago".

    Anything older than a week is shown as a dd/mm/yyyy date.
    """
    if not timestamp:
        return ""
    created = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)

    seconds = (now - created).total_seconds()
    minutes = int(seconds // 60)
    hours = int(seconds // 3600)
    days = int(seconds // 86400)

    if minutes < 1:
        return "now"
    if minutes < 60:
        return f"{minutes}m ago"
    if hours < 24:
        return f"{hours}h ago"
    if days < 7:
        return f"{days}d ago"
    return created.strftime("%d/%m/%Y")


class NotificationInbox:
    """Inbox operations over a notifications store."""

    def __init__(self, store: CollectionStore, limit: int = 20) -> None:
        self.store = store
        self.limit = limit

    @property
    def unread_count(self) -> int:
        return sum(1 for _ in self.store.query(lambda record: not record.get("is_read")))

    def recent(self, limit: int | None = None) -> list[Record]:
        """Newest notifications first."""
        return self.store.project(sort_by="created_at", descending=True)[: limit or self.limit]

    async def mark_as_read(self, record_id: str) -> Record:
        return await self.store.set_field(record_id, "is_read", True)

    async def mark_all_as_read(self) -> int:
        """Mark every unread notification as read.

        Produces one success toast, or one error toast if any write failed.

        Returns:
            Number of notifications marked.

        Raises:
            SyncError: The first failure, after the others were attempted.
        """
        unread = [record.id for record in self.store.query(lambda record: not record.get("is_read"))]
        if not unread:
            return 0

        outcomes = await asyncio.gather(
            *(self.store.set_field(record_id, "is_read", True, notify=False) for record_id in unread),
            return_exceptions=True,
        )
        failures = [outcome for outcome in outcomes if isinstance(outcome, BaseException)]
        if failures:
            logger.warning("Some notifications could not be marked as read", failed=len(failures), total=len(unread))
            self.store.notifier.error("Could not mark all notifications as read", collection=self.store.spec.name)
            raise failures[0]

        self.store.notifier.success("All notifications marked as read", collection=self.store.spec.name)
        return len(unread)

    async def delete(self, record_id: str) -> None:
        await self.store.delete(record_id)

    def resolve_link(self, notification: Record) -> View | None:
        """Dashboard view a notification links to, if any."""
        link = notification.get("link")
        if not link:
            return None
        return LINK_SLUGS.get(str(link).strip("/").lower())

    async def open(self, record_id: str) -> View | None:
        """Mark a notification read (if needed) and return its target view."""
        notification = self.store.require(record_id)
        if not notification.get("is_read"):
            try:
                await self.mark_as_read(record_id)
            except SyncError as e:
                # Already reported by the toggle; navigation still proceeds.
                logger.info("Opened notification stays unread", record_id=record_id, error=e.message)
        return self.resolve_link(notification)
