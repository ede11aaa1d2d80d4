"""Unit tests for the NotificationInbox."""

import asyncio
from datetime import datetime, timezone

import pytest
import pytest_asyncio

from designali_hub.core.exceptions import RemoteUnavailable
from designali_hub.domain.catalog import NOTIFICATIONS
from designali_hub.domain.entities.toast import ToastLevel
from designali_hub.domain.entities.view import View
from designali_hub.domain.services.collection_store import CollectionStore
from designali_hub.domain.services.notification_inbox import NotificationInbox, format_age
from tests.unit.conftest import OWNER, settle

NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


def notification_row(record_id, created_at, is_read=False, link=None):
    return {
        "id": record_id,
        "user_id": OWNER,
        "title": f"Notification {record_id}",
        "message": "",
        "type": "info",
        "is_read": is_read,
        "link": link,
        "created_at": created_at,
    }


@pytest_asyncio.fixture
async def inbox(client, notifier):
    client.rows["notifications"] = [
        notification_row("n1", "2024-06-01T10:00:00+00:00"),
        notification_row("n2", "2024-06-03T10:00:00+00:00", is_read=True),
        notification_row("n3", "2024-06-02T10:00:00+00:00", link="/ferramentas"),
    ]
    store = CollectionStore(NOTIFICATIONS, client, OWNER, notifier=notifier)
    await store.load()
    return NotificationInbox(store, limit=2)


class TestFormatAge:
    """Tests for format_age."""

    @pytest.mark.parametrize(
        "timestamp,expected",
        [
            ("2024-06-15T11:59:30+00:00", "now"),
            ("2024-06-15T11:55:00+00:00", "5m ago"),
            ("2024-06-15T09:00:00Z", "3h ago"),
            ("2024-06-13T12:00:00+00:00", "2d ago"),
            ("2024-05-01T08:00:00+00:00", "01/05/2024"),
            ("2024-06-15T11:00:00", "1h ago"),
        ],
    )
    def test_relative_age(self, timestamp, expected) -> None:
        assert format_age(timestamp, now=NOW) == expected

    def test_missing_timestamp(self) -> None:
        assert format_age(None) == ""


class TestNotificationInbox:
    """Tests for inbox operations."""

    @pytest.mark.asyncio
    async def test_unread_count(self, inbox) -> None:
        assert inbox.unread_count == 2

    @pytest.mark.asyncio
    async def test_recent_is_newest_first_and_limited(self, inbox) -> None:
        assert [record.id for record in inbox.recent()] == ["n2", "n3"]
        assert [record.id for record in inbox.recent(limit=5)] == ["n2", "n3", "n1"]

    @pytest.mark.asyncio
    async def test_mark_as_read(self, inbox, client) -> None:
        await inbox.mark_as_read("n1")
        assert inbox.store.get("n1").get("is_read") is True
        assert inbox.unread_count == 1
        _, _, _, fields = client.calls_of("update")[0]
        assert fields["is_read"] is True

    @pytest.mark.asyncio
    async def test_mark_all_as_read_single_toast(self, inbox, notifier) -> None:
        assert await inbox.mark_all_as_read() == 2
        assert inbox.unread_count == 0
        assert [toast.message for toast in notifier.history] == ["All notifications marked as read"]

    @pytest.mark.asyncio
    async def test_mark_all_as_read_with_nothing_unread(self, inbox, client) -> None:
        await inbox.mark_all_as_read()
        client.calls.clear()
        assert await inbox.mark_all_as_read() == 0
        assert client.calls_of("update") == []

    @pytest.mark.asyncio
    async def test_mark_all_as_read_partial_failure(self, inbox, client, notifier) -> None:
        client.hold.add("update")
        task = asyncio.create_task(inbox.mark_all_as_read())
        await settle()
        assert inbox.unread_count == 0

        client.pending[0].succeed()
        client.pending[1].fail(RemoteUnavailable("offline"))
        with pytest.raises(RemoteUnavailable):
            await task

        assert inbox.unread_count == 1
        errors = [toast for toast in notifier.history if toast.level is ToastLevel.ERROR]
        assert [toast.message for toast in errors] == ["Could not mark all notifications as read"]

    @pytest.mark.asyncio
    async def test_resolve_link(self, inbox) -> None:
        assert inbox.resolve_link(inbox.store.get("n3")) is View.TOOLS
        assert inbox.resolve_link(inbox.store.get("n1")) is None

    @pytest.mark.asyncio
    async def test_open_marks_read_and_returns_view(self, inbox) -> None:
        assert await inbox.open("n3") is View.TOOLS
        assert inbox.store.get("n3").get("is_read") is True

    @pytest.mark.asyncio
    async def test_open_navigates_even_if_marking_fails(self, inbox, client) -> None:
        client.fail_with["update"] = RemoteUnavailable("offline")
        assert await inbox.open("n3") is View.TOOLS
        assert inbox.store.get("n3").get("is_read") is False

    @pytest.mark.asyncio
    async def test_delete(self, inbox) -> None:
        await inbox.delete("n1")
        assert "n1" not in inbox.store
