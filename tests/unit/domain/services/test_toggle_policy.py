"""Unit tests for optimistic toggles and their version-guarded rollback."""

import asyncio

import pytest
import pytest_asyncio

from designali_hub.core.exceptions import Conflict, RecordNotFoundError, RemoteUnavailable
from designali_hub.domain.catalog import COURSES, NOTIFICATIONS, TOOLS
from designali_hub.domain.entities.record import Record
from designali_hub.domain.entities.toast import ToastLevel
from designali_hub.domain.services.collection_store import CollectionStore
from designali_hub.domain.services.course_actions import advance_course_status
from designali_hub.domain.services.record_validator import RecordValidationFailed
from designali_hub.domain.services.toggle_policy import TogglePolicy, restore_fields
from tests.unit.conftest import OWNER, settle, tool_row


def toasts(notifier, level):
    return [toast for toast in notifier.history if toast.level is level]


@pytest_asyncio.fixture
async def loaded_store(tools_store, client):
    client.rows["tools"] = [tool_row("a")]
    await tools_store.load()
    return tools_store


class TestRestoreFields:
    """Tests for restore_fields."""

    def test_restores_only_named_fields(self) -> None:
        snapshot = Record(id="a", owner_id=OWNER, fields={"name": "Old", "url": "https://a.io"}, favorite=False)
        latest = Record(id="a", owner_id=OWNER, fields={"name": "New", "url": "https://b.io"}, favorite=True)

        restored = restore_fields(latest, snapshot, ["favorite", "name"])

        assert restored.favorite is False
        assert restored.get("name") == "Old"
        assert restored.get("url") == "https://b.io"

    def test_removes_fields_absent_from_snapshot(self) -> None:
        snapshot = Record(id="a", owner_id=OWNER, fields={})
        latest = Record(id="a", owner_id=OWNER, fields={"description": "Added"})

        assert "description" not in restore_fields(latest, snapshot, ["description"]).fields


class TestTogglePolicyVersions:
    """Tests for per-field write versions."""

    def test_versions_are_per_field(self) -> None:
        policy = TogglePolicy()
        favorite = policy.begin("a", ["favorite"])
        policy.begin("a", ["status"])
        policy.begin("b", ["favorite"])

        assert policy.current_fields(favorite) == ["favorite"]
        assert not policy.is_latest(favorite)
        assert policy.current_version("a", "favorite") == 1
        assert policy.current_version("a", "status") == 1

    def test_write_of_same_field_supersedes(self) -> None:
        policy = TogglePolicy()
        first = policy.begin("a", ["favorite"])
        second = policy.begin("a", ["favorite", "name"])

        assert policy.current_fields(first) == []
        assert policy.current_fields(second) == ["favorite", "name"]
        assert policy.is_latest(second)
        assert policy.current_version("a", "favorite") == 2

    def test_restorable_fields_include_timestamp_only_for_latest_write(self) -> None:
        policy = TogglePolicy()
        first = policy.begin("a", ["favorite"])
        assert policy.restorable_fields(first) == ["favorite", "updated_at"]

        policy.begin("a", ["status"])
        assert policy.restorable_fields(first) == ["favorite"]

    def test_invalidate_supersedes_every_field(self) -> None:
        policy = TogglePolicy()
        ticket = policy.begin("a", ["favorite", "status"])
        policy.invalidate("a")
        assert policy.current_fields(ticket) == []
        assert not policy.is_latest(ticket)

    def test_forget_resets_record(self) -> None:
        policy = TogglePolicy()
        policy.begin("a", ["favorite"])
        policy.forget("a")
        assert policy.current_version("a", "favorite") == 0


class TestToggleFavorite:
    """Tests for CollectionStore.toggle_favorite."""

    @pytest.mark.asyncio
    async def test_applies_locally_before_confirmation(self, loaded_store, client, notifier) -> None:
        client.hold.add("update")
        task = asyncio.create_task(loaded_store.toggle_favorite("a"))
        await settle()
        assert loaded_store.get("a").favorite is True

        client.pending[0].succeed()
        await task
        assert loaded_store.get("a").favorite is True
        assert [toast.message for toast in toasts(notifier, ToastLevel.SUCCESS)] == ["Added to favorites"]

    @pytest.mark.asyncio
    async def test_sends_favorite_column(self, loaded_store, client) -> None:
        await loaded_store.toggle_favorite("a")
        _, _, record_id, fields = client.calls_of("update")[0]
        assert record_id == "a"
        assert fields["is_favorite"] is True
        assert "updated_at" in fields

    @pytest.mark.asyncio
    async def test_failure_rolls_back_and_notifies_once(self, loaded_store, client, notifier) -> None:
        client.fail_with["update"] = RemoteUnavailable("offline")

        with pytest.raises(RemoteUnavailable):
            await loaded_store.toggle_favorite("a")

        assert loaded_store.get("a").favorite is False
        assert len(toasts(notifier, ToastLevel.ERROR)) == 1
        assert toasts(notifier, ToastLevel.SUCCESS) == []

    @pytest.mark.asyncio
    async def test_echo_of_confirmed_toggle_is_noop(self, loaded_store, client) -> None:
        await loaded_store.toggle_favorite("a")
        _, _, _, fields = client.calls_of("update")[0]
        echo = {**tool_row("a"), **fields}

        assert loaded_store.apply_change({"kind": "updated", "record": echo}) is False
        assert loaded_store.get("a").favorite is True

    @pytest.mark.asyncio
    async def test_late_failure_of_older_toggle_keeps_newer_value(self, loaded_store, client) -> None:
        client.hold.add("update")
        first = asyncio.create_task(loaded_store.toggle_favorite("a"))
        await settle()
        assert loaded_store.get("a").favorite is True
        second = asyncio.create_task(loaded_store.toggle_favorite("a"))
        await settle()
        assert loaded_store.get("a").favorite is False

        client.pending[1].succeed()
        await second
        client.pending[0].fail(RemoteUnavailable("late timeout"))
        with pytest.raises(RemoteUnavailable):
            await first

        assert loaded_store.get("a").favorite is False

    @pytest.mark.asyncio
    async def test_responses_out_of_order_keep_last_intent(self, loaded_store, client) -> None:
        client.hold.add("update")
        first = asyncio.create_task(loaded_store.toggle_favorite("a"))
        await settle()
        second = asyncio.create_task(loaded_store.toggle_favorite("a"))
        await settle()

        client.pending[1].succeed()
        await second
        client.pending[0].succeed()
        await first

        assert loaded_store.get("a").favorite is False

    @pytest.mark.asyncio
    async def test_failure_of_latest_restores_value_before_it(self, loaded_store, client) -> None:
        client.hold.add("update")
        first = asyncio.create_task(loaded_store.toggle_favorite("a"))
        await settle()
        second = asyncio.create_task(loaded_store.toggle_favorite("a"))
        await settle()

        client.pending[0].succeed()
        await first
        client.pending[1].fail(Conflict("rejected"))
        with pytest.raises(Conflict):
            await second

        assert loaded_store.get("a").favorite is True

    @pytest.mark.asyncio
    async def test_unknown_record(self, loaded_store, client) -> None:
        with pytest.raises(RecordNotFoundError):
            await loaded_store.toggle_favorite("missing")
        assert client.calls_of("update") == []

    @pytest.mark.asyncio
    async def test_collection_without_favorites(self, client, notifier) -> None:
        store = CollectionStore(NOTIFICATIONS, client, OWNER, notifier=notifier)
        with pytest.raises(ValueError):
            await store.toggle_favorite("n1")

    @pytest.mark.asyncio
    async def test_failure_after_dispose_leaves_store_untouched(self, loaded_store, client) -> None:
        client.hold.add("update")
        task = asyncio.create_task(loaded_store.toggle_favorite("a"))
        await settle()
        loaded_store.dispose()

        client.pending[0].fail(RemoteUnavailable("offline"))
        with pytest.raises(RemoteUnavailable):
            await task
        assert loaded_store.get("a").favorite is True


class TestSetField:
    """Tests for CollectionStore.set_field."""

    @pytest.mark.asyncio
    async def test_sets_value_with_description(self, loaded_store, client, notifier) -> None:
        record = await loaded_store.set_field(
            "a", "category", "Code", describe=lambda value: f"Moved to {value}"
        )
        assert record.get("category") == "Code"
        assert loaded_store.get("a").get("category") == "Code"
        assert notifier.history[-1].message == "Moved to Code"

    @pytest.mark.asyncio
    async def test_rejects_invalid_value_before_sending(self, loaded_store, client) -> None:
        with pytest.raises(RecordValidationFailed):
            await loaded_store.set_field("a", "url", "not a url")
        assert client.calls_of("update") == []
        assert loaded_store.get("a").get("url") == "https://example.com/a"

    @pytest.mark.asyncio
    async def test_silent_failure_leaves_toast_to_caller(self, loaded_store, client, notifier) -> None:
        client.fail_with["update"] = RemoteUnavailable("offline")
        with pytest.raises(RemoteUnavailable):
            await loaded_store.set_field("a", "category", "Code", notify=False)
        assert notifier.history == []
        assert loaded_store.get("a").get("category") == "Design"



class TestOverlappingWrites:
    """Tests for writes of different fields of one record in flight together."""

    @pytest.mark.asyncio
    async def test_failed_favorite_rolls_back_while_status_changes(self, client, notifier) -> None:
        store = CollectionStore(COURSES, client, OWNER, notifier=notifier)
        client.rows["courses"] = [
            {
                "id": "c1",
                "user_id": OWNER,
                "title": "UX Basics",
                "platform": "Udemy",
                "status": "Not Started",
                "progress": 0,
                "is_favorite": False,
            }
        ]
        await store.load()
        client.hold.add("update")

        favorite = asyncio.create_task(store.toggle_favorite("c1"))
        await settle()
        status = asyncio.create_task(advance_course_status(store, "c1"))
        await settle()

        client.pending[0].fail(RemoteUnavailable("offline"))
        with pytest.raises(RemoteUnavailable):
            await favorite
        client.pending[1].succeed()
        await status

        assert store.get("c1").favorite is False
        assert store.get("c1").get("status") == "In Progress"
        assert len(toasts(notifier, ToastLevel.ERROR)) == 1

    @pytest.mark.asyncio
    async def test_failed_toggle_rolls_back_while_other_field_is_edited(self, client, notifier) -> None:
        store = CollectionStore(TOOLS, client, OWNER, notifier=notifier, write_policy="optimistic")
        client.rows["tools"] = [tool_row("a")]
        await store.load()
        client.hold.add("update")

        toggle = asyncio.create_task(store.toggle_favorite("a"))
        await settle()
        edit = asyncio.create_task(store.update("a", {"description": "Edited"}))
        await settle()

        client.pending[0].fail(RemoteUnavailable("offline"))
        with pytest.raises(RemoteUnavailable):
            await toggle
        assert store.get("a").favorite is False
        assert store.get("a").get("description") == "Edited"

        client.pending[1].succeed()
        await edit
        assert store.get("a").get("description") == "Edited"
        assert store.get("a").favorite is False

    @pytest.mark.asyncio
    async def test_update_and_toggle_of_same_field_share_versions(self, client, notifier) -> None:
        store = CollectionStore(TOOLS, client, OWNER, notifier=notifier, write_policy="optimistic")
        client.rows["tools"] = [tool_row("a")]
        await store.load()
        client.hold.add("update")

        move = asyncio.create_task(store.set_field("a", "category", "Code"))
        await settle()
        edit = asyncio.create_task(store.update("a", {"category": "3D"}))
        await settle()

        client.pending[0].fail(RemoteUnavailable("offline"))
        with pytest.raises(RemoteUnavailable):
            await move
        assert store.get("a").get("category") == "3D"

        client.pending[1].succeed()
        await edit
        assert store.get("a").get("category") == "3D"
