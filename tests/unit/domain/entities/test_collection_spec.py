"""Unit tests for CollectionSpec row mapping."""

from datetime import datetime, timezone

import pytest

from designali_hub.core.exceptions import MalformedEvent
from designali_hub.domain.catalog import NOTIFICATIONS, RESOURCES, TOOLS, VIDEOS


class TestToRemote:
    """Tests for client -> backend mapping."""

    def test_renamed_columns(self):
        row = TOOLS.to_remote({"name": "Figma", "image_url": "https://figma.com/icon.png", "favorite": True})
        assert row == {"name": "Figma", "icon": "https://figma.com/icon.png", "is_favorite": True}

    def test_resource_type_column(self):
        assert RESOURCES.to_remote({"type": "Book"}) == {"resource_type": "Book"}

    def test_timestamps_pass_through(self):
        assert TOOLS.to_remote({"updated_at": "2024-01-01"}) == {"updated_at": "2024-01-01"}

    def test_unknown_field_rejected(self):
        with pytest.raises(ValueError, match="Unknown field"):
            TOOLS.to_remote({"colour": "red"})

    def test_favorite_without_favorites(self):
        with pytest.raises(ValueError):
            NOTIFICATIONS.to_remote({"favorite": True})


class TestFromRemote:
    """Tests for backend -> client mapping."""

    def test_maps_columns_back(self):
        record = TOOLS.from_remote(
            {
                "id": "a",
                "user_id": "user-1",
                "name": "Figma",
                "icon": "https://figma.com/icon.png",
                "is_favorite": None,
                "created_at": datetime(2024, 1, 1, tzinfo=timezone.utc),
                "unrelated": 1,
            }
        )
        assert record.get("image_url") == "https://figma.com/icon.png"
        assert record.favorite is False
        assert record.created_at == "2024-01-01T00:00:00+00:00"
        assert "unrelated" not in record.fields
        assert "url" not in record.fields

    @pytest.mark.parametrize(
        "row",
        [None, {"user_id": "user-1"}, {"id": "a"}, {"id": 5, "user_id": "user-1"}],
    )
    def test_malformed_rows(self, row):
        with pytest.raises(MalformedEvent):
            TOOLS.from_remote(row)


def test_title_and_snippet():
    record = VIDEOS.from_remote({"id": "v", "user_id": "u", "title": "Intro", "description": "abcdef"})
    assert VIDEOS.title_of(record) == "Intro"
    assert VIDEOS.snippet_of(record) == "abcdef"
    assert VIDEOS.snippet_of(record, 3) == "abc"


def test_plural():
    assert TOOLS.plural == "tools"
