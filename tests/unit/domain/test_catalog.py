"""Unit tests for the collection catalog."""

import pytest

from designali_hub.domain.catalog import (
    CONTENT_COLLECTIONS,
    DEFAULT_GROUPINGS,
    NOTIFICATIONS,
    USER_PROFILES,
    get_spec,
)
from designali_hub.domain.entities.view import View


def test_content_collections_in_search_order():
    assert [spec.name for spec in CONTENT_COLLECTIONS] == [
        "tools",
        "videos",
        "notes",
        "courses",
        "tutorials",
        "resources",
    ]


def test_courses_and_tutorials_open_study_page():
    assert get_spec("courses").view is View.STUDY
    assert get_spec("tutorials").view is View.STUDY


def test_groupings_name_known_fields():
    for collection, fields in DEFAULT_GROUPINGS.items():
        spec = get_spec(collection)
        assert set(fields) <= set(spec.fields)


def test_notifications_and_profiles_have_no_favorites():
    assert NOTIFICATIONS.favorite_column is None
    assert USER_PROFILES.favorite_column is None


def test_get_spec_unknown():
    with pytest.raises(KeyError):
        get_spec("widgets")
