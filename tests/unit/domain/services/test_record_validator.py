"""Unit tests for RecordValidator."""

import pytest

from designali_hub.domain.catalog import COURSES, NOTES, NOTIFICATIONS, TOOLS, VIDEOS
from designali_hub.domain.services.record_validator import RecordValidationFailed, RecordValidator


class TestValidateUrl:
    """Tests for URL validation."""

    @pytest.mark.parametrize("url", ["https://figma.com", "http://localhost:8000/path?q=1", None, ""])
    def test_accepts_valid_or_empty(self, url) -> None:
        assert RecordValidator.validate_url(url, "url") is None

    @pytest.mark.parametrize("url", ["figma.com", "ftp://files.example.com", "https://", "http:// spaced.com"])
    def test_rejects_invalid_format(self, url) -> None:
        error = RecordValidator.validate_url(url, "url")
        assert error is not None
        assert error.code == "invalid_url_format"

    def test_rejects_non_string(self) -> None:
        assert RecordValidator.validate_url(42, "url").code == "invalid_type"


class TestValidateValues:
    """Tests for type-specific checks."""

    @pytest.mark.parametrize("value", [0, 55, 100, 12.5])
    def test_progress_in_range(self, value) -> None:
        assert RecordValidator.validate_progress(value, "progress") is None

    @pytest.mark.parametrize("value,code", [(-1, "out_of_range"), (101, "out_of_range"), ("50", "invalid_type"), (True, "invalid_type")])
    def test_progress_rejected(self, value, code) -> None:
        assert RecordValidator.validate_progress(value, "progress").code == code

    def test_duration(self) -> None:
        assert RecordValidator.validate_duration(None, "duration") is None
        assert RecordValidator.validate_duration(600, "duration") is None
        assert RecordValidator.validate_duration(-5, "duration").code == "out_of_range"

    def test_tags(self) -> None:
        assert RecordValidator.validate_tags(["ui", "ux"], "tags") is None
        assert RecordValidator.validate_tags("ui,ux", "tags").code == "invalid_type"
        assert RecordValidator.validate_tags(["ui", 3], "tags").code == "invalid_type"

    def test_boolean(self) -> None:
        assert RecordValidator.validate_boolean(False, "is_read") is None
        assert RecordValidator.validate_boolean("yes", "is_read").code == "invalid_type"

    def test_required(self) -> None:
        assert RecordValidator.validate_required("Figma", "name") is None
        assert RecordValidator.validate_required("   ", "name").code == "required"
        assert RecordValidator.validate_required(None, "name").code == "required"


class TestValidate:
    """Tests for whole-record validation against a collection spec."""

    def test_valid_tool(self) -> None:
        values = {"name": "Figma", "url": "https://figma.com", "category": "Design", "favorite": True}
        assert RecordValidator.validate(TOOLS, values) == []

    def test_missing_required_fields_on_create(self) -> None:
        errors = RecordValidator.validate(TOOLS, {"name": "Figma"})
        assert {error.field for error in errors} == {"url", "category"}
        assert all(error.code == "required" for error in errors)

    def test_partial_update_skips_absent_required_fields(self) -> None:
        assert RecordValidator.validate(TOOLS, {"description": "New"}, partial=True) == []

    def test_partial_update_still_rejects_blanking_required_field(self) -> None:
        errors = RecordValidator.validate(TOOLS, {"name": ""}, partial=True)
        assert [error.code for error in errors] == ["required"]

    def test_unknown_field(self) -> None:
        errors = RecordValidator.validate(TOOLS, {"colour": "red"}, partial=True)
        assert [(error.field, error.code) for error in errors] == [("colour", "unknown_field")]

    def test_favorite_on_collection_without_favorites(self) -> None:
        errors = RecordValidator.validate(NOTIFICATIONS, {"favorite": True}, partial=True)
        assert [error.code for error in errors] == ["unknown_field"]

    def test_choices(self) -> None:
        assert RecordValidator.validate(VIDEOS, {"platform": "Vimeo"}, partial=True) == []
        errors = RecordValidator.validate(VIDEOS, {"platform": "TikTok"}, partial=True)
        assert errors[0].code == "invalid_choice"
        assert "YouTube" in errors[0].message

    def test_course_status_and_progress(self) -> None:
        errors = RecordValidator.validate(COURSES, {"status": "Paused", "progress": 150}, partial=True)
        assert {error.code for error in errors} == {"invalid_choice", "out_of_range"}

    def test_note_tags(self) -> None:
        assert RecordValidator.validate(NOTES, {"title": "Ideas", "tags": ["ui"]}) == []

    def test_ensure_valid_raises_with_every_error(self) -> None:
        with pytest.raises(RecordValidationFailed) as exc_info:
            RecordValidator.ensure_valid(TOOLS, {"name": "", "url": "nope", "category": "Design"})

        error = exc_info.value
        assert isinstance(error, ValueError)
        assert error.collection == "tools"
        assert len(error.errors) == 2
        assert "url" in str(error)
