"""Record validation service for checking field values before they are written.

Validation runs before any remote call so an invalid create or update never
leaves the client. Checks are driven by the collection spec: unknown fields,
required fields, allowed choices, plus type rules for a few well-known
field names (url, progress, tags, duration, booleans).
"""

import re
from dataclasses import dataclass
from typing import Any, Mapping

from designali_hub.domain.entities.collection_spec import CollectionSpec

# URL validation pattern (simplified)
URL_PATTERN = re.compile(r"^https?://[^\s/$.?#].[^\s]*$", re.IGNORECASE)

URL_FIELDS = ("url", "thumbnail_url", "image_url", "link")
BOOLEAN_FIELDS = ("favorite", "is_read", "dark_mode")


@dataclass
class RecordValidationError:
    """A single record validation error."""

    field: str
    message: str
    code: str


class RecordValidationFailed(ValueError):
    """Raised when record values fail validation.

    Attributes:
        collection: Collection the values were meant for.
        errors: Every validation error found.
    """

    def __init__(self, collection: str, errors: list[RecordValidationError]) -> None:
        self.collection = collection
        self.errors = errors
        details = "; ".join(f"{error.field}: {error.message}" for error in errors)
        super().__init__(f"Invalid {collection} record: {details}")


class RecordValidator:
    """Validator for client-side record values."""

    @classmethod
    def validate_required(cls, value: Any, field_name: str) -> RecordValidationError | None:
        """Validate that a value is present and not blank."""
        if value is None or (isinstance(value, str) and not value.strip()):
            return RecordValidationError(
                field=field_name,
                message="Field is required",
                code="required",
            )
        return None

    @classmethod
    def validate_url(cls, value: Any, field_name: str) -> RecordValidationError | None:
        """Validate a URL field value. Empty values are allowed."""
        if value is None or value == "":
            return None

        if not isinstance(value, str):
            return RecordValidationError(
                field=field_name,
                message=f"Expected URL string, got {type(value).__name__}",
                code="invalid_type",
            )

        if not URL_PATTERN.match(value):
            return RecordValidationError(
                field=field_name,
                message="Invalid URL format",
                code="invalid_url_format",
            )

        return None

    @classmethod
    def validate_progress(cls, value: Any, field_name: str) -> RecordValidationError | None:
        """Validate a percentage between 0 and 100."""
        if not isinstance(value, (int, float)) or isinstance(value, bool):
            return RecordValidationError(
                field=field_name,
                message=f"Expected number value, got {type(value).__name__}",
                code="invalid_type",
            )
        if value < 0 or value > 100:
            return RecordValidationError(
                field=field_name,
                message="Progress must be between 0 and 100",
                code="out_of_range",
            )
        return None

    @classmethod
    def validate_duration(cls, value: Any, field_name: str) -> RecordValidationError | None:
        """Validate a non-negative duration in seconds. None is allowed."""
        if value is None:
            return None
        if not isinstance(value, (int, float)) or isinstance(value, bool):
            return RecordValidationError(
                field=field_name,
                message=f"Expected number value, got {type(value).__name__}",
                code="invalid_type",
            )
        if value < 0:
            return RecordValidationError(
                field=field_name,
                message="Duration cannot be negative",
                code="out_of_range",
            )
        return None

    @classmethod
    def validate_tags(cls, value: Any, field_name: str) -> RecordValidationError | None:
        """Validate a list of tag strings."""
        if not isinstance(value, (list, tuple)) or not all(isinstance(tag, str) for tag in value):
            return RecordValidationError(
                field=field_name,
                message="Expected a list of text tags",
                code="invalid_type",
            )
        return None

    @classmethod
    def validate_boolean(cls, value: Any, field_name: str) -> RecordValidationError | None:
        """Validate a boolean field value."""
        if not isinstance(value, bool):
            return RecordValidationError(
                field=field_name,
                message=f"Expected boolean value, got {type(value).__name__}",
                code="invalid_type",
            )
        return None

    @classmethod
    def validate_choice(
        cls, value: Any, field_name: str, choices: tuple[Any, ...]
    ) -> RecordValidationError | None:
        """Validate that a value is one of the allowed choices."""
        if value not in choices:
            allowed = ", ".join(str(choice) for choice in choices)
            return RecordValidationError(
                field=field_name,
                message=f"Invalid value '{value}'. Allowed: {allowed}",
                code="invalid_choice",
            )
        return None

    @classmethod
    def validate_field(cls, spec: CollectionSpec, field_name: str, value: Any) -> RecordValidationError | None:
        """Validate one field value against the collection spec."""
        if field_name == "favorite" and spec.favorite_column is None:
            return RecordValidationError(
                field=field_name,
                message=f"Collection '{spec.name}' has no favorite flag",
                code="unknown_field",
            )
        if field_name != "favorite" and field_name not in spec.fields:
            return RecordValidationError(
                field=field_name,
                message=f"Unknown field for collection '{spec.name}'",
                code="unknown_field",
            )

        if field_name in spec.choices:
            return cls.validate_choice(value, field_name, spec.choices[field_name])
        if field_name in URL_FIELDS:
            return cls.validate_url(value, field_name)
        if field_name in BOOLEAN_FIELDS:
            return cls.validate_boolean(value, field_name)
        if field_name == "progress":
            return cls.validate_progress(value, field_name)
        if field_name == "duration":
            return cls.validate_duration(value, field_name)
        if field_name == "tags":
            return cls.validate_tags(value, field_name)
        return None

    @classmethod
    def validate(
        cls,
        spec: CollectionSpec,
        values: Mapping[str, Any],
        partial: bool = False,
    ) -> list[RecordValidationError]:
        """Validate record values against a collection spec.

        Args:
            spec: Collection the values belong to.
            values: Field values keyed by client field name.
            partial: True for updates, where required fields may be absent.

        Returns:
            List of validation errors (empty if valid).
        """
        errors: list[RecordValidationError] = []

        for field_name in spec.required:
            if field_name in values or not partial:
                error = cls.validate_required(values.get(field_name), field_name)
                if error:
                    errors.append(error)

        for field_name, value in values.items():
            if field_name in spec.required and value is None:
                # Already reported as missing.
                continue
            error = cls.validate_field(spec, field_name, value)
            if error:
                errors.append(error)

        return errors

    @classmethod
    def ensure_valid(
        cls,
        spec: CollectionSpec,
        values: Mapping[str, Any],
        partial: bool = False,
    ) -> None:
        """Validate values and raise if anything is wrong.

        Raises:
            RecordValidationFailed: If at least one error was found.
        """
        errors = cls.validate(spec, values, partial=partial)
        if errors:
            raise RecordValidationFailed(spec.name, errors)
