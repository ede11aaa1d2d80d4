"""Record entity: one persisted item mirrored from the backend.

Records are treated as immutable values. Every local mutation produces a
new Record via ``with_value``/``with_fields`` so that earlier snapshots
stay valid for rollback and equality checks stay meaningful.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any

PROVISIONAL_PREFIX = "local:"


def utc_now() -> str:
    """Current UTC time as an ISO 8601 string."""
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class Record:
    """A user-owned item of one collection.

    Attributes:
        id: Backend identifier, unique within the collection and immutable.
            Optimistic creates use a provisional ``local:`` id until confirmed.
        owner_id: Id of the owning user.
        fields: Collection-specific attributes keyed by client field name.
        favorite: Favorite flag.
        created_at: ISO 8601 creation timestamp.
        updated_at: ISO 8601 timestamp of the last write.
    """

    id: str
    owner_id: str
    fields: dict[str, Any] = field(default_factory=dict)
    favorite: bool = False
    created_at: str | None = None
    updated_at: str | None = None

    def __post_init__(self) -> None:
        """Validate record identity after initialization."""
        if not self.id:
            raise ValueError("Record ID is required")
        if not self.owner_id:
            raise ValueError("Record owner is required")

    @property
    def is_provisional(self) -> bool:
        """True for optimistic entries not yet confirmed by the backend."""
        return self.id.startswith(PROVISIONAL_PREFIX)

    def get(self, name: str, default: Any = None) -> Any:
        """Read a field by name, including the top-level attributes."""
        if name == "favorite":
            return self.favorite
        if name in ("id", "owner_id", "created_at", "updated_at"):
            return getattr(self, name)
        return self.fields.get(name, default)

    def with_value(self, name: str, value: Any) -> "Record":
        """Return a copy with one field replaced."""
        return self.with_fields({name: value})

    def with_fields(self, values: dict[str, Any]) -> "Record":
        """Return a copy with several fields replaced."""
        changes: dict[str, Any] = {}
        merged = dict(self.fields)
        for name, value in values.items():
            if name == "favorite":
                changes["favorite"] = bool(value)
            elif name in ("created_at", "updated_at"):
                changes[name] = value
            elif name in ("id", "owner_id"):
                raise ValueError(f"Field '{name}' is immutable")
            else:
                merged[name] = value
        return replace(self, fields=merged, **changes)
