"""Aggregate statistics derived from mirrored collections."""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class AggregateStats:
    """Counts and group-by breakdowns. Recomputed, never persisted.

    Attributes:
        per_collection_count: Number of records per collection key.
        groups: (collection key, field name) -> {value: count}. Values with
            a zero count are never present.
    """

    per_collection_count: dict[str, int] = field(default_factory=dict)
    groups: dict[tuple[str, str], dict[Any, int]] = field(default_factory=dict)

    def count(self, collection_key: str) -> int:
        """Record count of one collection (0 if unknown)."""
        return self.per_collection_count.get(collection_key, 0)

    def group_by_field(self, collection_key: str, field_name: str) -> dict[Any, int]:
        """Breakdown of one collection by one field.

        Raises:
            KeyError: If the grouping was not configured on the aggregator.
        """
        key = (collection_key, field_name)
        if key not in self.groups:
            raise KeyError(f"No grouping configured for {collection_key}.{field_name}")
        return dict(self.groups[key])

    @property
    def total(self) -> int:
        """Total number of records across collections."""
        return sum(self.per_collection_count.values())


@dataclass(frozen=True)
class DashboardSummary:
    """Figures shown on the dashboard home page."""

    tools: int = 0
    videos: int = 0
    notes: int = 0
    resources: int = 0
    completed_courses: int = 0
    tools_by_category: list[tuple[str, int]] = field(default_factory=list)
    course_progress: list[tuple[str, int]] = field(default_factory=list)
