"""Filtering and sorting of mirrored records for page views."""

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from designali_hub.domain.entities.collection_spec import CollectionSpec
from designali_hub.domain.entities.record import Record


@dataclass(frozen=True)
class RecordFilter:
    """Criteria a page applies to one collection.

    Attributes:
        search_term: Case-insensitive substring matched against the
            collection's search fields. Blank matches everything.
        equals: Exact field matches, e.g. {"category": "Design"}. None
            values are ignored.
        favorites_only: Keep only favorite records.
        tag: Keep only records whose "tags" list contains this tag.
    """

    search_term: str = ""
    equals: Mapping[str, Any] = field(default_factory=dict)
    favorites_only: bool = False
    tag: str | None = None

    def matches(self, spec: CollectionSpec, record: Record) -> bool:
        if self.favorites_only and not record.favorite:
            return False

        for name, expected in self.equals.items():
            if expected is not None and record.get(name) != expected:
                return False

        if self.tag is not None and self.tag not in (record.get("tags") or []):
            return False

        term = self.search_term.strip().casefold()
        if not term:
            return True

        fields = spec.search_fields or (spec.title_field,)
        return any(term in str(record.get(name) or "").casefold() for name in fields)


def _sort_key(value: Any) -> Any:
    if isinstance(value, str):
        return value.casefold()
    return value


def sort_records(records: Iterable[Record], field_name: str, descending: bool = False) -> list[Record]:
    """Sort records by one field. Records without a value always go last."""
    records = list(records)
    present = [record for record in records if record.get(field_name) is not None]
    missing = [record for record in records if record.get(field_name) is None]
    present.sort(key=lambda record: _sort_key(record.get(field_name)), reverse=descending)
    return present + missing


def distinct_values(records: Iterable[Record], field_name: str) -> list[Any]:
    """Distinct non-empty values of a field. List values are flattened."""
    seen: set[Any] = set()
    for record in records:
        value = record.get(field_name)
        values = value if isinstance(value, (list, tuple)) else [value]
        for item in values:
            if item is not None and item != "":
                seen.add(item)
    return sorted(seen, key=lambda item: str(item).casefold())
