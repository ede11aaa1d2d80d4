"""Change events delivered by the realtime feed.

A change event is one of three tagged variants. Payloads coming off the
wire are parsed with ``parse_change_event``; anything that does not fit
one of the variants raises MalformedEvent.
"""

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Mapping, Union

from designali_hub.core.exceptions import MalformedEvent
from designali_hub.domain.entities.record import Record

if TYPE_CHECKING:
    from designali_hub.domain.entities.collection_spec import CollectionSpec


class ChangeKind(str, Enum):
    """Kinds of remote change."""

    INSERTED = "inserted"
    UPDATED = "updated"
    DELETED = "deleted"


@dataclass(frozen=True)
class RecordInserted:
    """A record was created remotely."""

    record: Record
    kind: ChangeKind = ChangeKind.INSERTED


@dataclass(frozen=True)
class RecordUpdated:
    """A record was modified remotely; carries the full new snapshot."""

    record: Record
    kind: ChangeKind = ChangeKind.UPDATED


@dataclass(frozen=True)
class RecordDeleted:
    """A record was deleted remotely.

    owner_id is only known when the backend includes it in the payload.
    """

    record_id: str
    owner_id: str | None = None
    kind: ChangeKind = ChangeKind.DELETED


ChangeEvent = Union[RecordInserted, RecordUpdated, RecordDeleted]


def parse_change_event(spec: "CollectionSpec", payload: Mapping[str, Any]) -> ChangeEvent:
    """Build a change event from a normalized payload.

    Expected shape: ``{"kind": "inserted"|"updated"|"deleted", "record": {...}}``
    where ``record`` is a backend row. Deletions only need ``record.id``
    (a top-level ``id`` is accepted too).

    Raises:
        MalformedEvent: If the payload does not describe a valid change.
    """
    if not isinstance(payload, Mapping):
        raise MalformedEvent(
            f"Change payload must be a mapping, got {type(payload).__name__}",
            collection=spec.name,
        )

    raw_kind = payload.get("kind")
    try:
        kind = ChangeKind(raw_kind)
    except ValueError:
        raise MalformedEvent(f"Unknown change kind: {raw_kind!r}", collection=spec.name) from None

    row = payload.get("record")

    if kind is ChangeKind.DELETED:
        row = row if isinstance(row, Mapping) else {}
        record_id = row.get("id") or payload.get("id")
        if not record_id or not isinstance(record_id, str):
            raise MalformedEvent("Delete event without a record id", collection=spec.name)
        owner_id = row.get(spec.owner_column)
        return RecordDeleted(record_id=record_id, owner_id=owner_id)

    record = spec.from_remote(row)
    if kind is ChangeKind.INSERTED:
        return RecordInserted(record=record)
    return RecordUpdated(record=record)
