"""Optimistic single-field writes with version-guarded rollback.

Toggles (favorite flags, course status, read markers) are applied locally
right away and confirmed in the background. Every write takes a fresh
version for each field it touches; a failed write rolls a field back only
while it is still the latest write of that field, so a late failure never
clobbers a newer intent on the same field and never blocks the rollback of
an unrelated one.
"""

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any, Callable, Iterable

from designali_hub.core.exceptions import SyncError
from designali_hub.core.logging import get_logger
from designali_hub.domain.entities.record import Record, utc_now

if TYPE_CHECKING:
    from designali_hub.domain.services.collection_store import CollectionStore

logger = get_logger(__name__)


def restore_fields(latest: Record, snapshot: Record, names: Iterable[str]) -> Record:
    """Copy the named fields of snapshot onto latest, leaving the rest alone.

    Fields absent from snapshot are removed from the result.
    """
    merged = dict(latest.fields)
    changes: dict[str, Any] = {}
    for name in names:
        if name in ("favorite", "created_at", "updated_at"):
            changes[name] = getattr(snapshot, name)
        elif name in snapshot.fields:
            merged[name] = snapshot.fields[name]
        else:
            merged.pop(name, None)
    return replace(latest, fields=merged, **changes)


@dataclass(frozen=True)
class WriteTicket:
    """Versions taken by one write.

    Attributes:
        record_id: Record written.
        sequence: Record-wide write counter when the write started.
        versions: Field name -> version taken for that field.
    """

    record_id: str
    sequence: int
    versions: dict[str, int]


class TogglePolicy:
    """Per-field write versions of one store."""

    def __init__(self) -> None:
        self._versions: dict[tuple[str, str], int] = {}
        self._sequences: dict[str, int] = {}

    def begin(self, record_id: str, field_names: Iterable[str]) -> WriteTicket:
        """Start a write on some fields of a record."""
        sequence = self._sequences.get(record_id, 0) + 1
        self._sequences[record_id] = sequence
        versions = {}
        for name in field_names:
            version = self._versions.get((record_id, name), 0) + 1
            self._versions[(record_id, name)] = version
            versions[name] = version
        return WriteTicket(record_id, sequence, versions)

    def current_version(self, record_id: str, field_name: str) -> int:
        return self._versions.get((record_id, field_name), 0)

    def current_fields(self, ticket: WriteTicket) -> list[str]:
        """Fields of ticket that no newer write has touched since."""
        return [
            name
            for name, version in ticket.versions.items()
            if self._versions.get((ticket.record_id, name), 0) == version
        ]

    def is_latest(self, ticket: WriteTicket) -> bool:
        """Whether no write of any field of the record started after ticket."""
        return self._sequences.get(ticket.record_id, 0) == ticket.sequence

    def restorable_fields(self, ticket: WriteTicket) -> list[str]:
        """Fields a failed write may roll back.

        The current fields of ticket, plus updated_at when no later write of
        the record started.
        """
        names = self.current_fields(ticket)
        if names and self.is_latest(ticket):
            names.append("updated_at")
        return names

    def invalidate(self, record_id: str) -> None:
        """Supersede every write in flight on a record (used by delete)."""
        self._sequences[record_id] = self._sequences.get(record_id, 0) + 1
        for key in list(self._versions):
            if key[0] == record_id:
                self._versions[key] += 1

    def forget(self, record_id: str) -> None:
        self._sequences.pop(record_id, None)
        for key in [key for key in self._versions if key[0] == record_id]:
            del self._versions[key]

    async def toggle(
        self,
        store: "CollectionStore",
        record_id: str,
        field_name: str,
        compute: Callable[[Any], Any],
        describe: Callable[[Any], str] | None = None,
        notify: bool = True,
    ) -> Record:
        """Apply compute(current value) to one field optimistically.

        Args:
            store: Store holding the record.
            record_id: Record to change.
            field_name: Client field name, e.g. "favorite".
            compute: Derives the new value from the current one.
            describe: Builds the success toast from the new value.
            notify: False leaves the error toast to the caller.

        Returns:
            The locally applied record.

        Raises:
            RecordNotFoundError: If the store does not hold the record.
            SyncError: If the remote write failed (after rollback and one
                error toast).
        """
        current = store.require(record_id)
        previous = current.get(field_name)
        new_value = compute(previous)
        ticket = self.begin(record_id, [field_name])
        changes = {field_name: new_value, "updated_at": utc_now()}

        applied = current.with_fields(changes)
        store._apply_local(applied)
        logger.debug(
            "Toggle applied locally",
            collection=store.spec.name,
            record_id=record_id,
            field=field_name,
            version=ticket.versions[field_name],
        )

        try:
            await store._send_update(record_id, changes)
        except SyncError as e:
            restorable = self.restorable_fields(ticket)
            if store.disposed:
                logger.debug("Toggle failed after dispose", collection=store.spec.name, record_id=record_id)
            elif restorable:
                latest = store.get(record_id)
                if latest is not None:
                    store._apply_local(restore_fields(latest, current, restorable))
                logger.info(
                    "Toggle rolled back",
                    collection=store.spec.name,
                    record_id=record_id,
                    field=field_name,
                    error=e.message,
                )
            else:
                logger.info(
                    "Stale toggle failure left newer value in place",
                    collection=store.spec.name,
                    record_id=record_id,
                    field=field_name,
                    version=ticket.versions[field_name],
                    current_version=self.current_version(record_id, field_name),
                )
            if notify:
                store.notifier.error(
                    f"Could not update {store.spec.label}: {e.message}",
                    collection=store.spec.name,
                )
            raise

        if describe is not None:
            store.notifier.success(describe(new_value), collection=store.spec.name)
        return applied

