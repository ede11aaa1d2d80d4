"""Course status and progress changes, applied through the toggle policy."""

from designali_hub.domain.catalog import COURSE_STATUSES
from designali_hub.domain.entities.record import Record
from designali_hub.domain.services.collection_store import CollectionStore


def next_course_status(status: str | None) -> str:
    """Next status in the Not Started -> In Progress -> Completed cycle.

    Unknown statuses restart the cycle.
    """
    if status not in COURSE_STATUSES:
        return COURSE_STATUSES[0]
    index = COURSE_STATUSES.index(status)
    return COURSE_STATUSES[(index + 1) % len(COURSE_STATUSES)]


async def advance_course_status(store: CollectionStore, record_id: str) -> Record:
    """Move a course to its next status optimistically."""
    return await store.toggles.toggle(
        store,
        record_id,
        "status",
        next_course_status,
        describe=lambda status: f"Status changed to: {status}",
    )


async def set_course_progress(store: CollectionStore, record_id: str, progress: int) -> Record:
    """Set a course's progress percentage optimistically.

    Raises:
        RecordValidationFailed: If progress is not between 0 and 100.
    """
    return await store.set_field(record_id, "progress", progress)
