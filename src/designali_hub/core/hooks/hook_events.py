"""Hook event definitions and categories.

Event names are strings so that listeners can be registered without
importing the emitting module.
"""


class HookCategory:
    """Categories for organizing hook events."""

    STORE_LIFECYCLE = "store_lifecycle"
    RECORD_CHANGES = "record_changes"
    SEARCH = "search"
    NOTIFICATIONS = "notifications"
    STATISTICS = "statistics"


class HookEvent:
    """Hook event names.

    ANY is a wildcard: hooks registered for it receive every event.
    """

    ANY = "*"

    # Store lifecycle
    STORE_LOADED = "store.loaded"
    STORE_DISPOSED = "store.disposed"

    # Record changes (local intents and remote change events alike)
    RECORD_INSERTED = "record.inserted"
    RECORD_UPDATED = "record.updated"
    RECORD_DELETED = "record.deleted"

    # Search
    SEARCH_RESULTS = "search.results"

    # Notifications
    TOAST_CREATED = "toast.created"

    # Statistics
    STATS_CHANGED = "stats.changed"


EVENT_CATEGORIES: dict[str, str] = {
    HookEvent.STORE_LOADED: HookCategory.STORE_LIFECYCLE,
    HookEvent.STORE_DISPOSED: HookCategory.STORE_LIFECYCLE,
    HookEvent.RECORD_INSERTED: HookCategory.RECORD_CHANGES,
    HookEvent.RECORD_UPDATED: HookCategory.RECORD_CHANGES,
    HookEvent.RECORD_DELETED: HookCategory.RECORD_CHANGES,
    HookEvent.SEARCH_RESULTS: HookCategory.SEARCH,
    HookEvent.TOAST_CREATED: HookCategory.NOTIFICATIONS,
    HookEvent.STATS_CHANGED: HookCategory.STATISTICS,
}


def get_all_events() -> list[str]:
    """Get a list of all concrete hook events (wildcard excluded)."""
    return list(EVENT_CATEGORIES.keys())


def is_record_event(event: str) -> bool:
    """Check whether an event reports a record-level change."""
    return EVENT_CATEGORIES.get(event) == HookCategory.RECORD_CHANGES
