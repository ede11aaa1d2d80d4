"""Search result projection shown by the global search."""

from dataclasses import dataclass

from designali_hub.domain.entities.view import View


@dataclass(frozen=True)
class SearchResult:
    """One match of the global search. Never persisted.

    Attributes:
        source_collection: Collection the record came from.
        record_id: Id of the matching record.
        display_title: Title shown in the result list.
        display_snippet: Optional secondary text.
        target_view: Page to open when the result is chosen.
    """

    source_collection: str
    record_id: str
    display_title: str
    display_snippet: str | None
    target_view: View | None
