"""Domain entities for Designali Hub.

Entities are plain dataclasses with no dependencies on infrastructure.
"""

from designali_hub.domain.entities.aggregate_stats import AggregateStats, DashboardSummary
from designali_hub.domain.entities.change_event import (
    ChangeEvent,
    ChangeKind,
    RecordDeleted,
    RecordInserted,
    RecordUpdated,
    parse_change_event,
)
from designali_hub.domain.entities.collection_spec import CollectionSpec
from designali_hub.domain.entities.record import PROVISIONAL_PREFIX, Record
from designali_hub.domain.entities.search_result import SearchResult
from designali_hub.domain.entities.toast import Toast, ToastLevel
from designali_hub.domain.entities.view import LINK_SLUGS, View

__all__ = [
    "AggregateStats",
    "ChangeEvent",
    "ChangeKind",
    "CollectionSpec",
    "DashboardSummary",
    "LINK_SLUGS",
    "PROVISIONAL_PREFIX",
    "Record",
    "RecordDeleted",
    "RecordInserted",
    "RecordUpdated",
    "SearchResult",
    "Toast",
    "ToastLevel",
    "View",
    "parse_change_event",
]
