"""Domain services for Designali Hub.

Services hold the sync, search and statistics logic over the entities.
They only talk to the backend through the RemoteCollectionClient interface.
"""

from designali_hub.domain.services.collection_store import (
    ChangeNotice,
    CollectionStore,
    WritePolicy,
)
from designali_hub.domain.services.course_actions import (
    advance_course_status,
    next_course_status,
    set_course_progress,
)
from designali_hub.domain.services.notification_inbox import NotificationInbox, format_age
from designali_hub.domain.services.notifier import Notifier
from designali_hub.domain.services.preferences_service import PreferencesService
from designali_hub.domain.services.projections import RecordFilter
from designali_hub.domain.services.record_validator import (
    RecordValidationError,
    RecordValidationFailed,
    RecordValidator,
)
from designali_hub.domain.services.search_index import (
    DebouncedSearch,
    SearchIndex,
    SearchSource,
    federated_search,
)
from designali_hub.domain.services.statistics_aggregator import (
    StatisticsAggregator,
    compute_stats,
)
from designali_hub.domain.services.suggestion_service import (
    SuggestionService,
    ToolSuggestion,
    parse_suggestions,
)
from designali_hub.domain.services.toggle_policy import TogglePolicy

__all__ = [
    "ChangeNotice",
    "CollectionStore",
    "DebouncedSearch",
    "NotificationInbox",
    "Notifier",
    "PreferencesService",
    "RecordFilter",
    "RecordValidationError",
    "RecordValidationFailed",
    "RecordValidator",
    "SearchIndex",
    "SearchSource",
    "StatisticsAggregator",
    "SuggestionService",
    "TogglePolicy",
    "ToolSuggestion",
    "WritePolicy",
    "advance_course_status",
    "compute_stats",
    "federated_search",
    "format_age",
    "next_course_status",
    "parse_suggestions",
    "set_course_progress",
]
