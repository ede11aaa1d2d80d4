"""Statistics aggregator: counts and group-by breakdowns over live stores.

``compute_stats`` is the reference full recomputation. The aggregator keeps
running counts updated from store change notices instead, and a full
recompute of one collection whenever that store (re)loads. Both paths share
``_group_values`` so the incremental figures always equal a full
recomputation.
"""

from typing import Any, Callable, Iterable, Mapping

from designali_hub.core.hooks import HookEvent, HookRegistry
from designali_hub.core.logging import get_logger
from designali_hub.domain.entities.aggregate_stats import AggregateStats, DashboardSummary
from designali_hub.domain.entities.record import Record
from designali_hub.domain.services.collection_store import ChangeNotice, CollectionStore

logger = get_logger(__name__)


def _group_values(value: Any) -> list[Any]:
    """Values a record contributes to a grouping. Lists count once per element."""
    if value is None or value == "":
        return []
    if isinstance(value, (list, tuple)):
        return [item for item in value if item is not None and item != ""]
    return [value]


def _count(records: Iterable[Record], fields: Iterable[str]) -> tuple[int, dict[str, dict[Any, int]]]:
    total = 0
    groups: dict[str, dict[Any, int]] = {name: {} for name in fields}
    for record in records:
        total += 1
        for name, counts in groups.items():
            for value in _group_values(record.get(name)):
                counts[value] = counts.get(value, 0) + 1
    return total, groups


def compute_stats(
    stores: Iterable[CollectionStore],
    groupings: Mapping[str, Iterable[str]] | None = None,
) -> AggregateStats:
    """Compute statistics from scratch over the current store contents."""
    groupings = groupings or {}
    per_collection: dict[str, int] = {}
    groups: dict[tuple[str, str], dict[Any, int]] = {}
    for store in stores:
        key = store.spec.name
        total, by_field = _count(store.query(), groupings.get(key, ()))
        per_collection[key] = total
        for name, counts in by_field.items():
            groups[(key, name)] = counts
    return AggregateStats(per_collection_count=per_collection, groups=groups)


class StatisticsAggregator:
    """Running statistics over a set of stores.

    Example:
        aggregator = StatisticsAggregator(stores, groupings={"tools": ("category",)})
        aggregator.compute().group_by_field("tools", "category")
        aggregator.dispose()
    """

    def __init__(
        self,
        stores: Iterable[CollectionStore],
        groupings: Mapping[str, Iterable[str]] | None = None,
        hooks: HookRegistry | None = None,
    ) -> None:
        self.hooks = hooks or HookRegistry()
        self._stores: dict[str, CollectionStore] = {store.spec.name: store for store in stores}
        self._groupings: dict[str, tuple[str, ...]] = {
            key: tuple(fields) for key, fields in (groupings or {}).items() if key in self._stores
        }
        self._counts: dict[str, int] = {}
        self._groups: dict[tuple[str, str], dict[Any, int]] = {}
        self._unsubscribers: list[Callable[[], None]] = []

        for key, store in self._stores.items():
            self._recount(key)
            self._unsubscribers.append(store.on_change(self._on_store_change))

    def compute(self, scope: Iterable[str] | None = None) -> AggregateStats:
        """Current statistics, optionally restricted to some collections."""
        keys = set(self._stores) if scope is None else set(scope) & set(self._stores)
        return AggregateStats(
            per_collection_count={key: count for key, count in self._counts.items() if key in keys},
            groups={
                (key, name): dict(counts)
                for (key, name), counts in self._groups.items()
                if key in keys
            },
        )

    def recompute(self, scope: Iterable[str] | None = None) -> AggregateStats:
        """Full recomputation, independent of the running counts."""
        keys = set(self._stores) if scope is None else set(scope)
        return compute_stats(
            [store for key, store in self._stores.items() if key in keys],
            self._groupings,
        )

    def dashboard_summary(self) -> DashboardSummary:
        """Figures for the dashboard home page."""
        stats = self.compute()
        tools_by_category: list[tuple[str, int]] = []
        if ("tools", "category") in stats.groups:
            tools_by_category = sorted(
                stats.group_by_field("tools", "category").items(),
                key=lambda item: (-item[1], str(item[0]).casefold()),
            )

        completed = 0
        if ("courses", "status") in stats.groups:
            completed = stats.group_by_field("courses", "status").get("Completed", 0)

        course_progress: list[tuple[str, int]] = []
        courses = self._stores.get("courses")
        if courses is not None:
            in_progress = courses.query(lambda record: record.get("status") == "In Progress")
            course_progress = sorted(
                ((courses.spec.title_of(record), record.get("progress") or 0) for record in in_progress),
                key=lambda item: (-item[1], item[0].casefold()),
            )

        return DashboardSummary(
            tools=stats.count("tools"),
            videos=stats.count("videos"),
            notes=stats.count("notes"),
            resources=stats.count("resources"),
            completed_courses=completed,
            tools_by_category=tools_by_category,
            course_progress=course_progress,
        )

    def on_change(self, listener: Callable[[AggregateStats], None]) -> Callable[[], None]:
        """Call listener with fresh statistics after every change."""
        hook_id = self.hooks.register(HookEvent.STATS_CHANGED, lambda event, stats: listener(stats))
        return lambda: self.hooks.unregister(hook_id)

    def dispose(self) -> None:
        """Stop observing the stores."""
        unsubscribers, self._unsubscribers = self._unsubscribers, []
        for unsubscribe in unsubscribers:
            unsubscribe()

    def _on_store_change(self, notice: ChangeNotice) -> None:
        key = notice.collection
        if key not in self._stores:
            return

        if notice.event == HookEvent.STORE_LOADED:
            self._recount(key)
        elif notice.event == HookEvent.RECORD_INSERTED and notice.record is not None:
            self._add(key, notice.record, 1)
        elif notice.event == HookEvent.RECORD_UPDATED and notice.record is not None:
            if notice.previous is not None:
                self._add(key, notice.previous, -1)
            self._add(key, notice.record, 1)
        elif notice.event == HookEvent.RECORD_DELETED and notice.previous is not None:
            self._add(key, notice.previous, -1)
        else:
            return

        self.hooks.emit(HookEvent.STATS_CHANGED, self.compute())

    def _recount(self, key: str) -> None:
        total, by_field = _count(self._stores[key].query(), self._groupings.get(key, ()))
        self._counts[key] = total
        for name, counts in by_field.items():
            self._groups[(key, name)] = counts
        logger.debug("Statistics recounted", collection=key, count=total)

    def _add(self, key: str, record: Record, delta: int) -> None:
        self._counts[key] = self._counts.get(key, 0) + delta
        for name in self._groupings.get(key, ()):
            counts = self._groups.setdefault((key, name), {})
            for value in _group_values(record.get(name)):
                updated = counts.get(value, 0) + delta
                if updated:
                    counts[value] = updated
                else:
                    counts.pop(value, None)
