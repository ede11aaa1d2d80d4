"""Federated search over in-memory collection stores.

There is no persistent index: every search scans the records each store
already holds. Results are grouped by source in the order the sources were
given, then by store iteration order, with no cross-collection ranking.

``DebouncedSearch`` sits in front of a SearchIndex for keystroke input. It
waits for a quiet period before searching, keeps at most one search in
flight and tags each query with a sequence number so that only the result
of the latest query is ever applied.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterable, Sequence

from designali_hub.core.hooks import HookEvent, HookRegistry
from designali_hub.core.logging import get_logger
from designali_hub.domain.entities.record import Record
from designali_hub.domain.entities.search_result import SearchResult
from designali_hub.domain.services.collection_store import CollectionStore

logger = get_logger(__name__)

DEFAULT_SNIPPET_LENGTH = 100

Extractor = Callable[[Record], Iterable[Any]]
Mapper = Callable[[Record], SearchResult]
SearchFunction = Callable[[str, Sequence["SearchSource"]], Awaitable[list[SearchResult]]]


@dataclass(frozen=True)
class SearchSource:
    """One store taking part in federated search.

    Attributes:
        store: Store whose records are scanned.
        extractor: Returns the values matched against the query. Defaults to
            the collection's search fields.
        mapper: Turns a matching record into a SearchResult. Defaults to the
            collection's title/snippet fields and target view.
        snippet_length: Snippet truncation used by the default mapper.
    """

    store: CollectionStore
    extractor: Extractor | None = None
    mapper: Mapper | None = None
    snippet_length: int = DEFAULT_SNIPPET_LENGTH

    @property
    def collection(self) -> str:
        return self.store.spec.name

    def extract(self, record: Record) -> Iterable[Any]:
        if self.extractor is not None:
            return self.extractor(record)
        spec = self.store.spec
        return [record.get(name) for name in spec.search_fields or (spec.title_field,)]

    def to_result(self, record: Record) -> SearchResult:
        if self.mapper is not None:
            return self.mapper(record)
        spec = self.store.spec
        return SearchResult(
            source_collection=spec.name,
            record_id=record.id,
            display_title=spec.title_of(record),
            display_snippet=spec.snippet_of(record, self.snippet_length),
            target_view=spec.view,
        )


def federated_search(query: str, sources: Iterable[SearchSource]) -> list[SearchResult]:
    """Case-insensitive substring search across sources.

    An empty or blank query returns no results.
    """
    term = query.strip().casefold()
    if not term:
        return []

    results: list[SearchResult] = []
    for source in sources:
        for record in source.store.query():
            values = source.extract(record)
            if any(value is not None and term in str(value).casefold() for value in values):
                results.append(source.to_result(record))
    return results


class SearchIndex:
    """Search entry point over a fixed, ordered set of sources.

    Args:
        sources: Sources in the order results should be grouped.
        search_fn: Optional coroutine doing the actual search, e.g. a
            backend call. Defaults to scanning the stores locally.
    """

    def __init__(self, sources: Sequence[SearchSource], search_fn: SearchFunction | None = None) -> None:
        self.sources = list(sources)
        self._search_fn = search_fn

    def scoped(self, scope: Iterable[str] | None = None) -> list[SearchSource]:
        """Sources restricted to the given collection names, keeping order."""
        if scope is None:
            return list(self.sources)
        names = set(scope)
        return [source for source in self.sources if source.collection in names]

    async def search(self, query: str, scope: Iterable[str] | None = None) -> list[SearchResult]:
        """Search the scoped sources for query."""
        if not query.strip():
            return []
        sources = self.scoped(scope)
        if self._search_fn is not None:
            results = await self._search_fn(query, sources)
        else:
            results = federated_search(query, sources)
        logger.debug("Search completed", query=query, results=len(results), sources=len(sources))
        return results


class DebouncedSearch:
    """Keystroke-facing search with debounce and stale-result suppression.

    Example:
        search = DebouncedSearch(index, delay=0.3)
        for text in ("d", "de", "des"):
            search.submit(text)
        await search.flush()
        search.results  # results for "des" only
    """

    def __init__(
        self,
        index: SearchIndex,
        delay: float = 0.3,
        scope: Iterable[str] | None = None,
        hooks: HookRegistry | None = None,
    ) -> None:
        if delay <= 0:
            raise ValueError("Debounce delay must be positive")
        self.index = index
        self.delay = delay
        self.scope = list(scope) if scope is not None else None
        self.hooks = hooks or HookRegistry()
        self.results: list[SearchResult] = []
        self.query = ""
        self._sequence = 0
        self._timer: asyncio.TimerHandle | None = None
        self._pending: tuple[int, str] | None = None
        self._task: asyncio.Task | None = None

    @property
    def sequence(self) -> int:
        """Sequence number of the latest submitted query."""
        return self._sequence

    @property
    def busy(self) -> bool:
        """Whether a search is scheduled or in flight."""
        return self._timer is not None or (self._task is not None and not self._task.done())

    def submit(self, query: str) -> int:
        """Register a new query; must be called from the event loop.

        A blank query clears the results immediately without searching.

        Returns:
            The sequence number assigned to the query.
        """
        self._sequence += 1
        sequence = self._sequence
        self._cancel_timer()

        if not query.strip():
            self._pending = None
            self._cancel_task()
            self._apply(sequence, query, [])
            return sequence

        loop = asyncio.get_running_loop()
        self._pending = (sequence, query)
        self._timer = loop.call_later(self.delay, self._fire)
        return sequence

    def _fire(self) -> None:
        self._timer = None
        if self._pending is None:
            return
        sequence, query = self._pending
        self._pending = None
        self._cancel_task()
        self._task = asyncio.ensure_future(self._run(sequence, query))

    async def _run(self, sequence: int, query: str) -> None:
        try:
            results = await self.index.search(query, self.scope)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning("Search failed", query=query, error=str(e), error_type=type(e).__name__)
            return
        self._apply(sequence, query, results)

    def _apply(self, sequence: int, query: str, results: list[SearchResult]) -> None:
        if sequence != self._sequence:
            logger.debug("Discarded stale search results", query=query, sequence=sequence, latest=self._sequence)
            return
        self.query = query
        self.results = results
        self.hooks.emit(HookEvent.SEARCH_RESULTS, {"query": query, "results": results, "sequence": sequence})

    def on_results(self, listener: Callable[[str, list[SearchResult]], None]) -> Callable[[], None]:
        """Call listener(query, results) whenever results are applied."""
        hook_id = self.hooks.register(
            HookEvent.SEARCH_RESULTS,
            lambda event, data: listener(data["query"], data["results"]),
        )
        return lambda: self.hooks.unregister(hook_id)

    async def flush(self) -> list[SearchResult]:
        """Run any scheduled search now and wait for the in-flight one."""
        if self._timer is not None:
            self._cancel_timer()
            self._fire()
        task = self._task
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)
        return self.results

    def close(self) -> None:
        """Drop any scheduled or in-flight search."""
        self._cancel_timer()
        self._pending = None
        self._cancel_task()

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _cancel_task(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
