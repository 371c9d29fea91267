"""Search service orchestration layer.

``SearchService`` is the single entry point for callers: it validates
queries, consults the caches, fans out to the document store, filters and
ranks client-side, and records performance and history. Every public
search operation returns a ``SearchOperationResult`` instead of raising.
"""

import asyncio
from collections import Counter, deque
from collections.abc import Awaitable, Callable
from contextlib import suppress
import logging
import time
from typing import Any, TypeVar

import orjson
from pydantic import TypeAdapter, ValidationError

from sports_search.adapters.document_store import AbstractDocumentStore
from sports_search.adapters.kv_store import AbstractKeyValueStore
from sports_search.config import Settings
from sports_search.domain.model import Record, record_from_raw
from sports_search.domain.search import (
    DateRange,
    OptimizationSuggestion,
    PerformanceMetrics,
    RealtimeStatus,
    SavedSearch,
    SearchAnalytics,
    SearchError,
    SearchHistoryEntry,
    SearchOperationResult,
    SearchQuery,
    SearchResults,
)
from sports_search.errors import CacheError, InvalidQueryError, KeyValueStoreError, SearchTimeoutError
from sports_search.observability.context import bind_search_context
from sports_search.observability.metrics import (
    AUTOCOMPLETE_LATENCY,
    SEARCH_COUNT,
    record_search_metrics,
    track_latency,
)
from sports_search.observability.tracing import create_span, record_search_outcome, search_span_attributes
from sports_search.search.boolean_query import has_boolean_operators, parse_boolean_query
from sports_search.search.fuzzy import FuzzyMatcher
from sports_search.search.query_builder import COLLECTIONS_BY_TYPE, QueryBuilder, StoreQuery, flatten_predicates
from sports_search.search.ranking import RecordScorer, ScoredRecord, compute_facets, matches_filters, paginate, rank
from sports_search.search.validation import SEARCH_TYPES, normalize_query, validate_query
from sports_search.services.analytics_service import SearchAnalyticsService
from sports_search.services.cache_service import SearchCaches, TTLCache
from sports_search.services.debounce import RequestCoalescer
from sports_search.services.error_handler import SearchErrorHandler
from sports_search.services.performance_monitor import PerformanceMonitor
from sports_search.services.saved_search_service import SavedSearchService


logger = logging.getLogger(__name__)

T = TypeVar("T")

SEARCH_HISTORY_KEY = "searchHistory"
RESULTS_PREFIX = "search"
AUTOCOMPLETE_PREFIX = "autocomplete"
ANALYTICS_PREFIX = "analytics"

_history_list = TypeAdapter(list[SearchHistoryEntry])


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000


def _normalize_term(term: str) -> str:
    return " ".join(term.split()).lower()


def autocomplete_key(prefix: str, search_type: str) -> str:
    payload = {"prefix": _normalize_term(prefix), "type": search_type}
    return f"{AUTOCOMPLETE_PREFIX}:{orjson.dumps(payload, option=orjson.OPT_SORT_KEYS).decode('utf-8')}"


def analytics_key(date_range: DateRange | None) -> str:
    payload = {
        "start": date_range.start.isoformat() if date_range else None,
        "end": date_range.end.isoformat() if date_range else None,
    }
    return f"{ANALYTICS_PREFIX}:{orjson.dumps(payload, option=orjson.OPT_SORT_KEYS).decode('utf-8')}"


class SearchService:
    """High-level search orchestration service.

    Collaborators are injected so that each instance owns its own caches,
    monitor and coalescer; nothing is shared through module globals.
    """

    def __init__(
        self,
        document_store: AbstractDocumentStore,
        kv_store: AbstractKeyValueStore,
        *,
        settings: Settings | None = None,
        caches: SearchCaches | None = None,
        monitor: PerformanceMonitor | None = None,
        coalescer: RequestCoalescer | None = None,
        error_handler: SearchErrorHandler | None = None,
        saved_searches: SavedSearchService | None = None,
        analytics: SearchAnalyticsService | None = None,
        popular_terms: dict[str, int] | None = None,
    ):
        """Initialize search service with dependencies.

        Args:
            document_store: Source of raw user, video and event documents
            kv_store: Persistence for saved searches and search history
            settings: Configuration; defaults are read from the environment
            popular_terms: Seed for the popular-terms pool used by suggestions
        """
        self.settings = settings or Settings()
        self.document_store = document_store
        self.kv_store = kv_store
        self.caches = caches or SearchCaches.from_settings(self.settings)
        self.query_builder = QueryBuilder(
            scan_window=self.settings.scan_window,
            default_limit=self.settings.default_limit,
        )
        self.monitor = monitor or PerformanceMonitor(
            self.settings.performance_history_size,
            cost_estimator=self.query_builder.get_query_cost,
        )
        self.coalescer = coalescer or RequestCoalescer(
            delay=self.settings.debounce_delay_ms / 1000,
            max_wait=self.settings.debounce_max_wait_ms / 1000,
        )
        self.error_handler = error_handler or SearchErrorHandler(max_retries=self.settings.prefetch_max_retries)
        self.saved_searches = saved_searches or SavedSearchService(kv_store, self.settings)
        self.analytics = analytics or SearchAnalyticsService()

        self.matcher = FuzzyMatcher(max_distance=self.settings.fuzzy_max_distance)
        self.scorer = RecordScorer(self.matcher, fuzzy=self.settings.enable_fuzzy_matching)
        self._seed_terms: dict[str, int] = dict(popular_terms or {})
        self.popular_terms: Counter[str] = Counter(self._seed_terms)
        self.search_history: deque[SearchHistoryEntry] = deque(maxlen=self.settings.search_history_size)
        self._background_tasks: set[asyncio.Task] = set()
        self._initialized = False

    # Lifecycle

    async def initialize(self) -> None:
        """Load persisted search history and rebuild the popular-terms pool."""
        if self._initialized:
            return
        self._initialized = True
        if not self.settings.enable_analytics:
            return

        try:
            raw = await self.kv_store.get(SEARCH_HISTORY_KEY)
        except KeyValueStoreError as exc:
            logger.warning("Search history unavailable, starting empty: %s", exc)
            return
        if not raw:
            return

        try:
            entries = _history_list.validate_json(raw)
        except ValidationError as exc:
            logger.warning("Ignoring corrupted search history (%d validation errors)", exc.error_count())
            return

        self.search_history.extend(entries)
        for entry in self.search_history:
            self._count_popular(entry)
        logger.info("Loaded %d search history entries", len(self.search_history))

    async def destroy(self) -> None:
        """Flush history, cancel pending debounced calls and background work.

        Once flushed, the in-memory history and popular terms are reset so that
        a later ``initialize()`` reloads them from storage exactly once.
        """
        await self.coalescer.close()
        self.error_handler.clear_retries()

        tasks = list(self._background_tasks)
        for task in tasks:
            task.cancel()
        for task in tasks:
            with suppress(asyncio.CancelledError):
                await task
        self._background_tasks.clear()

        if self.settings.enable_analytics:
            payload = orjson.dumps([entry.model_dump(mode="json") for entry in self.search_history])
            try:
                await self.kv_store.set(SEARCH_HISTORY_KEY, payload.decode("utf-8"))
            except KeyValueStoreError as exc:
                logger.error("Failed to persist search history: %s", exc)
                self._initialized = False
                return

        self.search_history.clear()
        self.popular_terms = Counter(self._seed_terms)
        self._initialized = False

    def update_config(self, **changes: Any) -> Settings:
        """Apply configuration changes; invalid values raise and leave the old config active."""
        settings = self.settings.with_changes(**changes)
        self.settings = settings
        self.query_builder = QueryBuilder(scan_window=settings.scan_window, default_limit=settings.default_limit)
        self.matcher = FuzzyMatcher(max_distance=settings.fuzzy_max_distance)
        self.scorer = RecordScorer(self.matcher, fuzzy=settings.enable_fuzzy_matching)
        self.coalescer.delay = settings.debounce_delay_ms / 1000
        self.coalescer.max_wait = settings.debounce_max_wait_ms / 1000
        self.error_handler.max_retries = settings.prefetch_max_retries
        self.saved_searches.settings = settings
        self.caches.results.default_ttl = settings.results_cache_ttl_seconds
        self.caches.autocomplete.default_ttl = settings.autocomplete_cache_ttl_seconds
        self.caches.analytics.default_ttl = settings.analytics_cache_ttl_seconds
        for cache in self.caches.all():
            cache.max_entries = settings.cache_max_entries
        self.monitor.resize(settings.performance_history_size)
        self.search_history = deque(self.search_history, maxlen=settings.search_history_size)
        logger.info("Search configuration updated: %s", ", ".join(sorted(changes)))
        return settings

    # Search

    async def search(
        self,
        query: SearchQuery,
        use_debounce: bool = False,
    ) -> SearchOperationResult[SearchResults]:
        """Execute ``query``; debounced callers with the same query share one execution."""
        started = time.perf_counter()
        normalized = normalize_query(query, default_limit=self.settings.default_limit)
        violations = validate_query(
            normalized,
            max_term_length=self.settings.max_term_length,
            max_limit=self.settings.max_limit,
        )
        if violations:
            error = self.error_handler.create_search_error(InvalidQueryError(violations), component="validation")
            SEARCH_COUNT.labels(search_type="invalid", outcome="invalid").inc()
            logger.info("Rejected invalid query: %s", error.message)
            return SearchOperationResult[SearchResults](
                success=False,
                error=error,
                response_time=_elapsed_ms(started),
            )

        if not use_debounce:
            return await self._execute_search(normalized)

        key = TTLCache.generate_key(normalized, RESULTS_PREFIX)
        try:
            return await self.coalescer.execute(key, lambda: self._execute_search(normalized))
        except Exception as exc:
            return SearchOperationResult[SearchResults](
                success=False,
                error=self.error_handler.create_search_error(exc, component="debounce"),
                response_time=_elapsed_ms(started),
            )

    async def _execute_search(self, query: SearchQuery) -> SearchOperationResult[SearchResults]:
        started = time.perf_counter()
        search_type = str(query.search_type)
        with bind_search_context(search_type=search_type), create_span(
            "search.execute",
            attributes=search_span_attributes(query),
        ) as span:
            cache_key = TTLCache.generate_key(query, RESULTS_PREFIX)
            if self.settings.enable_caching:
                cached = self._cache_get(self.caches.results, cache_key)
                if cached is not None:
                    elapsed = _elapsed_ms(started)
                    record_search_outcome(span, cached=True, total_count=cached.total_count)
                    self._record_outcome(query, elapsed, cached.total_count, cached=True, errored=False)
                    return SearchOperationResult[SearchResults](
                        success=True,
                        data=cached,
                        cached=True,
                        response_time=elapsed,
                    )

            logger.debug(
                "Query cost %.1f",
                self.query_builder.get_query_cost(query),
                extra={"term": query.term, "filters": query.filters},
            )
            try:
                results = await self._run_with_deadline(
                    self._fetch_and_rank(query, started),
                    self.settings.max_search_time_seconds,
                )
            except Exception as exc:
                error = self.error_handler.create_search_error(exc)
                elapsed = _elapsed_ms(started)
                record_search_outcome(span, cached=False, error=error)
                self._record_outcome(query, elapsed, 0, cached=False, errored=True)
                logger.warning(
                    "Search failed (%s): %s",
                    error.kind.value,
                    error.message,
                    extra={"term": query.term},
                )
                return SearchOperationResult[SearchResults](success=False, error=error, response_time=elapsed)

            if self.settings.enable_caching:
                self._cache_set(self.caches.results, cache_key, results)

            elapsed = _elapsed_ms(started)
            record_search_outcome(span, cached=False, total_count=results.total_count)
            self._record_outcome(query, elapsed, results.total_count, cached=False, errored=False)
            logger.info(
                "Search returned %d of %d results in %.1fms",
                len(results.items),
                results.total_count,
                elapsed,
                extra={"term": query.term, "filters": query.filters},
            )
            return SearchOperationResult[SearchResults](success=True, data=results, response_time=elapsed)

    async def _run_with_deadline(self, coro: Awaitable[T], timeout: float) -> T:
        """Await ``coro`` for at most ``timeout`` seconds.

        On expiry the underlying work keeps running in the background until it
        settles; only the wait is abandoned.
        """
        task = asyncio.ensure_future(coro)
        self._background_tasks.add(task)
        task.add_done_callback(self._on_background_done)
        try:
            return await asyncio.wait_for(asyncio.shield(task), timeout)
        except asyncio.TimeoutError:
            logger.warning("Store fan-out exceeded %.0fms; continuing in background", timeout * 1000)
            raise SearchTimeoutError(timeout) from None

    def _on_background_done(self, task: asyncio.Task) -> None:
        self._background_tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.debug("Background store work finished with %s", type(exc).__name__)

    async def _fetch_records(self, store_queries: list[StoreQuery]) -> list[Record]:
        batches = await asyncio.gather(
            *(
                self.document_store.run_query(
                    store_query.collection,
                    flatten_predicates(store_query),
                    store_query.order_by,
                    store_query.limit,
                )
                for store_query in store_queries
            )
        )
        records: dict[str, Record] = {}
        for store_query, batch in zip(store_queries, batches):
            for raw in batch:
                record = record_from_raw(store_query.collection, raw)
                if record is not None:
                    records.setdefault(record.result_key, record)
        return list(records.values())

    async def _fetch_and_rank(self, query: SearchQuery, started: float) -> SearchResults:
        boolean_query = None
        if has_boolean_operators(query.term):
            boolean_query = parse_boolean_query(query.term)
            store_queries = self.query_builder.build_boolean_queries(query, boolean_query)
        else:
            store_queries = self.query_builder.build_queries(query)

        records = await self._fetch_records(store_queries)

        scored: list[ScoredRecord] = []
        for record in records:
            if not matches_filters(record, query.filters):
                continue
            result = self.scorer.score(record, query.term, boolean_query)
            if result.matched:
                scored.append(ScoredRecord(record=record, score=result.score))

        ranked = rank(scored)
        limit = query.limit or self.settings.default_limit
        page, has_more, next_offset = paginate(ranked, query.offset, limit)

        suggestions = None
        if not page:
            suggestions = self._generate_suggestions(query.term)

        return SearchResults(
            items=[item.record for item in page],
            total_count=len(ranked),
            search_time=_elapsed_ms(started),
            relevance_scores={item.record.result_key: round(item.score, 4) for item in page},
            facets=compute_facets(item.record for item in ranked),
            suggestions=suggestions,
            has_more=has_more,
            next_offset=next_offset,
            query=query,
        )

    def _generate_suggestions(self, term: str) -> list[str]:
        if not term.strip():
            return []
        pool = [candidate for candidate, _ in self.popular_terms.most_common()]
        return self.matcher.generate_suggestions(term, pool, self.settings.suggestion_limit)

    def _record_outcome(
        self,
        query: SearchQuery,
        response_time: float,
        result_count: int,
        *,
        cached: bool,
        errored: bool,
    ) -> None:
        search_type = str(query.search_type)
        self.monitor.record_search(query, response_time, result_count, cache_hit=cached, errored=errored)
        record_search_metrics(search_type, response_time, cached=cached, errored=errored)

        if not self.settings.enable_analytics:
            return
        entry = SearchHistoryEntry(
            term=query.term,
            search_type=search_type,
            filters=query.filters,
            result_count=result_count,
            response_time=response_time,
            cached=cached,
            errored=errored,
        )
        self.search_history.append(entry)
        self._count_popular(entry)

    def _count_popular(self, entry: SearchHistoryEntry) -> None:
        # Only terms that found something feed the suggestion pool
        term = _normalize_term(entry.term)
        if term and not entry.errored and entry.result_count > 0:
            self.popular_terms[term] += 1

    def _cache_get(self, cache: TTLCache, key: str) -> Any:
        try:
            return cache.get(key)
        except Exception as exc:
            self.error_handler.create_search_error(CacheError(str(exc)), component="cache")
            logger.warning("%s cache read failed, treating as miss: %s", cache.name, exc)
            return None

    def _cache_set(self, cache: TTLCache, key: str, value: Any) -> None:
        try:
            cache.set(key, value)
        except Exception as exc:
            self.error_handler.create_search_error(CacheError(str(exc)), component="cache")
            logger.warning("%s cache write failed: %s", cache.name, exc)

    # Autocomplete

    async def get_autocomplete_suggestions(
        self,
        prefix: str,
        search_type: str = "all",
    ) -> SearchOperationResult[list[str]]:
        """Suggestions for live typing; bounded by ``autocomplete_budget_ms``."""
        started = time.perf_counter()
        cleaned = " ".join(prefix.split())
        if not cleaned:
            return SearchOperationResult[list[str]](success=True, data=[], response_time=_elapsed_ms(started))

        search_type = str(getattr(search_type, "value", search_type))
        if search_type not in SEARCH_TYPES:
            error = self.error_handler.create_search_error(
                InvalidQueryError([f"Invalid search type: {search_type}"]),
                component="autocomplete",
            )
            return SearchOperationResult[list[str]](success=False, error=error, response_time=_elapsed_ms(started))

        key = autocomplete_key(cleaned, search_type)
        with track_latency(AUTOCOMPLETE_LATENCY, search_type=search_type):
            if self.settings.enable_caching:
                cached = self._cache_get(self.caches.autocomplete, key)
                if cached is not None:
                    return SearchOperationResult[list[str]](
                        success=True,
                        data=list(cached),
                        cached=True,
                        response_time=_elapsed_ms(started),
                    )

            degraded = False
            try:
                suggestions = await asyncio.wait_for(
                    self._scan_autocomplete(cleaned, search_type),
                    self.settings.autocomplete_budget_seconds,
                )
            except asyncio.TimeoutError:
                logger.info("Autocomplete for %r exceeded its budget; using search history", cleaned)
                suggestions = self._history_suggestions(cleaned)
                degraded = True
            except Exception as exc:
                error = self.error_handler.create_search_error(exc, component="autocomplete")
                return SearchOperationResult[list[str]](success=False, error=error, response_time=_elapsed_ms(started))

            if self.settings.enable_caching and not degraded:
                self._cache_set(self.caches.autocomplete, key, tuple(suggestions))

        return SearchOperationResult[list[str]](success=True, data=suggestions, response_time=_elapsed_ms(started))

    def _history_suggestions(self, prefix: str) -> list[str]:
        needle = _normalize_term(prefix)
        return [
            term for term, _ in self.popular_terms.most_common() if term.startswith(needle) and term != needle
        ][: self.settings.autocomplete_limit]

    async def _scan_autocomplete(self, prefix: str, search_type: str) -> list[str]:
        needle = _normalize_term(prefix)
        limit = self.settings.autocomplete_limit
        suggestions: list[str] = []
        seen: set[str] = set()

        def add(candidate: str) -> None:
            normalized = candidate.strip().lower()
            if normalized and normalized not in seen and len(suggestions) < limit:
                seen.add(normalized)
                suggestions.append(candidate.strip())

        for term in self._history_suggestions(prefix):
            add(term)

        store_queries = self.query_builder.build_queries(SearchQuery(term=prefix, search_type=search_type))
        records = sorted(await self._fetch_records(store_queries), key=lambda record: -record.sort_timestamp)

        fuzzy_hits: list[tuple[float, str]] = []
        for record in records:
            text = record.primary_text
            if not text:
                continue
            lowered = text.lower()
            if lowered.startswith(needle) or any(token.startswith(needle) for token in lowered.split()):
                add(text)
            elif self.settings.enable_fuzzy_matching:
                result = self.matcher.is_match(needle, text)
                if result.matched:
                    fuzzy_hits.append((result.score, text))

        for _, text in sorted(fuzzy_hits, key=lambda hit: -hit[0]):
            add(text)
        return suggestions

    # Saved searches

    async def save_search(self, name: str, query: SearchQuery) -> SearchOperationResult[SavedSearch]:
        return await self._guard(lambda: self.saved_searches.save_search(name, query), component="saved_search")

    async def get_saved_searches(self) -> SearchOperationResult[list[SavedSearch]]:
        return await self._guard(self.saved_searches.get_saved_searches, component="saved_search")

    async def delete_saved_search(self, search_id: str) -> SearchOperationResult[bool]:
        async def delete() -> bool:
            await self.saved_searches.delete_saved_search(search_id)
            return True

        return await self._guard(delete, component="saved_search")

    async def run_saved_search(
        self,
        search_id: str,
        use_debounce: bool = False,
    ) -> SearchOperationResult[SearchResults]:
        """Re-run a saved search, incrementing its ``use_count``."""
        marked = await self._guard(lambda: self.saved_searches.mark_search_as_used(search_id), component="saved_search")
        if not marked.success or marked.data is None:
            return SearchOperationResult[SearchResults](
                success=False,
                error=marked.error,
                response_time=marked.response_time,
            )
        return await self.search(marked.data.query, use_debounce=use_debounce)

    async def _guard(self, operation: Callable[[], Awaitable[T]], *, component: str) -> SearchOperationResult[T]:
        started = time.perf_counter()
        try:
            data = await operation()
        except Exception as exc:
            error: SearchError = self.error_handler.create_search_error(exc, component=component)
            return SearchOperationResult(success=False, error=error, response_time=_elapsed_ms(started))
        return SearchOperationResult(success=True, data=data, response_time=_elapsed_ms(started))

    # Analytics

    async def get_search_analytics(
        self,
        date_range: DateRange | None = None,
    ) -> SearchOperationResult[SearchAnalytics]:
        """Aggregate search history inside ``date_range`` (everything when None)."""
        started = time.perf_counter()
        if not self.settings.enable_analytics:
            return SearchOperationResult[SearchAnalytics](
                success=True,
                data=SearchAnalytics(),
                response_time=_elapsed_ms(started),
            )

        key = analytics_key(date_range)
        if self.settings.enable_caching:
            cached = self._cache_get(self.caches.analytics, key)
            if cached is not None:
                return SearchOperationResult[SearchAnalytics](
                    success=True,
                    data=cached,
                    cached=True,
                    response_time=_elapsed_ms(started),
                )

        analytics = self.analytics.aggregate(list(self.search_history), date_range)
        if self.settings.enable_caching:
            self._cache_set(self.caches.analytics, key, analytics)
        return SearchOperationResult[SearchAnalytics](
            success=True,
            data=analytics,
            response_time=_elapsed_ms(started),
        )

    async def export_search_analytics(self, date_range: DateRange | None = None) -> SearchOperationResult[str]:
        result = await self.get_search_analytics(date_range)
        if not result.success or result.data is None:
            return SearchOperationResult[str](success=False, error=result.error, response_time=result.response_time)
        return SearchOperationResult[str](
            success=True,
            data=self.analytics.export_csv(result.data),
            cached=result.cached,
            response_time=result.response_time,
        )

    # Cache administration

    async def prefetch_popular_searches(self) -> int:
        """Warm the results cache with the most popular terms; returns how many were fetched."""
        if not self.settings.enable_caching or self.settings.prefetch_count == 0:
            return 0

        warmed = 0
        for term, _ in self.popular_terms.most_common(self.settings.prefetch_count):
            query = normalize_query(SearchQuery(term=term), default_limit=self.settings.default_limit)
            if validate_query(query, max_term_length=self.settings.max_term_length, max_limit=self.settings.max_limit):
                continue
            key = TTLCache.generate_key(query, RESULTS_PREFIX)
            if key in self.caches.results:
                continue

            async def fetch(query: SearchQuery = query) -> SearchResults:
                return await self._run_with_deadline(
                    self._fetch_and_rank(query, time.perf_counter()),
                    self.settings.max_search_time_seconds,
                )

            try:
                results = await self.error_handler.execute_with_retry(f"prefetch:{key}", fetch)
            except Exception as exc:
                logger.warning("Prefetch of %r failed: %s", term, exc)
                continue
            self._cache_set(self.caches.results, key, results)
            warmed += 1

        if warmed:
            logger.info("Prefetched %d popular searches", warmed)
        return warmed

    def clear_caches(self) -> dict[str, int]:
        """Drop every cached result, autocomplete and analytics entry."""
        removed = {
            "results": self.caches.results.invalidate(rf"^{RESULTS_PREFIX}:"),
            "autocomplete": self.caches.autocomplete.invalidate(rf"^{AUTOCOMPLETE_PREFIX}:"),
            "analytics": self.caches.analytics.invalidate(rf"^{ANALYTICS_PREFIX}:"),
        }
        logger.info("Cleared search caches: %s", removed)
        return removed

    def notify_data_changed(self, collection: str) -> int:
        """Invalidate cached results that may include documents of ``collection``."""
        affected = [search_type for search_type, names in COLLECTIONS_BY_TYPE.items() if collection in names]
        if not affected:
            raise ValueError(f"Unknown collection: {collection}")
        pattern = '"type":"(' + "|".join(sorted(affected)) + ')"'
        removed = self.caches.results.invalidate(pattern) + self.caches.autocomplete.invalidate(pattern)
        logger.info("Data changed in %s; invalidated %d cached entries", collection, removed)
        return removed

    # Monitoring

    def get_performance_metrics(self) -> PerformanceMetrics:
        return self.monitor.get_metrics()

    def get_optimization_suggestions(self) -> list[OptimizationSuggestion]:
        return self.monitor.get_optimization_suggestions()

    def get_realtime_status(self) -> RealtimeStatus:
        return self.monitor.get_realtime_status()

    def get_stats(self) -> dict[str, Any]:
        return {
            "search_history_size": len(self.search_history),
            "popular_terms": [{"term": term, "count": count} for term, count in self.popular_terms.most_common(10)],
            "config": self.settings.model_dump(),
            "performance": self.monitor.get_realtime_status().model_dump(),
            "caches": self.caches.stats(),
            "pending_requests": self.coalescer.pending(),
        }
