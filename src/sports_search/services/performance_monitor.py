"""Rolling performance statistics and optimization hints for searches.

Thresholds:
- a search taking ``SLOW_QUERY_MS`` (1000ms) or longer is "slow"
- a search taking ``CRITICAL_QUERY_MS`` (3000ms) or longer is "critical"
- realtime status looks at the last ``RECENT_WINDOW`` records: unhealthy when
  the error rate exceeds 10% or P95 latency exceeds the critical threshold,
  degraded when the error rate exceeds 5% or P95 exceeds the slow threshold
"""

from collections import Counter, defaultdict, deque
from collections.abc import Callable, Iterable
from datetime import datetime, timezone
import logging
import threading

from sports_search.domain.search import (
    OptimizationSuggestion,
    PerformanceMetricRecord,
    PerformanceMetrics,
    RealtimeStatus,
    SearchQuery,
    SlowQuery,
    TermCount,
)
from sports_search.observability.metrics import SLOW_QUERIES
from sports_search.search.query_utils import describe_query, query_fingerprint


logger = logging.getLogger(__name__)

SLOW_QUERY_MS = 1000.0
CRITICAL_QUERY_MS = 3000.0

RECENT_WINDOW = 100
DEGRADED_ERROR_RATE = 0.05
UNHEALTHY_ERROR_RATE = 0.10

INDEX_SUGGESTION_MIN_QUERIES = 5
CACHE_SUGGESTION_MIN_SEARCHES = 20
LOW_CACHE_HIT_RATE = 0.3
LARGE_PAGE_LIMIT = 50
LARGE_PAGE_MIN_QUERIES = 5
HIGH_QUERY_COST = 15.0

POPULAR_TERMS_LIMIT = 10
SLOW_QUERIES_LIMIT = 20


def classify_latency(response_time_ms: float) -> str | None:
    """``"critical"``, ``"slow"`` or ``None`` for a response time in milliseconds."""
    if response_time_ms >= CRITICAL_QUERY_MS:
        return "critical"
    if response_time_ms >= SLOW_QUERY_MS:
        return "slow"
    return None


def percentile(values: Iterable[float], fraction: float) -> float:
    ordered = sorted(values)
    if not ordered:
        return 0.0
    index = min(int(len(ordered) * fraction), len(ordered) - 1)
    return ordered[index]


class PerformanceMonitor:
    """Append-only ring buffer of ``PerformanceMetricRecord`` plus derived views.

    Args:
        history_size: Records retained; the oldest are evicted beyond it
        cost_estimator: Optional query cost function used by the "query" hint
    """

    def __init__(
        self,
        history_size: int = 1000,
        *,
        cost_estimator: Callable[[SearchQuery], float] | None = None,
    ):
        self.history_size = history_size
        self._records: deque[PerformanceMetricRecord] = deque(maxlen=history_size)
        self._cost_estimator = cost_estimator
        self._lock = threading.Lock()

    def record_search(
        self,
        query: SearchQuery,
        response_time: float,
        result_count: int = 0,
        cache_hit: bool = False,
        errored: bool = False,
        *,
        timestamp: datetime | None = None,
    ) -> PerformanceMetricRecord:
        record = PerformanceMetricRecord(
            query=query,
            response_time=response_time,
            result_count=result_count,
            cache_hit=cache_hit,
            errored=errored,
            timestamp=timestamp or datetime.now(timezone.utc),
        )
        with self._lock:
            self._records.append(record)

        severity = classify_latency(response_time)
        if severity:
            SLOW_QUERIES.labels(severity=severity).inc()
            logger.warning(
                "%s search: %s took %.0fms",
                severity.capitalize(),
                describe_query(query),
                response_time,
            )
        return record

    def records(self) -> list[PerformanceMetricRecord]:
        with self._lock:
            return list(self._records)

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

    def resize(self, history_size: int) -> None:
        """Change the retention bound, keeping the newest records."""
        with self._lock:
            self.history_size = history_size
            self._records = deque(self._records, maxlen=history_size)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def get_metrics(self) -> PerformanceMetrics:
        records = self.records()
        if not records:
            return PerformanceMetrics()

        total = len(records)
        term_counts = Counter(
            " ".join(record.query.term.split()).lower() for record in records if record.query.term.strip()
        )
        slow = [
            SlowQuery(
                query=describe_query(record.query),
                response_time=record.response_time,
                severity=severity,
                timestamp=record.timestamp,
            )
            for record in reversed(records)
            if (severity := classify_latency(record.response_time))
        ]
        return PerformanceMetrics(
            average_response_time=sum(record.response_time for record in records) / total,
            cache_hit_rate=sum(1 for record in records if record.cache_hit) / total,
            total_searches=total,
            error_rate=sum(1 for record in records if record.errored) / total,
            popular_search_terms=[
                TermCount(term=term, count=count) for term, count in term_counts.most_common(POPULAR_TERMS_LIMIT)
            ],
            slow_queries=slow[:SLOW_QUERIES_LIMIT],
        )

    def get_optimization_suggestions(self) -> list[OptimizationSuggestion]:
        """Heuristic hints derived from the retained history, highest impact first."""
        records = self.records()
        if not records:
            return []

        suggestions: list[OptimizationSuggestion] = []
        suggestions.extend(self._index_suggestions(records))

        total = len(records)
        hit_rate = sum(1 for record in records if record.cache_hit) / total
        if total >= CACHE_SUGGESTION_MIN_SEARCHES and hit_rate < LOW_CACHE_HIT_RATE:
            suggestions.append(
                OptimizationSuggestion(
                    type="cache",
                    message=(
                        f"Cache hit rate is {hit_rate:.0%} over {total} searches; "
                        "consider longer result TTLs or prefetching popular searches"
                    ),
                    impact="medium",
                )
            )

        error_rate = sum(1 for record in records if record.errored) / total
        if error_rate > DEGRADED_ERROR_RATE:
            suggestions.append(
                OptimizationSuggestion(
                    type="reliability",
                    message=f"Error rate is {error_rate:.1%}; check document store connectivity and timeouts",
                    impact="high",
                )
            )

        suggestions.extend(self._query_suggestions(records))

        large_pages = [record for record in records if (record.query.limit or 0) > LARGE_PAGE_LIMIT]
        if len(large_pages) >= LARGE_PAGE_MIN_QUERIES:
            suggestions.append(
                OptimizationSuggestion(
                    type="pagination",
                    message=(
                        f"{len(large_pages)} searches requested more than {LARGE_PAGE_LIMIT} results; "
                        "smaller pages load faster"
                    ),
                    impact="low",
                    query=large_pages[-1].query,
                )
            )

        order = {"high": 0, "medium": 1, "low": 2}
        return sorted(suggestions, key=lambda suggestion: order[suggestion.impact])

    def _index_suggestions(self, records: list[PerformanceMetricRecord]) -> list[OptimizationSuggestion]:
        by_combo: dict[tuple[str, ...], list[PerformanceMetricRecord]] = defaultdict(list)
        for record in records:
            if record.errored or record.cache_hit:
                continue
            combo = tuple(sorted(key for key, values in record.query.filters.items() if values))
            if combo:
                by_combo[combo].append(record)

        suggestions = []
        for combo, group in sorted(by_combo.items()):
            if len(group) < INDEX_SUGGESTION_MIN_QUERIES:
                continue
            average = sum(record.response_time for record in group) / len(group)
            if average < SLOW_QUERY_MS:
                continue
            suggestions.append(
                OptimizationSuggestion(
                    type="index",
                    message=(
                        f"{len(group)} searches filtered on {' + '.join(combo)} averaged {average:.0f}ms; "
                        "consider a composite index on these fields"
                    ),
                    impact="high",
                    query=group[-1].query,
                )
            )
        return suggestions

    def _query_suggestions(self, records: list[PerformanceMetricRecord]) -> list[OptimizationSuggestion]:
        critical: dict[str, list[PerformanceMetricRecord]] = defaultdict(list)
        expensive: dict[str, PerformanceMetricRecord] = {}
        for record in records:
            if record.errored:
                continue
            fingerprint = query_fingerprint(record.query)
            if classify_latency(record.response_time) == "critical":
                critical[fingerprint].append(record)
            elif (
                self._cost_estimator is not None
                and classify_latency(record.response_time)
                and self._cost_estimator(record.query) >= HIGH_QUERY_COST
            ):
                expensive[fingerprint] = record

        suggestions = []
        for group in critical.values():
            if len(group) < 2:
                continue
            query = group[-1].query
            suggestions.append(
                OptimizationSuggestion(
                    type="query",
                    message=(
                        f"{describe_query(query)} exceeded {CRITICAL_QUERY_MS:.0f}ms {len(group)} times; "
                        "simplify it or narrow it with filters"
                    ),
                    impact="high",
                    query=query,
                )
            )
        for fingerprint, record in expensive.items():
            if fingerprint in critical and len(critical[fingerprint]) >= 2:
                continue
            suggestions.append(
                OptimizationSuggestion(
                    type="query",
                    message=(
                        f"{describe_query(record.query)} is an expensive query; "
                        "reduce boolean operators or page size"
                    ),
                    impact="high",
                    query=record.query,
                )
            )
        return suggestions

    def get_realtime_status(self) -> RealtimeStatus:
        records = self.records()[-RECENT_WINDOW:]
        if not records:
            return RealtimeStatus(status="healthy", message="No searches recorded yet")

        error_rate = sum(1 for record in records if record.errored) / len(records)
        p95 = percentile((record.response_time for record in records), 0.95)
        summary = f"error rate {error_rate:.1%}, p95 {p95:.0f}ms over {len(records)} searches"

        if error_rate > UNHEALTHY_ERROR_RATE or p95 > CRITICAL_QUERY_MS:
            return RealtimeStatus(status="unhealthy", message=f"Search is unhealthy: {summary}")
        if error_rate > DEGRADED_ERROR_RATE or p95 > SLOW_QUERY_MS:
            return RealtimeStatus(status="degraded", message=f"Search is degraded: {summary}")
        return RealtimeStatus(status="healthy", message=f"Search is healthy: {summary}")
