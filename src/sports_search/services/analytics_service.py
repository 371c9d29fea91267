"""Aggregate search history into analytics snapshots and CSV exports."""

from collections import Counter
from collections.abc import Iterable
import csv
from datetime import datetime, timezone
import io
import logging

from sports_search.domain.search import (
    DateRange,
    FilterUsage,
    SearchAnalytics,
    SearchHistoryEntry,
    TermCount,
    TrendPoint,
    ZeroResultQuery,
)


logger = logging.getLogger(__name__)

TOP_LIMIT = 10


def _aware(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def _normalize_term(term: str) -> str:
    return " ".join(term.split()).lower()


class SearchAnalyticsService:
    """Stateless aggregation over ``SearchHistoryEntry`` values.

    Errored searches are excluded from every figure.
    """

    def __init__(self, top_limit: int = TOP_LIMIT):
        self.top_limit = top_limit

    def aggregate(
        self,
        entries: Iterable[SearchHistoryEntry],
        date_range: DateRange | None = None,
    ) -> SearchAnalytics:
        if date_range is not None:
            window = DateRange(start=_aware(date_range.start), end=_aware(date_range.end))
            selected = [entry for entry in entries if window.contains(_aware(entry.timestamp))]
        else:
            selected = list(entries)
        completed = [entry for entry in selected if not entry.errored]
        if not completed:
            return SearchAnalytics()

        total = len(completed)
        terms = Counter(_normalize_term(entry.term) for entry in completed if entry.term.strip())
        zero_results = Counter(
            _normalize_term(entry.term) for entry in completed if entry.result_count == 0 and entry.term.strip()
        )
        filters = Counter(
            f"{key}:{value}" for entry in completed for key, values in sorted(entry.filters.items()) for value in values
        )
        trends = Counter(_aware(entry.timestamp).date().isoformat() for entry in completed)

        return SearchAnalytics(
            total_searches=total,
            average_response_time=sum(entry.response_time for entry in completed) / total,
            cache_hit_rate=sum(1 for entry in completed if entry.cached) / total,
            top_search_terms=[TermCount(term=term, count=count) for term, count in terms.most_common(self.top_limit)],
            zero_result_queries=[
                ZeroResultQuery(query=term, count=count) for term, count in zero_results.most_common(self.top_limit)
            ],
            popular_filters=[
                FilterUsage(filter=name, count=count) for name, count in filters.most_common(self.top_limit)
            ],
            search_trends=[TrendPoint(date=day, count=count) for day, count in sorted(trends.items())],
        )

    def export_csv(self, analytics: SearchAnalytics) -> str:
        """Render ``analytics`` as a sectioned CSV document."""
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")

        writer.writerow(["Search Analytics Export"])
        writer.writerow([])
        writer.writerow(["Summary Metrics"])
        writer.writerow(["Total Searches", analytics.total_searches])
        writer.writerow(["Average Response Time", f"{analytics.average_response_time:.0f}ms"])
        writer.writerow(["Cache Hit Rate", f"{analytics.cache_hit_rate * 100:.1f}%"])

        writer.writerow([])
        writer.writerow(["Top Search Terms"])
        writer.writerow(["Term", "Count"])
        for item in analytics.top_search_terms:
            writer.writerow([item.term, item.count])

        writer.writerow([])
        writer.writerow(["Zero Result Queries"])
        writer.writerow(["Query", "Count"])
        for item in analytics.zero_result_queries:
            writer.writerow([item.query, item.count])

        writer.writerow([])
        writer.writerow(["Popular Filters"])
        writer.writerow(["Filter", "Count"])
        for item in analytics.popular_filters:
            writer.writerow([item.filter, item.count])

        writer.writerow([])
        writer.writerow(["Search Trends"])
        writer.writerow(["Date", "Count"])
        for point in analytics.search_trends:
            writer.writerow([point.date, point.count])

        return buffer.getvalue()
