"""Unit tests for search analytics aggregation and CSV export."""

from datetime import datetime, timezone

import pytest

from sports_search.domain.search import DateRange, SearchAnalytics, SearchHistoryEntry, TermCount, TrendPoint
from sports_search.services.analytics_service import SearchAnalyticsService


def _entry(term, day, **kwargs):
    return SearchHistoryEntry(
        term=term,
        search_type=kwargs.pop("search_type", "all"),
        timestamp=datetime(2024, 1, day, 12, tzinfo=timezone.utc),
        **kwargs,
    )


@pytest.fixture
def entries():
    return [
        _entry("John", 1, filters={"role": ["athlete"]}, result_count=2, response_time=100.0),
        _entry("john ", 1, result_count=1, response_time=300.0, cached=True),
        _entry("zzz", 2, result_count=0, response_time=200.0),
        _entry("boom", 2, errored=True, response_time=5000.0),
        _entry("", 3, filters={"role": ["coach"]}, result_count=0, response_time=0.0),
    ]


@pytest.mark.unit
class TestAggregate:
    def test_summary_excludes_errored_searches(self, entries):
        analytics = SearchAnalyticsService().aggregate(entries)

        assert analytics.total_searches == 4
        assert analytics.average_response_time == pytest.approx(150.0)
        assert analytics.cache_hit_rate == pytest.approx(0.25)

    def test_terms_are_normalized(self, entries):
        analytics = SearchAnalyticsService().aggregate(entries)

        assert [(item.term, item.count) for item in analytics.top_search_terms] == [("john", 2), ("zzz", 1)]

    def test_zero_result_queries_need_a_term(self, entries):
        analytics = SearchAnalyticsService().aggregate(entries)

        assert [(item.query, item.count) for item in analytics.zero_result_queries] == [("zzz", 1)]

    def test_popular_filters(self, entries):
        analytics = SearchAnalyticsService().aggregate(entries)

        assert {(item.filter, item.count) for item in analytics.popular_filters} == {
            ("role:athlete", 1),
            ("role:coach", 1),
        }

    def test_trends_by_day(self, entries):
        analytics = SearchAnalyticsService().aggregate(entries)

        assert [(point.date, point.count) for point in analytics.search_trends] == [
            ("2024-01-01", 2),
            ("2024-01-02", 1),
            ("2024-01-03", 1),
        ]

    def test_date_range(self, entries):
        window = DateRange(
            start=datetime(2024, 1, 2, tzinfo=timezone.utc),
            end=datetime(2024, 1, 2, 23, 59, tzinfo=timezone.utc),
        )

        analytics = SearchAnalyticsService().aggregate(entries, window)

        assert analytics.total_searches == 1
        assert analytics.top_search_terms[0].term == "zzz"

    def test_naive_date_range_is_utc(self, entries):
        window = DateRange(start=datetime(2024, 1, 3), end=datetime(2024, 1, 4))

        assert SearchAnalyticsService().aggregate(entries, window).total_searches == 1

    def test_no_entries(self):
        assert SearchAnalyticsService().aggregate([]) == SearchAnalytics()

    def test_top_limit(self):
        entries = [_entry(f"term{index}", 1) for index in range(5)]

        analytics = SearchAnalyticsService(top_limit=3).aggregate(entries)

        assert len(analytics.top_search_terms) == 3


@pytest.mark.unit
class TestExportCsv:
    def test_sections(self):
        analytics = SearchAnalytics(
            total_searches=2,
            average_response_time=150.4,
            cache_hit_rate=0.5,
            top_search_terms=[TermCount(term="john", count=2)],
            search_trends=[TrendPoint(date="2024-01-01", count=2)],
        )

        lines = SearchAnalyticsService().export_csv(analytics).splitlines()

        assert lines == [
            "Search Analytics Export",
            "",
            "Summary Metrics",
            "Total Searches,2",
            "Average Response Time,150ms",
            "Cache Hit Rate,50.0%",
            "",
            "Top Search Terms",
            "Term,Count",
            "john,2",
            "",
            "Zero Result Queries",
            "Query,Count",
            "",
            "Popular Filters",
            "Filter,Count",
            "",
            "Search Trends",
            "Date,Count",
            "2024-01-01,2",
        ]

    def test_values_with_commas_are_quoted(self):
        analytics = SearchAnalytics(top_search_terms=[TermCount(term="doe, john", count=1)])

        assert '"doe, john",1' in SearchAnalyticsService().export_csv(analytics)
