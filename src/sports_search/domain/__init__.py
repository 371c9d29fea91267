"""Domain layer - pure search concepts with no infrastructure dependencies.

This layer contains:
- Records: typed, immutable snapshots of store documents (users, videos, events)
- Value Objects: queries, results, parsed boolean expressions, errors
- Mapping rules: how raw store documents become records

Nothing here performs I/O.
"""

from sports_search.domain.model import (
    EventRecord,
    Record,
    UserRecord,
    VideoRecord,
    coerce_timestamp,
    record_from_raw,
)
from sports_search.domain.search import (
    BooleanOperator,
    BooleanQuery,
    DateRange,
    ErrorKind,
    FuzzyMatchResult,
    PerformanceMetricRecord,
    SavedSearch,
    SearchAnalytics,
    SearchError,
    SearchHistoryEntry,
    SearchOperationResult,
    SearchQuery,
    SearchResults,
    SearchType,
)


__all__ = [
    "BooleanOperator",
    "BooleanQuery",
    "DateRange",
    "ErrorKind",
    "EventRecord",
    "FuzzyMatchResult",
    "PerformanceMetricRecord",
    "Record",
    "SavedSearch",
    "SearchAnalytics",
    "SearchError",
    "SearchHistoryEntry",
    "SearchOperationResult",
    "SearchQuery",
    "SearchResults",
    "SearchType",
    "UserRecord",
    "VideoRecord",
    "coerce_timestamp",
    "record_from_raw",
]
