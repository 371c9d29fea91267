"""Domain models for search requests and responses.

Following the same value-object conventions as the record models:
- Value Objects are immutable (frozen=True)
- No infrastructure dependencies
- Wire names stay snake_case; camelCase only appears at the store boundary
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Generic, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from sports_search.domain.model import EventRecord, UserRecord, VideoRecord


T = TypeVar("T")


class SearchType(str, Enum):
    """Logical collections a query can target."""

    USERS = "users"
    VIDEOS = "videos"
    EVENTS = "events"
    ALL = "all"


class BooleanOperator(str, Enum):
    AND = "AND"
    OR = "OR"
    NOT = "NOT"


class ErrorKind(str, Enum):
    INVALID_QUERY = "INVALID_QUERY"
    TIMEOUT = "TIMEOUT"
    NETWORK_ERROR = "NETWORK_ERROR"
    CACHE_ERROR = "CACHE_ERROR"
    UNKNOWN = "UNKNOWN"


RETRYABLE_KINDS = frozenset({ErrorKind.TIMEOUT, ErrorKind.NETWORK_ERROR, ErrorKind.CACHE_ERROR})


class SearchQuery(BaseModel):
    """Value object for a search request.

    ``search_type`` is kept as a plain string so that an unknown value reaches
    the validator and is reported as a violation instead of failing at
    construction time. ``limit=None`` means "use the configured default".
    """

    model_config = ConfigDict(frozen=True)

    term: str = ""
    search_type: str = SearchType.ALL.value
    filters: dict[str, list[str]] = Field(default_factory=dict)
    offset: int = 0
    limit: int | None = None


SearchResultItem = Annotated[UserRecord | VideoRecord | EventRecord, Field(discriminator="kind")]


class SearchResults(BaseModel):
    """A ranked, paginated page of matches plus facets and suggestions."""

    model_config = ConfigDict(frozen=True)

    items: list[SearchResultItem] = Field(default_factory=list)
    total_count: int = 0
    search_time: float = Field(default=0.0, description="Milliseconds spent producing the page")
    relevance_scores: dict[str, float] = Field(
        default_factory=dict,
        description='Score per item, keyed by its result_key such as "user:u1"',
    )
    facets: dict[str, dict[str, int]] = Field(default_factory=dict)
    suggestions: list[str] | None = None
    has_more: bool = False
    next_offset: int | None = None
    query: SearchQuery | None = None

    def score_for(self, item: UserRecord | VideoRecord | EventRecord) -> float | None:
        return self.relevance_scores.get(item.result_key)


class BooleanQuery(BaseModel):
    """Parsed ``AND``/``OR``/``NOT`` expression.

    ``operators[i]`` sits between ``terms[i]`` and ``terms[i + 1]``.
    """

    model_config = ConfigDict(frozen=True)

    terms: list[str]
    operators: list[BooleanOperator] = Field(default_factory=list)
    structure: str = ""

    @property
    def is_simple(self) -> bool:
        return not self.operators


class FuzzyMatchResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    matched: bool
    score: float = Field(ge=0.0, le=1.0)
    distance: int = Field(ge=0)


class SearchError(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: ErrorKind
    message: str
    retryable: bool = False
    details: list[str] = Field(default_factory=list)


class SearchOperationResult(BaseModel, Generic[T]):
    """Uniform envelope returned by every orchestrator operation."""

    model_config = ConfigDict(frozen=True)

    success: bool
    data: T | None = None
    error: SearchError | None = None
    cached: bool = False
    response_time: float = Field(default=0.0, description="Milliseconds spent in the operation")


class PerformanceMetricRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    query: SearchQuery
    response_time: float
    result_count: int = 0
    cache_hit: bool = False
    errored: bool = False
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class SavedSearch(BaseModel):
    """A named query persisted per user. ``use_count`` grows on every re-run."""

    id: str
    name: str
    query: SearchQuery
    created_at: datetime
    last_used_at: datetime | None = None
    use_count: int = Field(default=1, ge=0)


class SearchHistoryEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    term: str
    search_type: str
    filters: dict[str, list[str]] = Field(default_factory=dict)
    result_count: int = 0
    response_time: float = 0.0
    cached: bool = False
    errored: bool = False
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class DateRange(BaseModel):
    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment <= self.end


class TermCount(BaseModel):
    model_config = ConfigDict(frozen=True)

    term: str
    count: int


class ZeroResultQuery(BaseModel):
    model_config = ConfigDict(frozen=True)

    query: str
    count: int


class FilterUsage(BaseModel):
    model_config = ConfigDict(frozen=True)

    filter: str
    count: int


class TrendPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    date: str
    count: int


class SearchAnalytics(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_searches: int = 0
    average_response_time: float = 0.0
    cache_hit_rate: float = 0.0
    top_search_terms: list[TermCount] = Field(default_factory=list)
    zero_result_queries: list[ZeroResultQuery] = Field(default_factory=list)
    popular_filters: list[FilterUsage] = Field(default_factory=list)
    search_trends: list[TrendPoint] = Field(default_factory=list)


class SlowQuery(BaseModel):
    model_config = ConfigDict(frozen=True)

    query: str
    response_time: float
    severity: Literal["slow", "critical"]
    timestamp: datetime


class PerformanceMetrics(BaseModel):
    model_config = ConfigDict(frozen=True)

    average_response_time: float = 0.0
    cache_hit_rate: float = 0.0
    total_searches: int = 0
    error_rate: float = 0.0
    popular_search_terms: list[TermCount] = Field(default_factory=list)
    slow_queries: list[SlowQuery] = Field(default_factory=list)


class OptimizationSuggestion(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["index", "cache", "reliability", "query", "pagination"]
    message: str
    impact: Literal["high", "medium", "low"]
    query: SearchQuery | None = None


class RealtimeStatus(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: Literal["healthy", "degraded", "unhealthy"]
    message: str
