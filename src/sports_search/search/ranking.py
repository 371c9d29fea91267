"""Client-side filtering, ranking, faceting and pagination of store records."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from sports_search.domain.model import Record
from sports_search.domain.search import BooleanQuery, FuzzyMatchResult
from sports_search.search.boolean_query import evaluate_boolean_query
from sports_search.search.fuzzy import FuzzyMatcher


_EXACT_MATCH = FuzzyMatchResult(matched=True, score=1.0, distance=0)


def no_match(tolerance: int = 0) -> FuzzyMatchResult:
    """A failed match whose distance lies just past ``tolerance``."""
    return FuzzyMatchResult(matched=False, score=0.0, distance=tolerance + 1)


@dataclass(frozen=True)
class ScoredRecord:
    record: Record
    score: float


def matches_filters(record: Record, filters: dict[str, list[str]]) -> bool:
    """True when every filter key has at least one matching value (case-insensitive)."""
    for key, wanted in filters.items():
        if not wanted:
            continue
        values = record.filter_value(key)
        if values is None:
            return False
        available = {value.lower() for value in values if value}
        if not any(candidate.lower() in available for candidate in wanted):
            return False
    return True


def containment_match(term: str, text: str) -> FuzzyMatchResult:
    if term.strip().lower() in text.lower():
        return _EXACT_MATCH
    return no_match()


class RecordScorer:
    """Score records against a term (or a parsed boolean query) over their display fields."""

    def __init__(self, matcher: FuzzyMatcher, *, fuzzy: bool = True):
        self.matcher = matcher
        self.fuzzy = fuzzy

    @property
    def tolerance(self) -> int:
        return self.matcher.max_distance if self.fuzzy else 0

    def match_term(self, term: str, record: Record) -> FuzzyMatchResult:
        """Best result across the record's display fields."""
        best = no_match(self.tolerance)
        for text in record.display_fields():
            result = self.matcher.is_match(term, text) if self.fuzzy else containment_match(term, text)
            if result.matched and (not best.matched or result.score > best.score):
                best = result
        return best

    def score(self, record: Record, term: str, boolean_query: BooleanQuery | None = None) -> FuzzyMatchResult:
        if not term.strip():
            return _EXACT_MATCH
        if boolean_query is not None and not boolean_query.is_simple:
            return evaluate_boolean_query(
                boolean_query,
                lambda text: self.match_term(text, record),
                tolerance=self.tolerance,
            )
        return self.match_term(term, record)


def rank(scored: Iterable[ScoredRecord]) -> list[ScoredRecord]:
    """Order by score (best first), ties broken by recency (newest first)."""
    return sorted(scored, key=lambda item: (-item.score, -item.record.sort_timestamp))


def compute_facets(records: Iterable[Record]) -> dict[str, dict[str, int]]:
    facets: dict[str, dict[str, int]] = defaultdict(lambda: defaultdict(int))
    for record in records:
        facets["type"][record.kind] += 1
        for name, value in record.facet_values().items():
            facets[name][value] += 1
    return {name: dict(sorted(values.items())) for name, values in sorted(facets.items())}


def paginate(items: Sequence[ScoredRecord], offset: int, limit: int) -> tuple[list[ScoredRecord], bool, int | None]:
    """Slice one page; returns (page, has_more, next_offset)."""
    page = list(items[offset : offset + limit])
    end = offset + len(page)
    has_more = end < len(items)
    return page, has_more, end if has_more else None
