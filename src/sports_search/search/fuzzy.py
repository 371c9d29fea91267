"""Fuzzy matching for typo-tolerant search.

This module provides edit distance calculation and fuzzy term matching
for handling typos in search queries.

Matching rules:
- Plain Levenshtein distance (insertions, deletions, substitutions)
- Case-insensitive unless the matcher is built with case_sensitive=True
- A target is compared as a whole, word by word, and for multi-word terms
  by windows of consecutive words, so "jon" can match the "John" inside
  "John Doe" and "basketball training" the middle of "Advanced Basketball
  Training Drills"
- Default tolerance is 2 edits, reduced for very short terms
  (1-2 chars: exact only, 3 chars: 1 edit)
- score = 1 - distance / len(compared segment), 0 when not matched
- An optional similarity threshold rejects matches scoring below it; the
  default of 0.0 leaves the distance tolerance as the only condition
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
import re
from typing import Any

from sports_search.domain.search import FuzzyMatchResult


DEFAULT_MAX_DISTANCE = 2

_TOKEN_SPLIT = re.compile(r"[\s@._\-/,;:]+")


def levenshtein_distance(s1: str, s2: str, max_distance: int | None = None) -> int:
    """Calculate the Levenshtein (edit) distance between two strings.

    Uses dynamic programming for O(m*n) time complexity, with optional
    early termination when distance exceeds max_distance.

    Args:
        s1: First string.
        s2: Second string.
        max_distance: If provided, return max_distance+1 early when
            distance is guaranteed to exceed this threshold.

    Returns:
        The minimum number of single-character edits needed to change
        s1 into s2. If max_distance is set and exceeded, returns
        max_distance+1.

    Examples:
        >>> levenshtein_distance("kitten", "sitting")
        3
        >>> levenshtein_distance("hello", "hallo")
        1
    """
    if not s1:
        return len(s2) if max_distance is None else min(len(s2), max_distance + 1)
    if not s2:
        return len(s1) if max_distance is None else min(len(s1), max_distance + 1)

    if len(s1) > len(s2):
        s1, s2 = s2, s1

    m, n = len(s1), len(s2)

    if max_distance is not None and n - m > max_distance:
        return max_distance + 1

    prev_row = list(range(m + 1))
    curr_row = [0] * (m + 1)

    for j in range(1, n + 1):
        curr_row[0] = j
        row_min = curr_row[0]
        for i in range(1, m + 1):
            cost = 0 if s1[i - 1] == s2[j - 1] else 1
            curr_row[i] = min(
                prev_row[i] + 1,  # deletion
                curr_row[i - 1] + 1,  # insertion
                prev_row[i - 1] + cost,  # substitution
            )
            row_min = min(row_min, curr_row[i])

        if max_distance is not None and row_min > max_distance:
            return max_distance + 1

        prev_row, curr_row = curr_row, prev_row

    return prev_row[m]


def get_max_edit_distance(term_length: int, ceiling: int = DEFAULT_MAX_DISTANCE) -> int:
    """Get the edit distance tolerated for a term of the given length.

    - 1-2 chars: no fuzzy matching (every short word would match)
    - 3 chars: at most 1 edit
    - 4+ chars: the matcher's ceiling
    """
    if term_length <= 2:
        return 0
    if term_length == 3:
        return min(1, ceiling)
    return ceiling


@dataclass(frozen=True)
class FieldMatch:
    field: str
    value: str
    result: FuzzyMatchResult


@dataclass(frozen=True)
class ObjectMatch:
    object: Any
    matches: list[FieldMatch] = field(default_factory=list)

    @property
    def best_score(self) -> float:
        return max((match.result.score for match in self.matches), default=0.0)


class FuzzyMatcher:
    """Stateless edit-distance matcher.

    Pure and deterministic: no I/O, no shared state beyond its options.
    """

    def __init__(
        self,
        max_distance: int = DEFAULT_MAX_DISTANCE,
        *,
        case_sensitive: bool = False,
        threshold: float = 0.0,
    ):
        if max_distance < 0:
            raise ValueError("max_distance must be non-negative")
        if not 0.0 <= threshold <= 1.0:
            raise ValueError("threshold must be between 0 and 1")
        self.max_distance = max_distance
        self.case_sensitive = case_sensitive
        self.threshold = threshold

    def get_options(self) -> dict[str, Any]:
        return {"max_distance": self.max_distance, "case_sensitive": self.case_sensitive, "threshold": self.threshold}

    def _normalize(self, value: str) -> str:
        value = value.strip()
        return value if self.case_sensitive else value.lower()

    def tolerance_for(self, term: str) -> int:
        return get_max_edit_distance(len(self._normalize(term)), self.max_distance)

    def calculate_distance(self, s1: str, s2: str) -> int:
        return levenshtein_distance(self._normalize(s1), self._normalize(s2))

    def calculate_similarity(self, s1: str, s2: str) -> float:
        """Return ``1 - distance / longest length``; two empty strings are identical."""
        a, b = self._normalize(s1), self._normalize(s2)
        longest = max(len(a), len(b))
        if longest == 0:
            return 1.0
        return 1.0 - levenshtein_distance(a, b) / longest

    def _segments(self, target: str, term_words: int = 1) -> list[str]:
        tokens = [token for token in _TOKEN_SPLIT.split(target) if token]
        segments = [target]
        seen = {target}
        sizes = [1] if term_words <= 1 else range(max(1, term_words - 1), term_words + 2)
        for size in sizes:
            for start in range(len(tokens) - size + 1):
                window = " ".join(tokens[start : start + size])
                if window not in seen:
                    seen.add(window)
                    segments.append(window)
        return segments

    def is_match(self, term: str, target: str) -> FuzzyMatchResult:
        """Match ``term`` against ``target`` as a whole and by word windows.

        The best segment wins: lowest distance first, then highest score.
        """
        needle = " ".join(self._normalize(term).split())
        haystack = self._normalize(target)
        if not needle or not haystack:
            return FuzzyMatchResult(matched=False, score=0.0, distance=max(len(needle), len(haystack), 1))

        tolerance = get_max_edit_distance(len(needle), self.max_distance)
        best_distance: int | None = None
        best_score = 0.0
        for segment in self._segments(haystack, len(needle.split())):
            distance = levenshtein_distance(needle, segment, tolerance)
            score = max(0.0, min(1.0, 1.0 - distance / len(segment)))
            if best_distance is None or distance < best_distance or (distance == best_distance and score > best_score):
                best_distance, best_score = distance, score

        assert best_distance is not None
        if best_distance > tolerance:
            # Bounded distance: the reported value is a lower bound past the tolerance
            return FuzzyMatchResult(matched=False, score=0.0, distance=best_distance)
        if best_score < self.threshold:
            # Scoring below the threshold counts as outside the tolerance
            return FuzzyMatchResult(matched=False, score=0.0, distance=tolerance + 1)
        return FuzzyMatchResult(matched=True, score=best_score, distance=best_distance)

    def find_matches(self, term: str, targets: Iterable[str]) -> list[tuple[str, FuzzyMatchResult]]:
        """Return matching targets sorted by score, best first."""
        matches = [(target, self.is_match(term, target)) for target in targets]
        matched = [(target, result) for target, result in matches if result.matched]
        matched.sort(key=lambda item: (-item[1].score, item[1].distance))
        return matched

    def search_objects(self, term: str, objects: Iterable[Any], fields: Sequence[str]) -> list[ObjectMatch]:
        """Match ``term`` against named fields of mappings or attribute objects.

        Missing or empty fields are skipped. Results are sorted by best score.
        """
        results: list[ObjectMatch] = []
        for obj in objects:
            field_matches: list[FieldMatch] = []
            for field_name in fields:
                value = obj.get(field_name) if isinstance(obj, Mapping) else getattr(obj, field_name, None)
                if not isinstance(value, str) or not value:
                    continue
                result = self.is_match(term, value)
                if result.matched:
                    field_matches.append(FieldMatch(field=field_name, value=value, result=result))
            if field_matches:
                results.append(ObjectMatch(object=obj, matches=field_matches))
        results.sort(key=lambda match: -match.best_score)
        return results

    def generate_suggestions(self, term: str, candidate_pool: Iterable[str], max_results: int = 5) -> list[str]:
        """Rank distinct candidates by ascending distance to ``term``.

        Ties keep pool order, so a pool sorted by popularity favours popular terms.
        """
        needle = self._normalize(term)
        if not needle or max_results <= 0:
            return []

        seen: set[str] = set()
        ranked: list[tuple[int, int, str]] = []
        for position, candidate in enumerate(candidate_pool):
            normalized = self._normalize(candidate)
            if not normalized or normalized == needle or normalized in seen:
                continue
            seen.add(normalized)
            ranked.append((levenshtein_distance(needle, normalized), position, candidate.strip()))

        ranked.sort()
        return [candidate for _, _, candidate in ranked[:max_results]]


fuzzy_matcher = FuzzyMatcher()
strict_matcher = FuzzyMatcher(max_distance=1, threshold=0.8)
relaxed_matcher = FuzzyMatcher(max_distance=3, threshold=0.4)
exact_matcher = FuzzyMatcher(max_distance=0, threshold=1.0)
