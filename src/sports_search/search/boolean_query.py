"""Boolean query parsing for ``AND`` / ``OR`` / ``NOT`` term expressions.

Grammar (deliberately small):
- operators are the literal upper-case words AND, OR, NOT (whole words)
- no precedence: operators apply strictly left to right
- parentheses are ignored; "a AND (b OR c)" reads as "a AND b OR c"

Evaluation of a candidate record:
- AND: the accumulated result and the next term must both match
- OR: the accumulated result or the next term must match
- NOT: the accumulated result must hold and the next term must not match
"""

from __future__ import annotations

from collections.abc import Callable
import re

from sports_search.domain.search import BooleanOperator, BooleanQuery, FuzzyMatchResult
from sports_search.search.fuzzy import DEFAULT_MAX_DISTANCE


_OPERATOR_PATTERN = re.compile(r"\b(AND|OR|NOT)\b")
_GROUPING_CHARS = "()[]{} \t\n"


def has_boolean_operators(term: str) -> bool:
    """Return True when ``term`` contains AND, OR or NOT as a whole word."""
    return bool(term) and _OPERATOR_PATTERN.search(term) is not None


def _clean(part: str) -> str:
    return " ".join(part.strip(_GROUPING_CHARS).replace("(", " ").replace(")", " ").split())


def parse_boolean_query(term: str) -> BooleanQuery:
    """Split ``term`` on its operators, keeping their order.

    Empty operands are dropped together with the operator that pointed at
    them, so the result always satisfies ``len(operators) == len(terms) - 1``.
    A term without operators yields a single-element query.
    """
    parts = _OPERATOR_PATTERN.split(term or "")
    terms: list[str] = []
    operators: list[BooleanOperator] = []
    pending: BooleanOperator | None = None

    for index, part in enumerate(parts):
        if index % 2:
            pending = BooleanOperator(part)
            continue
        text = _clean(part)
        if not text:
            continue
        if terms:
            operators.append(pending or BooleanOperator.AND)
        terms.append(text)
        pending = None

    structure_parts: list[str] = []
    for index, text in enumerate(terms):
        if index:
            structure_parts.append(operators[index - 1].value)
        structure_parts.append(text)

    return BooleanQuery(terms=terms, operators=operators, structure=" ".join(structure_parts))


def find_dangling_operators(term: str) -> list[str]:
    """Describe operators that lack a term on either side."""
    parts = _OPERATOR_PATTERN.split(term or "")
    problems: list[str] = []
    for index in range(1, len(parts), 2):
        before = _clean(parts[index - 1])
        after = _clean(parts[index + 1]) if index + 1 < len(parts) else ""
        if not before or not after:
            problems.append(f"Boolean operator {parts[index]} must be surrounded by search terms")
    return problems


def positive_terms(query: BooleanQuery) -> list[str]:
    """Terms a record may match to be included (every term not negated by NOT)."""
    if not query.terms:
        return []
    result = [query.terms[0]]
    for operator, text in zip(query.operators, query.terms[1:]):
        if operator is not BooleanOperator.NOT:
            result.append(text)
    return result


def evaluate_boolean_query(
    query: BooleanQuery,
    match: Callable[[str], FuzzyMatchResult],
    tolerance: int = DEFAULT_MAX_DISTANCE,
) -> FuzzyMatchResult:
    """Apply ``query`` left to right using ``match`` for each term.

    The returned score is the mean score of the positive terms that matched;
    the returned distance is the smallest distance among them. A query that
    does not match reports ``tolerance + 1``.
    """
    no_match = FuzzyMatchResult(matched=False, score=0.0, distance=tolerance + 1)
    if not query.terms:
        return no_match

    first = match(query.terms[0])
    accumulated = first.matched
    contributing = [first] if first.matched else []

    for operator, text in zip(query.operators, query.terms[1:]):
        result = match(text)
        if operator is BooleanOperator.AND:
            accumulated = accumulated and result.matched
        elif operator is BooleanOperator.OR:
            accumulated = accumulated or result.matched
        else:
            accumulated = accumulated and not result.matched
            continue
        if result.matched:
            contributing.append(result)

    if not accumulated or not contributing:
        return no_match

    score = sum(r.score for r in contributing) / len(contributing)
    return FuzzyMatchResult(matched=True, score=score, distance=min(r.distance for r in contributing))
