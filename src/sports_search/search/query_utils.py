"""Helpers for comparing and describing queries."""

from __future__ import annotations

from typing import Any

import orjson

from sports_search.domain.search import SearchQuery


def canonical_query_payload(query: SearchQuery) -> dict[str, Any]:
    """Every field that affects the result set, in a stable shape.

    Filter keys and values are sorted: values within a key are OR'd, so
    their order cannot change the result set.
    """
    search_type = getattr(query.search_type, "value", query.search_type)
    return {
        "term": " ".join(query.term.split()).lower(),
        "type": str(search_type),
        "filters": {key: sorted(values) for key, values in sorted(query.filters.items()) if values},
        "offset": query.offset,
        "limit": query.limit,
    }


def query_fingerprint(query: SearchQuery) -> str:
    """Canonical serialization of ``query``; identical queries share a fingerprint."""
    return orjson.dumps(canonical_query_payload(query), option=orjson.OPT_SORT_KEYS).decode("utf-8")


def are_queries_equivalent(left: SearchQuery, right: SearchQuery) -> bool:
    return query_fingerprint(left) == query_fingerprint(right)


def active_filter_count(query: SearchQuery) -> int:
    return sum(1 for values in query.filters.values() if values)


def describe_query(query: SearchQuery) -> str:
    """Human-readable one-liner, e.g. ``"john" in users (role: athlete, coach)``."""
    parts: list[str] = []
    term = query.term.strip()
    if term:
        parts.append(f'"{term}"')

    search_type = str(getattr(query.search_type, "value", query.search_type))
    if search_type and search_type != "all":
        parts.append(f"in {search_type}")

    filter_bits = [f"{key}: {', '.join(values)}" for key, values in sorted(query.filters.items()) if values]
    if filter_bits:
        parts.append(f"({'; '.join(filter_bits)})")

    if not term and not filter_bits:
        return "Empty search"
    return " ".join(parts)
