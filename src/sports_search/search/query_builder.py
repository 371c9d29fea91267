"""Translate search queries into document store queries.

The store is never assumed to have an index on display fields, so only
structured filters are pushed down as predicates. Term matching happens
client-side over the window the store returns.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
import logging
from typing import Any

from sports_search.domain.search import BooleanQuery, SearchQuery, SearchType
from sports_search.search.boolean_query import has_boolean_operators, parse_boolean_query, positive_terms


logger = logging.getLogger(__name__)

COLLECTIONS_BY_TYPE: dict[str, tuple[str, ...]] = {
    SearchType.USERS.value: ("users",),
    SearchType.VIDEOS.value: ("videos",),
    SearchType.EVENTS.value: ("events",),
    SearchType.ALL.value: ("users", "videos", "events"),
}

DEFAULT_ORDER_BY = ("createdAt", "desc")


@dataclass(frozen=True)
class Predicate:
    field: str
    op: str
    value: Any

    def as_tuple(self) -> tuple[str, str, Any]:
        return (self.field, self.op, self.value)


@dataclass(frozen=True)
class StoreQuery:
    collection: str
    predicates: tuple[Predicate, ...] = ()
    order_by: tuple[str, str] | None = DEFAULT_ORDER_BY
    limit: int | None = None


def _in(field: str) -> Callable[[list[str]], list[Predicate]]:
    def build(values: list[str]) -> list[Predicate]:
        return [Predicate(field, "in", tuple(values))]

    return build


def _user_status(values: list[str]) -> list[Predicate]:
    wanted = set(values)
    if wanted == {"active"}:
        return [Predicate("isActive", "==", True)]
    if wanted == {"inactive"}:
        return [Predicate("isActive", "==", False)]
    return []


def _array_contains_any(field: str) -> Callable[[list[str]], list[Predicate]]:
    def build(values: list[str]) -> list[Predicate]:
        return [Predicate(field, "array-contains-any", tuple(values))]

    return build


# Filter key -> predicate builder, per collection. A missing key means the
# filter cannot be satisfied by that collection.
FILTER_PREDICATES: dict[str, dict[str, Callable[[list[str]], list[Predicate]]]] = {
    "users": {
        "role": _in("role"),
        "status": _user_status,
        "location": _in("location"),
        "sport": _array_contains_any("sports"),
    },
    "videos": {
        "verificationStatus": _in("verificationStatus"),
        "category": _in("category"),
    },
    "events": {
        "eventStatus": _in("status"),
        "category": _in("category"),
        "location": _in("location"),
        "sport": _in("sport"),
    },
}


class QueryBuilder:
    """Build store queries for a validated, normalized ``SearchQuery``."""

    def __init__(self, scan_window: int = 500, default_limit: int = 20):
        self.scan_window = scan_window
        self.default_limit = default_limit

    def collections_for(self, query: SearchQuery) -> list[str]:
        """Collections that can satisfy every filter of ``query``."""
        search_type = str(getattr(query.search_type, "value", query.search_type))
        try:
            candidates = COLLECTIONS_BY_TYPE[search_type]
        except KeyError:
            raise ValueError(f"Unsupported search type: {search_type}") from None

        active = [key for key, values in query.filters.items() if values]
        collections = [name for name in candidates if all(key in FILTER_PREDICATES[name] for key in active)]
        if len(collections) < len(candidates):
            logger.debug("Filters %s exclude collections %s", active, sorted(set(candidates) - set(collections)))
        return collections

    def build_queries(self, query: SearchQuery) -> list[StoreQuery]:
        """One store query per collection the query targets."""
        store_queries: list[StoreQuery] = []
        for collection in self.collections_for(query):
            predicates: list[Predicate] = []
            builders = FILTER_PREDICATES[collection]
            for key in sorted(query.filters):
                values = query.filters[key]
                if values:
                    predicates.extend(builders[key](values))
            store_queries.append(
                StoreQuery(
                    collection=collection,
                    predicates=tuple(predicates),
                    order_by=DEFAULT_ORDER_BY,
                    limit=self.scan_window,
                )
            )
        return store_queries

    def build_boolean_queries(self, query: SearchQuery, boolean_query: BooleanQuery) -> list[StoreQuery]:
        """One store query per positive term, with identical queries collapsed."""
        store_queries: list[StoreQuery] = []
        for term in positive_terms(boolean_query) or [query.term]:
            for store_query in self.build_queries(query.model_copy(update={"term": term})):
                if store_query not in store_queries:
                    store_queries.append(store_query)
        return store_queries

    def get_query_cost(self, query: SearchQuery) -> float:
        """Relative cost estimate; grows with text, filters, operators, breadth and page size."""
        cost = 1.0
        term = query.term.strip()
        if term:
            cost += 2.0
            if has_boolean_operators(term):
                cost += 3.0 * len(parse_boolean_query(term).operators)
        cost += 1.5 * sum(1 for values in query.filters.values() if values)
        search_type = str(getattr(query.search_type, "value", query.search_type))
        cost += 2.0 * (len(COLLECTIONS_BY_TYPE.get(search_type, ("",))) - 1)
        cost += (query.limit or self.default_limit) / 20
        return cost


def flatten_predicates(store_query: StoreQuery) -> Sequence[tuple[str, str, Any]]:
    return [predicate.as_tuple() for predicate in store_query.predicates]
