"""Unit tests for translating search queries into store queries."""

import pytest

from sports_search.domain.search import SearchQuery
from sports_search.search.boolean_query import parse_boolean_query
from sports_search.search.query_builder import (
    DEFAULT_ORDER_BY,
    Predicate,
    QueryBuilder,
    flatten_predicates,
)


@pytest.fixture
def builder():
    return QueryBuilder(scan_window=50, default_limit=20)


@pytest.mark.unit
class TestCollectionsFor:
    def test_all_targets_every_collection(self, builder):
        assert builder.collections_for(SearchQuery(term="john")) == ["users", "videos", "events"]

    def test_single_type(self, builder):
        assert builder.collections_for(SearchQuery(term="john", search_type="videos")) == ["videos"]

    def test_filters_exclude_collections_without_the_field(self, builder):
        assert builder.collections_for(SearchQuery(filters={"role": ["athlete"]})) == ["users"]
        assert builder.collections_for(SearchQuery(filters={"category": ["training"]})) == ["videos", "events"]

    def test_filter_not_applicable_to_requested_type(self, builder):
        assert builder.collections_for(SearchQuery(search_type="videos", filters={"role": ["athlete"]})) == []

    def test_unknown_type_raises(self, builder):
        with pytest.raises(ValueError):
            builder.collections_for(SearchQuery(term="john", search_type="teams"))


@pytest.mark.unit
class TestBuildQueries:
    def test_plain_query_has_window_and_order(self, builder):
        (store_query,) = builder.build_queries(SearchQuery(term="john", search_type="users"))

        assert store_query.collection == "users"
        assert store_query.predicates == ()
        assert store_query.order_by == DEFAULT_ORDER_BY
        assert store_query.limit == 50

    def test_filters_become_predicates(self, builder):
        query = SearchQuery(search_type="users", filters={"status": ["active"], "role": ["athlete", "coach"]})

        (store_query,) = builder.build_queries(query)

        assert flatten_predicates(store_query) == [
            ("role", "in", ("athlete", "coach")),
            ("isActive", "==", True),
        ]

    def test_both_statuses_push_down_nothing(self, builder):
        query = SearchQuery(search_type="users", filters={"status": ["active", "inactive"]})

        (store_query,) = builder.build_queries(query)

        assert store_query.predicates == ()

    def test_sport_filter_uses_array_predicate_for_users(self, builder):
        (users, events) = builder.build_queries(SearchQuery(filters={"sport": ["soccer"]}))

        assert users.predicates == (Predicate("sports", "array-contains-any", ("soccer",)),)
        assert events.predicates == (Predicate("sport", "in", ("soccer",)),)

    def test_boolean_queries_collapse_identical_store_queries(self, builder):
        query = SearchQuery(term="john AND athlete", search_type="users")

        store_queries = builder.build_boolean_queries(query, parse_boolean_query(query.term))

        assert len(store_queries) == 1
        assert store_queries[0].collection == "users"


@pytest.mark.unit
class TestQueryCost:
    def test_simple_query(self, builder):
        assert builder.get_query_cost(SearchQuery(term="john", search_type="users", limit=20)) == pytest.approx(4.0)

    def test_cost_grows_with_operators_filters_and_breadth(self, builder):
        query = SearchQuery(term="a AND b", filters={"location": ["Chicago"]}, limit=20)

        assert builder.get_query_cost(query) == pytest.approx(12.5)

    def test_default_limit_used_when_missing(self, builder):
        assert builder.get_query_cost(SearchQuery(filters={"role": ["athlete"]}, search_type="users")) == pytest.approx(
            3.5
        )
