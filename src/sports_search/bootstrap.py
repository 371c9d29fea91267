"""Composition root: wire a ``SearchService`` from settings and collaborators."""

import logging

from sports_search.adapters.document_store import AbstractDocumentStore, InMemoryDocumentStore
from sports_search.adapters.kv_store import AbstractKeyValueStore, InMemoryKeyValueStore
from sports_search.config import Settings
from sports_search.observability.logging import configure_logging
from sports_search.search.query_builder import QueryBuilder
from sports_search.service_layer.search_service import SearchService
from sports_search.services.analytics_service import SearchAnalyticsService
from sports_search.services.cache_service import SearchCaches
from sports_search.services.debounce import RequestCoalescer
from sports_search.services.error_handler import SearchErrorHandler
from sports_search.services.performance_monitor import PerformanceMonitor
from sports_search.services.saved_search_service import SavedSearchService


logger = logging.getLogger(__name__)


def build_search_service(
    settings: Settings | None = None,
    document_store: AbstractDocumentStore | None = None,
    kv_store: AbstractKeyValueStore | None = None,
    *,
    setup_logging: bool = False,
) -> SearchService:
    """Construct a fully wired ``SearchService``.

    Every stateful collaborator (three caches, monitor, coalescer) is created
    here and owned by the returned service. Missing stores default to the
    in-memory implementations.
    """
    settings = settings or Settings()
    if setup_logging:
        configure_logging(settings.log_level, settings.log_json, redact_terms=settings.log_redact_terms)

    document_store = document_store or InMemoryDocumentStore()
    kv_store = kv_store or InMemoryKeyValueStore()

    query_builder = QueryBuilder(scan_window=settings.scan_window, default_limit=settings.default_limit)
    service = SearchService(
        document_store,
        kv_store,
        settings=settings,
        caches=SearchCaches.from_settings(settings),
        monitor=PerformanceMonitor(settings.performance_history_size, cost_estimator=query_builder.get_query_cost),
        coalescer=RequestCoalescer(
            delay=settings.debounce_delay_ms / 1000,
            max_wait=settings.debounce_max_wait_ms / 1000,
        ),
        error_handler=SearchErrorHandler(max_retries=settings.prefetch_max_retries),
        saved_searches=SavedSearchService(kv_store, settings),
        analytics=SearchAnalyticsService(),
    )
    logger.debug(
        "Search service built (caching=%s, fuzzy=%s, analytics=%s)",
        settings.enable_caching,
        settings.enable_fuzzy_matching,
        settings.enable_analytics,
    )
    return service
