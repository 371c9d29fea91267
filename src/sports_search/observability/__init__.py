"""Observability module for OpenTelemetry-aligned tracing, metrics, and logging."""

from sports_search.observability.context import bind_search_context, get_search_context, search_context
from sports_search.observability.logging import JsonFormatter, configure_logging
from sports_search.observability.metrics import (
    AUTOCOMPLETE_LATENCY,
    CACHE_LOOKUPS,
    CACHE_SIZE,
    SEARCH_COUNT,
    SEARCH_ERRORS,
    SEARCH_LATENCY,
    SLOW_QUERIES,
    get_metrics,
    get_metrics_content_type,
    init_metrics,
    record_search_metrics,
    track_latency,
)
from sports_search.observability.tracing import (
    create_span,
    get_tracer,
    init_tracing,
    record_search_outcome,
    search_span_attributes,
)


__all__ = [
    "AUTOCOMPLETE_LATENCY",
    "CACHE_LOOKUPS",
    "CACHE_SIZE",
    "SEARCH_COUNT",
    "SEARCH_ERRORS",
    "SEARCH_LATENCY",
    "SLOW_QUERIES",
    "JsonFormatter",
    "bind_search_context",
    "configure_logging",
    "create_span",
    "get_metrics",
    "get_metrics_content_type",
    "get_search_context",
    "get_tracer",
    "init_metrics",
    "init_tracing",
    "record_search_metrics",
    "record_search_outcome",
    "search_context",
    "search_span_attributes",
    "track_latency",
]
