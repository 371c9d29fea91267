"""OpenTelemetry tracing for search operations."""

from __future__ import annotations

from contextlib import contextmanager
import logging
from typing import TYPE_CHECKING, Any

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.trace import SpanKind, Status, StatusCode

from sports_search.observability.context import update_span_id
from sports_search.search.boolean_query import has_boolean_operators


if TYPE_CHECKING:
    from collections.abc import Generator

    from opentelemetry.trace import Span, Tracer

    from sports_search.domain.search import SearchError, SearchQuery

logger = logging.getLogger(__name__)

# Module-level tracer storage
_tracer_holder: dict[str, Tracer | None] = {"tracer": None}


def init_tracing(
    service_name: str = "sports-search",
    resource_attributes: dict[str, str] | None = None,
) -> TracerProvider:
    """Initialize OpenTelemetry tracing."""
    attributes = {"service.name": service_name}
    if resource_attributes:
        attributes.update(resource_attributes)
    resource = Resource.create(attributes)
    provider = TracerProvider(resource=resource)
    trace.set_tracer_provider(provider)
    _tracer_holder["tracer"] = trace.get_tracer(__name__)
    logger.info("Tracing initialized for service: %s", service_name)
    return provider


def get_tracer() -> Tracer:
    """Get the configured tracer, falling back to the global provider."""
    if _tracer_holder["tracer"] is None:
        _tracer_holder["tracer"] = trace.get_tracer(__name__)
    return _tracer_holder["tracer"]  # type: ignore[return-value]


@contextmanager
def create_span(
    name: str,
    kind: SpanKind = SpanKind.INTERNAL,
    attributes: dict[str, Any] | None = None,
) -> Generator[Span, None, None]:
    """Create a traced span with context propagation."""
    tracer = get_tracer()
    with tracer.start_as_current_span(name, kind=kind) as span:
        if attributes:
            for key, value in attributes.items():
                span.set_attribute(key, value)

        ctx = span.get_span_context()
        if ctx.span_id:
            update_span_id(format(ctx.span_id, "016x"))

        try:
            yield span
        except Exception as exc:
            span.set_status(Status(StatusCode.ERROR, str(exc)))
            span.record_exception(exc)
            raise


def search_span_attributes(query: SearchQuery) -> dict[str, Any]:
    """Span attributes describing ``query``.

    The raw term is left out because it may contain personal names; only its
    length and whether it uses boolean operators are recorded.
    """
    return {
        "search.type": str(query.search_type),
        "search.term_length": len(query.term),
        "search.boolean": has_boolean_operators(query.term),
        "search.filter_keys": ",".join(sorted(query.filters)),
        "search.offset": query.offset,
        "search.limit": query.limit or 0,
    }


def record_search_outcome(
    span: Span,
    *,
    cached: bool,
    total_count: int | None = None,
    error: SearchError | None = None,
) -> None:
    """Annotate ``span`` with the outcome of a search that returned instead of raising."""
    span.set_attribute("search.cached", cached)
    if total_count is not None:
        span.set_attribute("search.total_count", total_count)
    if error is not None:
        span.set_attribute("search.error_kind", error.kind.value)
        span.set_attribute("search.retryable", error.retryable)
        span.set_status(Status(StatusCode.ERROR, error.message))
