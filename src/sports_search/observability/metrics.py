"""Prometheus metrics for search golden signals, mirrored to OpenTelemetry."""

from __future__ import annotations

from contextlib import contextmanager
import time
from typing import TYPE_CHECKING, Any

from opentelemetry import metrics as otel_metrics
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import MetricReader
from opentelemetry.sdk.resources import Resource
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, generate_latest


if TYPE_CHECKING:
    from collections.abc import Generator


_meter_holder: dict[str, Any] = {"meter": None, "provider": None}


def init_metrics(
    service_name: str = "sports-search",
    resource_attributes: dict[str, str] | None = None,
    metric_readers: list[MetricReader] | None = None,
) -> MeterProvider:
    """Initialize OpenTelemetry metrics."""
    provider = _meter_holder.get("provider")
    if isinstance(provider, MeterProvider):
        return provider

    attributes = {"service.name": service_name}
    if resource_attributes:
        attributes.update(resource_attributes)
    resource = Resource.create(attributes)
    provider = MeterProvider(resource=resource, metric_readers=metric_readers or [])
    otel_metrics.set_meter_provider(provider)
    _meter_holder["provider"] = provider
    _meter_holder["meter"] = otel_metrics.get_meter(__name__)
    return provider


def _get_meter():
    meter = _meter_holder.get("meter")
    if meter is None:
        init_metrics()
        meter = _meter_holder.get("meter")
    return meter


def _label_key(labels: dict[str, str]) -> tuple[tuple[str, str], ...]:
    return tuple(sorted(labels.items()))


class _BoundMetric:
    def __init__(self, wrapper: MetricBridge, labels: dict[str, str]) -> None:
        self._wrapper = wrapper
        self._labels = labels

    def inc(self, amount: float = 1.0) -> None:
        self._wrapper.inc(self._labels, amount)

    def observe(self, value: float) -> None:
        self._wrapper.observe(self._labels, value)

    def set(self, value: float) -> None:
        self._wrapper.set(self._labels, value)


class MetricBridge:
    """Bridge Prometheus metrics to OTel instruments."""

    def __init__(
        self,
        prom_metric: Counter | Histogram | Gauge,
        *,
        otel_name: str,
        otel_description: str,
        otel_kind: str,
    ) -> None:
        self._prom_metric = prom_metric
        self._otel_name = otel_name
        self._otel_description = otel_description
        self._otel_kind = otel_kind
        self._otel_instrument = None
        self._last_values: dict[tuple[tuple[str, str], ...], float] = {}

    def labels(self, **labels: str) -> _BoundMetric:
        return _BoundMetric(self, labels)

    def _ensure_otel_instrument(self):
        if self._otel_instrument is not None:
            return self._otel_instrument
        meter = _get_meter()
        if self._otel_kind == "counter":
            self._otel_instrument = meter.create_counter(self._otel_name, description=self._otel_description)
        elif self._otel_kind == "histogram":
            self._otel_instrument = meter.create_histogram(self._otel_name, description=self._otel_description)
        elif self._otel_kind == "gauge":
            self._otel_instrument = meter.create_up_down_counter(self._otel_name, description=self._otel_description)
        else:
            raise ValueError(f"Unknown metric kind: {self._otel_kind}")
        return self._otel_instrument

    def inc(self, labels: dict[str, str], amount: float) -> None:
        self._prom_metric.labels(**labels).inc(amount)
        otel = self._ensure_otel_instrument()
        otel.add(amount, labels)

    def observe(self, labels: dict[str, str], value: float) -> None:
        self._prom_metric.labels(**labels).observe(value)
        otel = self._ensure_otel_instrument()
        otel.record(value, labels)

    def set(self, labels: dict[str, str], value: float) -> None:
        self._prom_metric.labels(**labels).set(value)
        otel = self._ensure_otel_instrument()
        key = _label_key(labels)
        last = self._last_values.get(key, 0.0)
        delta = value - last
        if delta:
            otel.add(delta, labels)
        self._last_values[key] = value


_SEARCH_LATENCY_PROM = Histogram(
    "sports_search_latency_seconds",
    "Search latency in seconds",
    ["search_type", "cached"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 3.0, 10.0),
)

_AUTOCOMPLETE_LATENCY_PROM = Histogram(
    "sports_search_autocomplete_latency_seconds",
    "Autocomplete latency in seconds",
    ["search_type"],
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.2, 0.5),
)

_SEARCH_COUNT_PROM = Counter(
    "sports_search_requests_total",
    "Total search requests",
    ["search_type", "outcome"],
)

_SEARCH_ERRORS_PROM = Counter(
    "sports_search_errors_total",
    "Total search errors",
    ["error_type", "component"],
)

_CACHE_LOOKUPS_PROM = Counter(
    "sports_search_cache_lookups_total",
    "Cache lookups by result (hit, miss, eviction)",
    ["cache", "result"],
)

_CACHE_SIZE_PROM = Gauge(
    "sports_search_cache_entries",
    "Entries held in each cache",
    ["cache"],
)

_SLOW_QUERIES_PROM = Counter(
    "sports_search_slow_queries_total",
    "Searches above the slow-query threshold",
    ["severity"],
)

SEARCH_LATENCY = MetricBridge(
    _SEARCH_LATENCY_PROM,
    otel_name="sports_search_latency_seconds",
    otel_description="Search latency in seconds",
    otel_kind="histogram",
)

AUTOCOMPLETE_LATENCY = MetricBridge(
    _AUTOCOMPLETE_LATENCY_PROM,
    otel_name="sports_search_autocomplete_latency_seconds",
    otel_description="Autocomplete latency in seconds",
    otel_kind="histogram",
)

SEARCH_COUNT = MetricBridge(
    _SEARCH_COUNT_PROM,
    otel_name="sports_search_requests_total",
    otel_description="Total search requests",
    otel_kind="counter",
)

SEARCH_ERRORS = MetricBridge(
    _SEARCH_ERRORS_PROM,
    otel_name="sports_search_errors_total",
    otel_description="Total search errors",
    otel_kind="counter",
)

CACHE_LOOKUPS = MetricBridge(
    _CACHE_LOOKUPS_PROM,
    otel_name="sports_search_cache_lookups_total",
    otel_description="Cache lookups by result (hit, miss, eviction)",
    otel_kind="counter",
)

CACHE_SIZE = MetricBridge(
    _CACHE_SIZE_PROM,
    otel_name="sports_search_cache_entries",
    otel_description="Entries held in each cache",
    otel_kind="gauge",
)

SLOW_QUERIES = MetricBridge(
    _SLOW_QUERIES_PROM,
    otel_name="sports_search_slow_queries_total",
    otel_description="Searches above the slow-query threshold",
    otel_kind="counter",
)


@contextmanager
def track_latency(histogram: MetricBridge, **labels: str) -> Generator[None, None, None]:
    """Context manager to track operation latency."""
    start = time.perf_counter()
    try:
        yield
    finally:
        histogram.labels(**labels).observe(time.perf_counter() - start)


def record_search_metrics(search_type: str, response_time_ms: float, *, cached: bool, errored: bool) -> str:
    """Count one completed search and observe its latency; returns the outcome label."""
    outcome = "error" if errored else ("cache_hit" if cached else "success")
    SEARCH_LATENCY.labels(search_type=search_type, cached=str(cached).lower()).observe(response_time_ms / 1000)
    SEARCH_COUNT.labels(search_type=search_type, outcome=outcome).inc()
    return outcome


def get_metrics() -> bytes:
    """Generate Prometheus metrics output."""
    return generate_latest()


def get_metrics_content_type() -> str:
    """Get content type for metrics endpoint."""
    return CONTENT_TYPE_LATEST
