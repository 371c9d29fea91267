"""Unit tests for observability module."""

import json
import logging
import sys

from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.trace import StatusCode
from prometheus_client import REGISTRY
import pytest

from sports_search.observability import (
    CACHE_LOOKUPS,
    SEARCH_LATENCY,
    JsonFormatter,
    bind_search_context,
    configure_logging,
    create_span,
    get_metrics,
    get_metrics_content_type,
    get_search_context,
    record_search_metrics,
    record_search_outcome,
    search_span_attributes,
    track_latency,
    tracing as tracing_module,
)
from sports_search.domain.search import ErrorKind, SearchError, SearchQuery
from sports_search.observability.context import update_span_id


def _record(msg="test message", level=logging.INFO, name="sports_search.services.cache_service"):
    return logging.LogRecord(
        name=name,
        level=level,
        pathname="test.py",
        lineno=1,
        msg=msg,
        args=(),
        exc_info=None,
    )


def _sample(name, **labels):
    """Current value of one sample in the default registry; unseen label sets read as zero."""
    return REGISTRY.get_sample_value(name, labels) or 0.0


@pytest.fixture
def span_exporter(monkeypatch):
    exporter = InMemorySpanExporter()
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(exporter))
    monkeypatch.setitem(tracing_module._tracer_holder, "tracer", provider.get_tracer("test"))
    return exporter


@pytest.mark.unit
class TestJsonFormatter:
    """Tests for structured JSON logging."""

    def test_format_basic_fields(self):
        data = json.loads(JsonFormatter().format(_record()))

        assert data["message"] == "test message"
        assert data["level"] == "INFO"
        assert data["component"] == "cache_service"
        assert "timestamp" in data
        assert "search_id" not in data

    def test_format_includes_search_context(self):
        with bind_search_context(search_type="users") as ctx:
            data = json.loads(JsonFormatter().format(_record()))

        assert data["search_id"] == ctx["search_id"]
        assert data["search_type"] == "users"

    def test_format_includes_extra_fields(self):
        record = _record()
        record.cache = "results"
        record.tags = {"b", "a"}

        data = json.loads(JsonFormatter().format(record))

        assert data["cache"] == "results"
        assert data["tags"] == ["a", "b"]

    def test_redacts_sensitive_fields(self):
        record = _record()
        record.email = "john@example.com"
        record.token = "abc"

        data = json.loads(JsonFormatter().format(record))

        assert data["email"] == "[REDACTED]"
        assert data["token"] == "[REDACTED]"

    def test_search_terms_kept_by_default(self):
        record = _record()
        record.term = "John Doe"

        assert json.loads(JsonFormatter().format(record))["term"] == "John Doe"

    def test_redacts_search_terms_when_enabled(self):
        record = _record()
        record.term = "John Doe"
        record.filters = {"role": ["athlete"]}

        data = json.loads(JsonFormatter(redact_terms=True).format(record))

        assert data["term"] == "[8 chars]"
        assert data["filters"] == {"role": ["athlete"]}

    def test_truncates_long_messages(self):
        data = json.loads(JsonFormatter().format(_record(msg="x" * 3000)))

        assert len(data["message"]) == JsonFormatter.MAX_MESSAGE_LEN + 3

    def test_includes_exception(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = _record(level=logging.ERROR)
            record.exc_info = sys.exc_info()

        data = json.loads(JsonFormatter().format(record))

        assert "ValueError: boom" in data["exception"]


@pytest.mark.unit
class TestConfigureLogging:
    def test_json_output(self):
        configure_logging("debug", json_output=True, logger_levels={"noisy": "error"})

        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JsonFormatter)
        assert logging.getLogger("noisy").level == logging.ERROR

    def test_plain_output(self):
        configure_logging("warning", json_output=False)

        root = logging.getLogger()
        assert root.level == logging.WARNING
        assert not isinstance(root.handlers[0].formatter, JsonFormatter)


@pytest.mark.unit
class TestSearchContext:
    def test_empty_outside_search(self):
        assert get_search_context() == {}

    def test_bind_resets_after_block(self):
        with bind_search_context(search_type="videos"):
            update_span_id("00000000000000ab")
            inner = get_search_context()

        assert inner["span_id"] == "00000000000000ab"
        assert len(inner["search_id"]) == 32
        assert get_search_context() == {}

    def test_nested_binds_get_fresh_ids(self):
        with bind_search_context() as outer, bind_search_context() as inner:
            assert outer["search_id"] != inner["search_id"]


@pytest.mark.unit
class TestTracing:
    def test_create_span_records_attributes(self, span_exporter):
        with bind_search_context():
            with create_span("search.execute", attributes={"search.type": "users"}):
                span_id = get_search_context()["span_id"]

        (span,) = span_exporter.get_finished_spans()
        assert span.name == "search.execute"
        assert span.attributes["search.type"] == "users"
        assert span_id == format(span.context.span_id, "016x")

    def test_init_tracing_sets_service_resource(self, monkeypatch):
        monkeypatch.setitem(tracing_module._tracer_holder, "tracer", None)

        provider = tracing_module.init_tracing("sports-search-test", {"deployment.environment": "test"})

        assert provider.resource.attributes["service.name"] == "sports-search-test"
        assert provider.resource.attributes["deployment.environment"] == "test"
        assert tracing_module._tracer_holder["tracer"] is not None

    def test_search_span_attributes_omit_raw_term(self):
        query = SearchQuery(
            term="john AND athlete",
            search_type="users",
            filters={"sport": ["soccer"], "role": ["athlete"]},
            limit=10,
        )

        attributes = search_span_attributes(query)

        assert attributes == {
            "search.type": "users",
            "search.term_length": 16,
            "search.boolean": True,
            "search.filter_keys": "role,sport",
            "search.offset": 0,
            "search.limit": 10,
        }

    def test_record_search_outcome_success(self, span_exporter):
        with bind_search_context(), create_span("search.execute") as span:
            record_search_outcome(span, cached=True, total_count=3)

        (finished,) = span_exporter.get_finished_spans()
        assert finished.attributes["search.cached"] is True
        assert finished.attributes["search.total_count"] == 3
        assert finished.status.status_code != StatusCode.ERROR

    def test_record_search_outcome_error(self, span_exporter):
        error = SearchError(kind=ErrorKind.TIMEOUT, message="Search timed out", retryable=True)

        with bind_search_context(), create_span("search.execute") as span:
            record_search_outcome(span, cached=False, error=error)

        (finished,) = span_exporter.get_finished_spans()
        assert finished.attributes["search.error_kind"] == "TIMEOUT"
        assert finished.attributes["search.retryable"] is True
        assert finished.status.status_code == StatusCode.ERROR

    def test_create_span_records_errors(self, span_exporter):
        with bind_search_context(), pytest.raises(RuntimeError):
            with create_span("search.execute"):
                raise RuntimeError("store down")

        (span,) = span_exporter.get_finished_spans()
        assert span.status.status_code == StatusCode.ERROR


@pytest.mark.unit
class TestMetrics:
    def test_counters_and_histograms_are_exported(self):
        CACHE_LOOKUPS.labels(cache="results", result="hit").inc()
        with track_latency(SEARCH_LATENCY, search_type="users", cached="false"):
            pass

        output = get_metrics().decode("utf-8")

        assert "sports_search_cache_lookups_total{" in output
        assert "sports_search_latency_seconds_bucket" in output
        assert _sample("sports_search_cache_lookups_total", cache="results", result="hit") >= 1

    def test_record_search_metrics_outcomes(self):
        hits_before = _sample("sports_search_requests_total", search_type="events", outcome="cache_hit")
        cached_before = _sample("sports_search_latency_seconds_count", search_type="events", cached="true")
        errors_before = _sample("sports_search_requests_total", search_type="events", outcome="error")

        assert record_search_metrics("events", 12.0, cached=False, errored=False) == "success"
        assert record_search_metrics("events", 1.0, cached=True, errored=False) == "cache_hit"
        assert record_search_metrics("events", 30.0, cached=False, errored=True) == "error"

        assert _sample("sports_search_requests_total", search_type="events", outcome="cache_hit") == hits_before + 1
        assert _sample("sports_search_latency_seconds_count", search_type="events", cached="true") == cached_before + 1
        assert _sample("sports_search_requests_total", search_type="events", outcome="error") == errors_before + 1

    def test_content_type(self):
        assert get_metrics_content_type().startswith("text/plain")
