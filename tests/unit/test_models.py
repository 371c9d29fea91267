"""Unit tests for record mapping and search value objects."""

from datetime import datetime, timezone

from pydantic import ValidationError
import pytest

from sports_search.domain.model import (
    EventRecord,
    UserRecord,
    VideoRecord,
    _Record,
    coerce_timestamp,
    event_from_raw,
    record_from_raw,
    user_from_raw,
    video_from_raw,
)
from sports_search.domain.search import (
    ErrorKind,
    SearchError,
    SearchOperationResult,
    SearchQuery,
    SearchResults,
)


@pytest.mark.unit
class TestCoerceTimestamp:
    def test_epoch_seconds_and_milliseconds_agree(self):
        assert coerce_timestamp(1_700_000_000) == coerce_timestamp(1_700_000_000_000)

    def test_iso_string_with_z_suffix(self):
        assert coerce_timestamp("2024-06-01T10:00:00Z") == datetime(2024, 6, 1, 10, tzinfo=timezone.utc)

    def test_naive_datetime_becomes_utc(self):
        assert coerce_timestamp(datetime(2024, 1, 1)).tzinfo == timezone.utc

    def test_unparseable_values(self):
        assert coerce_timestamp(None) is None
        assert coerce_timestamp("") is None
        assert coerce_timestamp("yesterday") is None
        assert coerce_timestamp(True) is None

    def test_objects_with_to_datetime(self):
        class StoreTimestamp:
            def to_datetime(self):
                return datetime(2024, 3, 1, tzinfo=timezone.utc)

        assert coerce_timestamp(StoreTimestamp()) == datetime(2024, 3, 1, tzinfo=timezone.utc)


@pytest.mark.unit
class TestRecordMapping:
    def test_user_mapping_drops_unknown_fields(self):
        record = user_from_raw({"id": "u1", "displayName": "John", "secret": "x", "sports": "soccer"})

        assert isinstance(record, UserRecord)
        assert record.display_name == "John"
        assert record.sports == ["soccer"]
        assert record.is_active is True
        assert not hasattr(record, "secret")

    def test_missing_id_is_rejected(self):
        assert user_from_raw({"displayName": "Nobody"}) is None
        assert video_from_raw({"id": ""}) is None

    def test_numeric_id_becomes_string(self):
        assert event_from_raw({"id": 7}).id == "7"

    def test_video_defaults(self):
        record = video_from_raw({"id": "v1", "title": "Clip"})

        assert record.verification_status == "pending"
        assert record.display_fields() == ["Clip"]

    def test_event_dates(self):
        record = event_from_raw({"id": "e1", "startDate": "2024-06-01T10:00:00Z", "createdAt": 1_700_000_000})

        assert record.start_date.year == 2024
        assert record.sort_timestamp == 1_700_000_000

    def test_record_from_raw_dispatches_by_collection(self):
        assert isinstance(record_from_raw("videos", {"id": "v1"}), VideoRecord)
        assert isinstance(record_from_raw("events", {"id": "e1"}), EventRecord)

    def test_unknown_collection(self):
        with pytest.raises(ValueError):
            record_from_raw("teams", {"id": "t1"})

    def test_records_are_frozen(self):
        record = UserRecord(id="u1", display_name="John")

        with pytest.raises(ValidationError):
            record.display_name = "Jane"

    def test_primary_text(self):
        assert UserRecord(id="u1", email="a@b.c").primary_text == "a@b.c"
        assert UserRecord(id="u1").primary_text == ""

    def test_base_record_cannot_be_instantiated(self):
        with pytest.raises(TypeError):
            _Record(id="x")

    def test_result_key_includes_kind(self):
        assert UserRecord(id="1").result_key == "user:1"
        assert VideoRecord(id="1").result_key == "video:1"
        assert EventRecord(id="1").result_key == "event:1"


@pytest.mark.unit
class TestSearchValueObjects:
    def test_result_items_are_discriminated_by_kind(self):
        results = SearchResults(items=[{"kind": "video", "id": "v1"}, {"kind": "user", "id": "u1"}])

        assert isinstance(results.items[0], VideoRecord)
        assert isinstance(results.items[1], UserRecord)

    def test_query_defaults(self):
        query = SearchQuery()

        assert query.search_type == "all"
        assert query.limit is None
        assert query.filters == {}

    def test_operation_result_envelope(self):
        failure = SearchOperationResult[SearchResults](
            success=False,
            error=SearchError(kind=ErrorKind.TIMEOUT, message="Search timed out", retryable=True),
        )

        assert failure.data is None
        assert failure.error.kind == ErrorKind.TIMEOUT
        assert failure.cached is False
