"""Unit tests for saved searches."""

from datetime import datetime, timedelta, timezone

import orjson
import pytest

from sports_search.adapters.kv_store import InMemoryKeyValueStore
from sports_search.domain.search import SearchQuery
from sports_search.errors import InvalidQueryError, SavedSearchError, SavedSearchNotFoundError
from sports_search.services.saved_search_service import (
    SAVED_SEARCHES_KEY,
    SavedSearchService,
    validate_search_name,
)


class SteppingClock:
    """Returns a strictly increasing time on every call."""

    def __init__(self):
        self.current = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.current += timedelta(minutes=1)
        return self.current


@pytest.fixture
def service(kv_store, settings):
    return SavedSearchService(kv_store, settings, now=SteppingClock())


@pytest.mark.unit
class TestValidateSearchName:
    def test_trims_and_collapses(self):
        assert validate_search_name("  Chicago   athletes ") == "Chicago athletes"

    @pytest.mark.parametrize(
        ("name", "message"),
        [
            ("", "Search name is required"),
            ("   ", "Search name is required"),
            ("x" * 101, "Search name cannot exceed 100 characters"),
            ("<script>", "Search name contains invalid characters"),
        ],
    )
    def test_rejects_bad_names(self, name, message):
        with pytest.raises(SavedSearchError, match=message):
            validate_search_name(name)

    def test_accepts_punctuation_used_in_names(self):
        assert validate_search_name("O'Brien's U-12 team.") == "O'Brien's U-12 team."


@pytest.mark.unit
class TestSaveSearch:
    @pytest.mark.asyncio
    async def test_save_creates_entry(self, service, kv_store):
        saved = await service.save_search("Chicago athletes", SearchQuery(term="athlete", limit=500))

        assert saved.use_count == 1
        assert saved.query.limit == 100
        assert saved.last_used_at == saved.created_at
        stored = orjson.loads(kv_store.data[SAVED_SEARCHES_KEY])
        assert [item["name"] for item in stored] == ["Chicago athletes"]

    @pytest.mark.asyncio
    async def test_same_name_updates_existing_entry(self, service):
        first = await service.save_search("Coaches", SearchQuery(term="coach"))
        second = await service.save_search("coaches", SearchQuery(term="coach", search_type="users"))

        assert second.id == first.id
        assert second.use_count == 2
        assert second.query.search_type == "users"
        assert len(await service.get_saved_searches()) == 1

    @pytest.mark.asyncio
    async def test_invalid_query_is_rejected(self, service):
        with pytest.raises(InvalidQueryError):
            await service.save_search("Nothing", SearchQuery(term=" "))

    @pytest.mark.asyncio
    async def test_oldest_entries_dropped_past_bound(self, kv_store, settings):
        service = SavedSearchService(kv_store, settings.with_changes(max_saved_searches=2), now=SteppingClock())
        await service.save_search("one", SearchQuery(term="one"))
        await service.save_search("two", SearchQuery(term="two"))
        await service.save_search("three", SearchQuery(term="three"))

        names = [saved.name for saved in await service.get_saved_searches()]

        assert names == ["three", "two"]


@pytest.mark.unit
class TestReadAndUpdate:
    @pytest.mark.asyncio
    async def test_most_recently_used_first(self, service):
        first = await service.save_search("first", SearchQuery(term="a"))
        await service.save_search("second", SearchQuery(term="b"))
        await service.mark_search_as_used(first.id)

        assert [saved.name for saved in await service.get_saved_searches()] == ["first", "second"]

    @pytest.mark.asyncio
    async def test_get_saved_search(self, service):
        saved = await service.save_search("first", SearchQuery(term="a"))

        assert (await service.get_saved_search(saved.id)).name == "first"
        assert await service.get_saved_search("missing") is None

    @pytest.mark.asyncio
    async def test_mark_used_increments_count(self, service):
        saved = await service.save_search("first", SearchQuery(term="a"))

        updated = await service.mark_search_as_used(saved.id)

        assert updated.use_count == 2
        assert updated.last_used_at > saved.last_used_at

    @pytest.mark.asyncio
    async def test_mark_unknown_search(self, service):
        with pytest.raises(SavedSearchNotFoundError):
            await service.mark_search_as_used("missing")

    @pytest.mark.asyncio
    async def test_update_name_and_query(self, service):
        saved = await service.save_search("first", SearchQuery(term="a"))

        updated = await service.update_saved_search(saved.id, name="renamed", query=SearchQuery(term="b"))

        assert updated.name == "renamed"
        assert updated.query.term == "b"

    @pytest.mark.asyncio
    async def test_update_rejects_name_conflict(self, service):
        await service.save_search("first", SearchQuery(term="a"))
        second = await service.save_search("second", SearchQuery(term="b"))

        with pytest.raises(SavedSearchError, match="already exists"):
            await service.update_saved_search(second.id, name="FIRST")

    @pytest.mark.asyncio
    async def test_update_unknown_search(self, service):
        with pytest.raises(SavedSearchNotFoundError):
            await service.update_saved_search("missing", name="x")

    @pytest.mark.asyncio
    async def test_delete(self, service):
        saved = await service.save_search("first", SearchQuery(term="a"))

        await service.delete_saved_search(saved.id)

        assert await service.get_saved_searches() == []
        with pytest.raises(SavedSearchNotFoundError):
            await service.delete_saved_search(saved.id)

    @pytest.mark.asyncio
    async def test_frequently_used(self, service):
        rare = await service.save_search("rare", SearchQuery(term="a"))
        common = await service.save_search("common", SearchQuery(term="b"))
        await service.mark_search_as_used(common.id)
        await service.mark_search_as_used(common.id)

        frequent = await service.get_frequently_used(limit=1)

        assert [saved.id for saved in frequent] == [common.id]
        assert rare.id not in {saved.id for saved in frequent}

    @pytest.mark.asyncio
    async def test_clear_all(self, service, kv_store):
        await service.save_search("first", SearchQuery(term="a"))

        await service.clear_all()

        assert SAVED_SEARCHES_KEY not in kv_store.data

    @pytest.mark.asyncio
    async def test_corrupted_storage_reads_as_empty(self, settings):
        service = SavedSearchService(InMemoryKeyValueStore({SAVED_SEARCHES_KEY: "not json"}), settings)

        assert await service.get_saved_searches() == []


@pytest.mark.unit
class TestExportImport:
    @pytest.mark.asyncio
    async def test_round_trip_into_empty_store(self, service, settings):
        await service.save_search("first", SearchQuery(term="a"))
        await service.save_search("second", SearchQuery(term="b"))
        exported = await service.export_saved_searches()

        target = SavedSearchService(InMemoryKeyValueStore(), settings)

        assert await target.import_saved_searches(exported) == 2
        assert {saved.name for saved in await target.get_saved_searches()} == {"first", "second"}

    @pytest.mark.asyncio
    async def test_import_skips_existing(self, service):
        await service.save_search("first", SearchQuery(term="a"))
        exported = await service.export_saved_searches()

        assert await service.import_saved_searches(exported) == 0
        assert len(await service.get_saved_searches()) == 1

    @pytest.mark.asyncio
    async def test_import_overwrite_replaces(self, service, settings):
        other = SavedSearchService(InMemoryKeyValueStore(), settings)
        await other.save_search("imported", SearchQuery(term="x"))
        await service.save_search("local", SearchQuery(term="a"))

        added = await service.import_saved_searches(await other.export_saved_searches(), overwrite=True)

        assert added == 1
        assert [saved.name for saved in await service.get_saved_searches()] == ["imported"]

    @pytest.mark.asyncio
    async def test_invalid_import(self, service):
        with pytest.raises(SavedSearchError, match="Invalid saved search data"):
            await service.import_saved_searches('[{"name": "missing fields"}]')
