"""Per-user saved searches persisted in the key-value store."""

from collections.abc import Callable
from datetime import datetime, timezone
import logging
import re
import uuid

import orjson
from pydantic import TypeAdapter, ValidationError

from sports_search.adapters.kv_store import AbstractKeyValueStore
from sports_search.config import Settings
from sports_search.domain.search import SavedSearch, SearchQuery
from sports_search.errors import SavedSearchError, SavedSearchNotFoundError
from sports_search.search.validation import ensure_valid_query, sanitize_query


logger = logging.getLogger(__name__)

SAVED_SEARCHES_KEY = "savedSearches"
MAX_NAME_LENGTH = 100
_NAME_PATTERN = re.compile(r"^[\w\s\-.']+$")

_saved_list = TypeAdapter(list[SavedSearch])


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def validate_search_name(name: str) -> str:
    """Return the trimmed name or raise ``SavedSearchError``."""
    cleaned = " ".join((name or "").split())
    if not cleaned:
        raise SavedSearchError("Search name is required")
    if len(cleaned) > MAX_NAME_LENGTH:
        raise SavedSearchError(f"Search name cannot exceed {MAX_NAME_LENGTH} characters")
    if not _NAME_PATTERN.match(cleaned):
        raise SavedSearchError("Search name contains invalid characters")
    return cleaned


def _last_activity(saved: SavedSearch) -> datetime:
    moment = saved.last_used_at or saved.created_at
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


class SavedSearchService:
    """CRUD over the saved-search list stored under ``savedSearches``.

    The list is small and bounded, so every operation reads and rewrites it
    whole.
    """

    def __init__(
        self,
        kv_store: AbstractKeyValueStore,
        settings: Settings,
        *,
        now: Callable[[], datetime] = _utcnow,
    ):
        self.kv_store = kv_store
        self.settings = settings
        self._now = now

    async def _load(self) -> list[SavedSearch]:
        raw = await self.kv_store.get(SAVED_SEARCHES_KEY)
        if not raw:
            return []
        try:
            return _saved_list.validate_json(raw)
        except ValidationError as exc:
            logger.warning("Ignoring corrupted saved searches (%d validation errors)", exc.error_count())
            return []

    async def _store(self, searches: list[SavedSearch]) -> None:
        payload = orjson.dumps([saved.model_dump(mode="json") for saved in searches])
        await self.kv_store.set(SAVED_SEARCHES_KEY, payload.decode("utf-8"))

    def _prepare_query(self, query: SearchQuery) -> SearchQuery:
        prepared = sanitize_query(
            query,
            default_limit=self.settings.default_limit,
            max_limit=self.settings.max_limit,
        )
        ensure_valid_query(
            prepared,
            max_term_length=self.settings.max_term_length,
            max_limit=self.settings.max_limit,
        )
        return prepared

    def _enforce_bound(self, searches: list[SavedSearch]) -> list[SavedSearch]:
        overflow = len(searches) - self.settings.max_saved_searches
        if overflow <= 0:
            return searches
        doomed = {saved.id for saved in sorted(searches, key=_last_activity)[:overflow]}
        logger.info("Dropping %d least recently used saved search(es)", len(doomed))
        return [saved for saved in searches if saved.id not in doomed]

    async def save_search(self, name: str, query: SearchQuery) -> SavedSearch:
        """Save ``query`` under ``name``; saving an existing name updates that entry.

        Raises:
            SavedSearchError: Invalid name
            InvalidQueryError: The query is invalid even after sanitizing
        """
        cleaned_name = validate_search_name(name)
        prepared = self._prepare_query(query)
        now = self._now()
        searches = await self._load()

        for index, existing in enumerate(searches):
            if existing.name.casefold() == cleaned_name.casefold():
                updated = existing.model_copy(
                    update={
                        "name": cleaned_name,
                        "query": prepared,
                        "last_used_at": now,
                        "use_count": existing.use_count + 1,
                    }
                )
                searches[index] = updated
                await self._store(searches)
                logger.info("Updated saved search %s", updated.id)
                return updated

        saved = SavedSearch(
            id=uuid.uuid4().hex,
            name=cleaned_name,
            query=prepared,
            created_at=now,
            last_used_at=now,
            use_count=1,
        )
        searches.append(saved)
        await self._store(self._enforce_bound(searches))
        logger.info("Saved search %s (%s)", saved.id, cleaned_name)
        return saved

    async def get_saved_searches(self) -> list[SavedSearch]:
        """All saved searches, most recently used first."""
        return sorted(await self._load(), key=_last_activity, reverse=True)

    async def get_saved_search(self, search_id: str) -> SavedSearch | None:
        for saved in await self._load():
            if saved.id == search_id:
                return saved
        return None

    async def update_saved_search(
        self,
        search_id: str,
        *,
        name: str | None = None,
        query: SearchQuery | None = None,
    ) -> SavedSearch:
        searches = await self._load()
        index = next((i for i, saved in enumerate(searches) if saved.id == search_id), None)
        if index is None:
            raise SavedSearchNotFoundError(search_id)

        changes: dict = {}
        if name is not None:
            cleaned_name = validate_search_name(name)
            conflict = any(
                saved.id != search_id and saved.name.casefold() == cleaned_name.casefold() for saved in searches
            )
            if conflict:
                raise SavedSearchError(f"A saved search named {cleaned_name!r} already exists")
            changes["name"] = cleaned_name
        if query is not None:
            changes["query"] = self._prepare_query(query)

        updated = searches[index].model_copy(update=changes)
        searches[index] = updated
        await self._store(searches)
        return updated

    async def delete_saved_search(self, search_id: str) -> None:
        searches = await self._load()
        remaining = [saved for saved in searches if saved.id != search_id]
        if len(remaining) == len(searches):
            raise SavedSearchNotFoundError(search_id)
        await self._store(remaining)
        logger.info("Deleted saved search %s", search_id)

    async def mark_search_as_used(self, search_id: str) -> SavedSearch:
        searches = await self._load()
        for index, saved in enumerate(searches):
            if saved.id == search_id:
                updated = saved.model_copy(update={"use_count": saved.use_count + 1, "last_used_at": self._now()})
                searches[index] = updated
                await self._store(searches)
                return updated
        raise SavedSearchNotFoundError(search_id)

    async def get_frequently_used(self, limit: int = 5) -> list[SavedSearch]:
        searches = await self._load()
        ranked = sorted(searches, key=lambda saved: (saved.use_count, _last_activity(saved)), reverse=True)
        return ranked[:limit]

    async def clear_all(self) -> None:
        await self.kv_store.remove(SAVED_SEARCHES_KEY)

    async def export_saved_searches(self) -> str:
        searches = await self.get_saved_searches()
        return orjson.dumps(
            [saved.model_dump(mode="json") for saved in searches],
            option=orjson.OPT_INDENT_2,
        ).decode("utf-8")

    async def import_saved_searches(self, data: str, *, overwrite: bool = False) -> int:
        """Import an exported list; returns the number of searches added.

        Without ``overwrite``, entries whose id or name already exists are skipped.

        Raises:
            SavedSearchError: ``data`` is not a valid export
        """
        try:
            imported = _saved_list.validate_json(data)
        except ValidationError as exc:
            raise SavedSearchError(f"Invalid saved search data: {exc.error_count()} error(s)") from exc

        for saved in imported:
            validate_search_name(saved.name)

        if overwrite:
            merged = list(imported)
            added = len(imported)
        else:
            merged = await self._load()
            ids = {saved.id for saved in merged}
            names = {saved.name.casefold() for saved in merged}
            added = 0
            for saved in imported:
                if saved.id in ids or saved.name.casefold() in names:
                    continue
                merged.append(saved)
                ids.add(saved.id)
                names.add(saved.name.casefold())
                added += 1

        await self._store(self._enforce_bound(merged))
        logger.info("Imported %d saved search(es)", added)
        return added
