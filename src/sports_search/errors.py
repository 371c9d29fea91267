"""Exception hierarchy for the search core.

Adapters raise these; the orchestrator catches them at its boundary and
normalizes them into ``SearchError`` values, so callers of ``SearchService``
never see them for search failures.
"""


class SportsSearchError(Exception):
    """Base class for every error raised by this package."""


class InvalidQueryError(SportsSearchError):
    """A query failed validation. Carries every violation, not just the first."""

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__(f"Invalid query: {'; '.join(self.errors)}")


class DocumentStoreError(SportsSearchError):
    """The document store could not answer a query (I/O, connectivity)."""

    def __init__(self, message: str, *, collection: str | None = None):
        self.collection = collection
        super().__init__(message)


class SearchTimeoutError(SportsSearchError):
    """The store fan-out did not finish before the configured deadline."""

    def __init__(self, timeout_seconds: float):
        self.timeout_seconds = timeout_seconds
        super().__init__(f"Search timed out after {timeout_seconds * 1000:.0f}ms")


class CacheError(SportsSearchError):
    """A cache operation failed. Never aborts a search."""


class KeyValueStoreError(SportsSearchError):
    """The persistent key-value store could not be read or written."""


class SavedSearchError(SportsSearchError):
    """A saved-search operation was rejected."""


class SavedSearchNotFoundError(SavedSearchError):
    def __init__(self, search_id: str):
        self.search_id = search_id
        super().__init__(f"Saved search not found: {search_id}")


class RequestCancelledError(SportsSearchError):
    """A debounced request was discarded before it executed."""
