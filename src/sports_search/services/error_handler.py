"""Normalize exceptions into ``SearchError`` values and retry retryable work."""

import asyncio
from collections.abc import Awaitable, Callable
import logging
from typing import TypeVar

from sports_search.domain.search import RETRYABLE_KINDS, ErrorKind, SearchError
from sports_search.errors import (
    CacheError,
    DocumentStoreError,
    InvalidQueryError,
    KeyValueStoreError,
    RequestCancelledError,
    SavedSearchError,
    SearchTimeoutError,
)
from sports_search.observability.metrics import SEARCH_ERRORS


logger = logging.getLogger(__name__)

T = TypeVar("T")


class SearchErrorHandler:
    """Maps failures onto the ``ErrorKind`` taxonomy and tracks retry attempts.

    Args:
        max_retries: Retries allowed per operation key for retryable kinds
        base_delay: First backoff delay in seconds; doubles on every retry
        max_delay: Backoff ceiling in seconds
    """

    def __init__(self, max_retries: int = 2, base_delay: float = 0.1, max_delay: float = 2.0):
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self._attempts: dict[str, int] = {}

    def create_search_error(self, exc: BaseException, *, component: str = "search") -> SearchError:
        if isinstance(exc, InvalidQueryError):
            kind, message, details = ErrorKind.INVALID_QUERY, str(exc), exc.errors
        elif isinstance(exc, SavedSearchError):
            kind, message, details = ErrorKind.INVALID_QUERY, str(exc), []
        elif isinstance(exc, (SearchTimeoutError, asyncio.TimeoutError, TimeoutError)):
            kind, message, details = ErrorKind.TIMEOUT, str(exc) or "Search timed out", []
        elif isinstance(exc, KeyValueStoreError):
            kind, message, details = ErrorKind.NETWORK_ERROR, f"Storage unavailable: {exc}", []
        elif isinstance(exc, (DocumentStoreError, ConnectionError, OSError)):
            kind, message, details = ErrorKind.NETWORK_ERROR, f"Document store unavailable: {exc}", []
        elif isinstance(exc, CacheError):
            kind, message, details = ErrorKind.CACHE_ERROR, str(exc), []
        elif isinstance(exc, RequestCancelledError):
            kind, message, details = ErrorKind.UNKNOWN, str(exc), []
        else:
            kind, message, details = ErrorKind.UNKNOWN, f"Unexpected error: {exc}", []
            logger.error("Unexpected %s error: %s", component, exc, exc_info=exc)

        SEARCH_ERRORS.labels(error_type=kind.value, component=component).inc()
        return SearchError(kind=kind, message=message, retryable=kind in RETRYABLE_KINDS, details=list(details))

    def backoff_delay(self, attempt: int) -> float:
        """Delay before retry number ``attempt`` (1-based)."""
        return min(self.base_delay * (2 ** (attempt - 1)), self.max_delay)

    async def execute_with_retry(self, key: str, operation: Callable[[], Awaitable[T]]) -> T:
        """Run ``operation``, retrying retryable failures with exponential backoff.

        Non-retryable failures and the last retryable failure propagate.
        """
        while True:
            try:
                result = await operation()
            except Exception as exc:
                error = self.create_search_error(exc, component="retry")
                attempt = self._attempts.get(key, 0) + 1
                if not error.retryable or attempt > self.max_retries:
                    self._attempts.pop(key, None)
                    raise
                self._attempts[key] = attempt
                delay = self.backoff_delay(attempt)
                logger.info("Retrying %s (attempt %d/%d) in %.2fs: %s", key, attempt, self.max_retries, delay, exc)
                await asyncio.sleep(delay)
            else:
                self._attempts.pop(key, None)
                return result

    def pending_retries(self) -> dict[str, int]:
        return dict(self._attempts)

    def clear_retries(self) -> None:
        self._attempts.clear()
