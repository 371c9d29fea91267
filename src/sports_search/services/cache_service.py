"""In-memory TTL caches for search results, autocomplete and analytics.

Entries expire lazily: ``get`` treats an entry older than its TTL as absent
and drops it. ``purge_expired`` sweeps the whole map when a caller wants to
reclaim memory eagerly. Each cache is bounded and evicts the least recently
used entry once ``max_entries`` is reached.
"""

from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
import logging
import re
import threading
import time
from typing import Any, Generic, TypeVar

from sports_search.config import Settings
from sports_search.domain.search import SearchQuery
from sports_search.observability.metrics import CACHE_LOOKUPS, CACHE_SIZE
from sports_search.search.query_utils import query_fingerprint


logger = logging.getLogger(__name__)

V = TypeVar("V")


@dataclass(frozen=True)
class CacheEntry(Generic[V]):
    key: str
    value: V
    inserted_at: float
    ttl: float

    def is_expired(self, now: float) -> bool:
        return now - self.inserted_at > self.ttl


class TTLCache(Generic[V]):
    """Thread-safe TTL cache with an LRU bound.

    Args:
        name: Label used in logs and metrics (results, autocomplete, analytics)
        default_ttl: Seconds an entry stays valid when ``set`` gets no ttl
        max_entries: Entry bound; the least recently used entry is evicted past it
        clock: Monotonic time source in seconds, injectable for tests
    """

    def __init__(
        self,
        name: str,
        default_ttl: float,
        *,
        max_entries: int = 1000,
        clock: Callable[[], float] = time.monotonic,
    ):
        if default_ttl <= 0:
            raise ValueError("default_ttl must be positive")
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.name = name
        self.default_ttl = default_ttl
        self.max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry[V]] = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    @staticmethod
    def generate_key(query: SearchQuery, prefix: str = "search") -> str:
        """Deterministic key for ``query``; field order never changes the key."""
        return f"{prefix}:{query_fingerprint(query)}"

    def get(self, key: str) -> V | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and entry.is_expired(self._clock()):
                del self._entries[key]
                entry = None
            if entry is None:
                self._misses += 1
                result = "miss"
            else:
                self._entries.move_to_end(key)
                self._hits += 1
                result = "hit"
            size = len(self._entries)

        CACHE_LOOKUPS.labels(cache=self.name, result=result).inc()
        CACHE_SIZE.labels(cache=self.name).set(size)
        return entry.value if entry is not None else None

    def set(self, key: str, value: V, ttl: float | None = None) -> None:
        effective_ttl = self.default_ttl if ttl is None else ttl
        if effective_ttl <= 0:
            raise ValueError("ttl must be positive")

        evicted = 0
        with self._lock:
            self._entries[key] = CacheEntry(key=key, value=value, inserted_at=self._clock(), ttl=effective_ttl)
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                evicted_key, _ = self._entries.popitem(last=False)
                evicted += 1
                logger.debug("Evicted %s from %s cache", evicted_key, self.name)
            self._evictions += evicted
            size = len(self._entries)

        if evicted:
            CACHE_LOOKUPS.labels(cache=self.name, result="eviction").inc(evicted)
        CACHE_SIZE.labels(cache=self.name).set(size)

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def invalidate(self, pattern: str | re.Pattern[str]) -> int:
        """Delete every entry whose key matches ``pattern`` (``re.search`` semantics).

        Returns the number of entries removed.
        """
        compiled = re.compile(pattern) if isinstance(pattern, str) else pattern
        with self._lock:
            doomed = [key for key in self._entries if compiled.search(key)]
            for key in doomed:
                del self._entries[key]
            size = len(self._entries)

        CACHE_SIZE.labels(cache=self.name).set(size)
        if doomed:
            logger.info("Invalidated %d %s cache entries matching %s", len(doomed), self.name, compiled.pattern)
        return len(doomed)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
        CACHE_SIZE.labels(cache=self.name).set(0)

    def purge_expired(self) -> int:
        with self._lock:
            now = self._clock()
            expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            entry = self._entries.get(key)  # type: ignore[arg-type]
            return entry is not None and not entry.is_expired(self._clock())

    def stats(self) -> dict[str, Any]:
        with self._lock:
            lookups = self._hits + self._misses
            return {
                "name": self.name,
                "size": len(self._entries),
                "max_entries": self.max_entries,
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
                "hit_rate": self._hits / lookups if lookups else 0.0,
            }


class SearchCaches:
    """The three independently configured caches the orchestrator uses."""

    def __init__(
        self,
        results: TTLCache,
        autocomplete: TTLCache,
        analytics: TTLCache,
    ):
        self.results = results
        self.autocomplete = autocomplete
        self.analytics = analytics

    @classmethod
    def from_settings(cls, settings: Settings, *, clock: Callable[[], float] = time.monotonic) -> "SearchCaches":
        return cls(
            results=TTLCache(
                "results",
                settings.results_cache_ttl_seconds,
                max_entries=settings.cache_max_entries,
                clock=clock,
            ),
            autocomplete=TTLCache(
                "autocomplete",
                settings.autocomplete_cache_ttl_seconds,
                max_entries=settings.cache_max_entries,
                clock=clock,
            ),
            analytics=TTLCache(
                "analytics",
                settings.analytics_cache_ttl_seconds,
                max_entries=settings.cache_max_entries,
                clock=clock,
            ),
        )

    def all(self) -> tuple[TTLCache, TTLCache, TTLCache]:
        return (self.results, self.autocomplete, self.analytics)

    def clear(self) -> None:
        for cache in self.all():
            cache.clear()

    def stats(self) -> dict[str, dict[str, Any]]:
        return {cache.name: cache.stats() for cache in self.all()}
