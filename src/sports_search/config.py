"""Centralized configuration for sports-search using Pydantic Settings."""

from typing import Any

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Strictly typed configuration loaded from environment variables.

    Every option maps onto one orchestrator behavior. Values are validated at
    construction, so a misconfigured process fails at startup instead of on
    the first search.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_default=True,
        extra="ignore",
    )

    # Feature switches
    enable_caching: bool = Field(default=True, description="Serve and store search results through the TTL caches")
    enable_fuzzy_matching: bool = Field(
        default=True, description="Use edit-distance matching instead of plain substring containment"
    )
    enable_analytics: bool = Field(default=True, description="Record search history and popular terms")

    # Query bounds
    default_limit: int = Field(default=20, ge=1, description="Page size used when a query omits limit")
    max_limit: int = Field(default=100, ge=1, description="Largest page size a query may request")
    max_term_length: int = Field(default=200, ge=1, description="Longest accepted search term")

    # Deadlines
    max_search_time_ms: int = Field(default=10_000, ge=1, description="Deadline for the document store fan-out")
    autocomplete_budget_ms: int = Field(default=200, ge=1, description="Deadline for autocomplete scans")

    # Matching
    fuzzy_max_distance: int = Field(default=2, ge=0, le=5, description="Edit distance tolerated by fuzzy matching")
    scan_window: int = Field(default=500, ge=1, description="Maximum raw records requested per store query")
    suggestion_limit: int = Field(default=5, ge=1, description="Did-you-mean suggestions on zero results")
    autocomplete_limit: int = Field(default=10, ge=1, description="Maximum autocomplete suggestions")

    # Caches
    results_cache_ttl_seconds: float = Field(default=300.0, gt=0, description="TTL for cached search results")
    autocomplete_cache_ttl_seconds: float = Field(default=30.0, gt=0, description="TTL for autocomplete entries")
    analytics_cache_ttl_seconds: float = Field(default=900.0, gt=0, description="TTL for analytics snapshots")
    cache_max_entries: int = Field(default=1000, ge=1, description="Per-cache entry bound before LRU eviction")

    # Request coalescing
    debounce_delay_ms: int = Field(default=300, ge=0, description="Quiet period before a debounced search fires")
    debounce_max_wait_ms: int = Field(default=1000, ge=0, description="Ceiling on how long a debounced search waits")

    # History
    performance_history_size: int = Field(default=1000, ge=1, description="Performance records kept in memory")
    search_history_size: int = Field(default=500, ge=1, description="Search history entries kept in memory")
    prefetch_count: int = Field(default=5, ge=0, description="Popular terms warmed by prefetching")
    prefetch_max_retries: int = Field(default=2, ge=0, description="Retries per prefetch on retryable errors")
    max_saved_searches: int = Field(default=50, ge=1, description="Saved searches kept per user")

    # Logging
    log_level: str = Field(default="info", description="Logging level")
    log_json: bool = Field(default=True, description="Emit structured JSON logs")
    log_redact_terms: bool = Field(default=False, description="Log search terms as their length only")

    @model_validator(mode="after")
    def _check_bounds(self) -> "Settings":
        if self.default_limit > self.max_limit:
            raise ValueError("DEFAULT_LIMIT cannot exceed MAX_LIMIT")
        if self.debounce_max_wait_ms and self.debounce_max_wait_ms < self.debounce_delay_ms:
            raise ValueError("DEBOUNCE_MAX_WAIT_MS must be zero or at least DEBOUNCE_DELAY_MS")
        return self

    @property
    def max_search_time_seconds(self) -> float:
        return self.max_search_time_ms / 1000

    @property
    def autocomplete_budget_seconds(self) -> float:
        return self.autocomplete_budget_ms / 1000

    def with_changes(self, **changes: Any) -> "Settings":
        """Return a re-validated copy with ``changes`` applied.

        Explicit values take priority over the environment, so the copy keeps
        every current value that is not overridden.
        """
        unknown = set(changes) - set(type(self).model_fields)
        if unknown:
            raise ValueError(f"Unknown settings: {', '.join(sorted(unknown))}")
        return type(self)(**{**self.model_dump(), **changes})
