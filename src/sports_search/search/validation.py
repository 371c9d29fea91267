"""Query normalization and validation.

``validate_query`` is pure: it never touches the store or the caches, and it
reports every violation at once so callers can show a deterministic
"Invalid query: ..." message.
"""

from __future__ import annotations

from sports_search.domain.search import SearchQuery, SearchType
from sports_search.errors import InvalidQueryError
from sports_search.search.boolean_query import find_dangling_operators


DEFAULT_MAX_TERM_LENGTH = 200
DEFAULT_MAX_LIMIT = 100
DEFAULT_LIMIT = 20

SEARCH_TYPES = frozenset(search_type.value for search_type in SearchType)

# Filter keys a query may use; values are OR'd within a key, keys are AND'd
ALLOWED_FILTERS = frozenset({"role", "status", "location", "sport", "verificationStatus", "category", "eventStatus"})

# Filters with a closed value set
ENUMERATED_FILTER_VALUES: dict[str, frozenset[str]] = {
    "role": frozenset({"athlete", "coach", "organization", "parent", "admin"}),
    "status": frozenset({"active", "inactive"}),
    "verificationStatus": frozenset({"pending", "approved", "rejected"}),
    "eventStatus": frozenset({"upcoming", "active", "completed", "cancelled"}),
}


def _normalize_filters(filters: dict[str, list[str]]) -> dict[str, list[str]]:
    normalized: dict[str, list[str]] = {}
    for key, values in filters.items():
        cleaned: list[str] = []
        for value in values:
            text = " ".join(str(value).split())
            if text and text not in cleaned:
                cleaned.append(text)
        if cleaned:
            normalized[key.strip()] = cleaned
    return normalized


def normalize_query(query: SearchQuery, *, default_limit: int = DEFAULT_LIMIT) -> SearchQuery:
    """Return a lossless cleanup of ``query``.

    Collapses whitespace in the term, drops empty filter lists and duplicate
    values, and fills in the default limit. Out-of-range values are kept so
    the validator can report them.
    """
    search_type = getattr(query.search_type, "value", query.search_type)
    return SearchQuery(
        term=" ".join(query.term.split()),
        search_type=str(search_type).strip(),
        filters=_normalize_filters(query.filters),
        offset=query.offset,
        limit=default_limit if query.limit is None else query.limit,
    )


def sanitize_query(
    query: SearchQuery,
    *,
    default_limit: int = DEFAULT_LIMIT,
    max_limit: int = DEFAULT_MAX_LIMIT,
) -> SearchQuery:
    """Normalize and clamp ``query`` into range (limit in [1, max_limit], offset >= 0)."""
    normalized = normalize_query(query, default_limit=default_limit)
    limit = normalized.limit if normalized.limit is not None else default_limit
    return normalized.model_copy(
        update={
            "limit": max(1, min(limit, max_limit)),
            "offset": max(0, normalized.offset),
        }
    )


def validate_query(
    query: SearchQuery,
    *,
    max_term_length: int = DEFAULT_MAX_TERM_LENGTH,
    max_limit: int = DEFAULT_MAX_LIMIT,
) -> list[str]:
    """Return every violation in ``query``; an empty list means valid."""
    errors: list[str] = []
    search_type = str(getattr(query.search_type, "value", query.search_type))

    if search_type not in SEARCH_TYPES:
        errors.append(f"Invalid search type: {search_type}")

    term = query.term.strip()
    if len(term) > max_term_length:
        errors.append(f"Search term cannot exceed {max_term_length} characters")

    active_filters = {key: values for key, values in query.filters.items() if values}
    if not term and not active_filters:
        errors.append("Search term or filters are required")

    for key in sorted(active_filters):
        if key not in ALLOWED_FILTERS:
            errors.append(f"Unknown filter: {key}")
            continue
        allowed_values = ENUMERATED_FILTER_VALUES.get(key)
        if allowed_values is None:
            continue
        for value in active_filters[key]:
            if value not in allowed_values:
                errors.append(f"Invalid {key} value: {value}")

    if query.offset < 0:
        errors.append("Offset must be non-negative")
    if query.limit is not None and not 1 <= query.limit <= max_limit:
        errors.append(f"Limit must be between 1 and {max_limit}")

    errors.extend(find_dangling_operators(term))
    return errors


def ensure_valid_query(
    query: SearchQuery,
    *,
    max_term_length: int = DEFAULT_MAX_TERM_LENGTH,
    max_limit: int = DEFAULT_MAX_LIMIT,
) -> None:
    """Raise InvalidQueryError listing every violation in ``query``."""
    errors = validate_query(query, max_term_length=max_term_length, max_limit=max_limit)
    if errors:
        raise InvalidQueryError(errors)
