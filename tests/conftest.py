"""Shared test fixtures and configuration."""

from datetime import datetime, timezone
import os

import pytest


# Complete test environment that overrides ALL possible config values
TEST_ENV = {
    # Feature switches
    "ENABLE_CACHING": "true",
    "ENABLE_FUZZY_MATCHING": "true",
    "ENABLE_ANALYTICS": "true",
    # Query bounds
    "DEFAULT_LIMIT": "20",
    "MAX_LIMIT": "100",
    "MAX_TERM_LENGTH": "200",
    # Deadlines
    "MAX_SEARCH_TIME_MS": "2000",
    "AUTOCOMPLETE_BUDGET_MS": "200",
    # Matching
    "FUZZY_MAX_DISTANCE": "2",
    "SCAN_WINDOW": "500",
    # Caches
    "RESULTS_CACHE_TTL_SECONDS": "300",
    "AUTOCOMPLETE_CACHE_TTL_SECONDS": "30",
    "ANALYTICS_CACHE_TTL_SECONDS": "900",
    "CACHE_MAX_ENTRIES": "1000",
    # Coalescing - short so debounced tests stay fast
    "DEBOUNCE_DELAY_MS": "20",
    "DEBOUNCE_MAX_WAIT_MS": "100",
    # Logging
    "LOG_LEVEL": "info",
    "LOG_JSON": "false",
}


# Set environment variables immediately when conftest.py is loaded
for key, value in TEST_ENV.items():
    os.environ[key] = value

# Now we can safely import config-dependent modules
from sports_search.adapters.document_store import InMemoryDocumentStore
from sports_search.adapters.kv_store import InMemoryKeyValueStore
from sports_search.config import Settings


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Clean environment variables before each test and set test defaults."""
    for key, value in TEST_ENV.items():
        monkeypatch.setenv(key, value)


def _ts(day: int, month: int = 1) -> datetime:
    return datetime(2024, month, day, 12, 0, tzinfo=timezone.utc)


SAMPLE_USERS = [
    {
        "id": "u1",
        "displayName": "John Doe",
        "email": "john@example.com",
        "bio": "Basketball athlete from Chicago",
        "role": "athlete",
        "isActive": True,
        "location": "Chicago",
        "sports": ["basketball"],
        "createdAt": _ts(3),
    },
    {
        "id": "u2",
        "displayName": "Jane Smith",
        "email": "jane@example.com",
        "bio": "Soccer coach",
        "role": "coach",
        "isActive": True,
        "location": "Boston",
        "sports": ["soccer"],
        "createdAt": _ts(2),
    },
    {
        "id": "u3",
        "displayName": "Johnny Walker",
        "email": "johnny@example.com",
        "bio": "Beginner athlete who loves soccer",
        "role": "athlete",
        "isActive": False,
        "location": "Chicago",
        "sports": ["soccer"],
        "createdAt": _ts(1),
    },
]

SAMPLE_VIDEOS = [
    {
        "id": "v1",
        "title": "Basketball highlights",
        "description": "Best dunks of the season",
        "userId": "u1",
        "category": "highlights",
        "verificationStatus": "approved",
        "createdAt": _ts(1, 2),
    },
    {
        "id": "v2",
        "title": "Soccer training drills",
        "description": "Passing drills for beginners",
        "userId": "u2",
        "category": "training",
        "verificationStatus": "pending",
        "createdAt": _ts(2, 2),
    },
]

SAMPLE_EVENTS = [
    {
        "id": "e1",
        "title": "City Basketball Tournament",
        "description": "Annual tournament",
        "location": "Chicago",
        "status": "upcoming",
        "category": "tournament",
        "sport": "basketball",
        "startDate": "2024-06-01T10:00:00Z",
        "createdAt": _ts(1, 3),
    },
]


@pytest.fixture
def sample_collections():
    """Raw store documents for the three collections."""
    return {
        "users": [dict(doc) for doc in SAMPLE_USERS],
        "videos": [dict(doc) for doc in SAMPLE_VIDEOS],
        "events": [dict(doc) for doc in SAMPLE_EVENTS],
    }


@pytest.fixture
def document_store(sample_collections):
    """In-memory document store seeded with the sample collections."""
    return InMemoryDocumentStore(sample_collections)


@pytest.fixture
def kv_store():
    return InMemoryKeyValueStore()


@pytest.fixture
def settings():
    """Settings built from the test environment."""
    return Settings()
