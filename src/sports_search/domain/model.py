"""Domain model - typed snapshots of store records.

Raw documents come out of the store as untyped field bags with camelCase
keys. They are mapped into one of three frozen record kinds at the boundary:
- unknown fields are dropped
- missing optional fields get defaults
- a record without an ``id`` is rejected (mapping returns None)

The ``kind`` literal is the discriminator of the ``SearchResultItem`` union.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from datetime import datetime, timezone
import logging
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


logger = logging.getLogger(__name__)

RawRecord = Mapping[str, Any]

# Epoch values above this are treated as milliseconds
_EPOCH_MS_THRESHOLD = 10**11


class _Record(BaseModel, ABC):
    model_config = ConfigDict(frozen=True)

    id: str
    created_at: datetime | None = None

    @abstractmethod
    def display_fields(self) -> list[str]:
        """Text fields fuzzy matching runs against, most important first."""

    @abstractmethod
    def facet_values(self) -> dict[str, str]:
        pass

    @abstractmethod
    def filter_value(self, filter_name: str) -> list[str] | None:
        """Values this record exposes for a structured filter, None if not applicable."""

    @property
    def result_key(self) -> str:
        """Identity across kinds; ids are only unique within one collection."""
        return f"{self.kind}:{self.id}"  # type: ignore[attr-defined]

    @property
    def primary_text(self) -> str:
        fields = self.display_fields()
        return fields[0] if fields else ""

    @property
    def sort_timestamp(self) -> float:
        return self.created_at.timestamp() if self.created_at else 0.0


class UserRecord(_Record):
    kind: Literal["user"] = "user"
    display_name: str = ""
    email: str = ""
    bio: str = ""
    role: str = ""
    is_active: bool = True
    location: str = ""
    sports: list[str] = Field(default_factory=list)

    def display_fields(self) -> list[str]:
        return [value for value in (self.display_name, self.email, self.bio) if value]

    def facet_values(self) -> dict[str, str]:
        facets = {"status": "active" if self.is_active else "inactive"}
        if self.role:
            facets["role"] = self.role
        return facets

    def filter_value(self, filter_name: str) -> list[str] | None:
        if filter_name == "role":
            return [self.role]
        if filter_name == "status":
            return ["active" if self.is_active else "inactive"]
        if filter_name == "location":
            return [self.location]
        if filter_name == "sport":
            return list(self.sports)
        return None


class VideoRecord(_Record):
    kind: Literal["video"] = "video"
    title: str = ""
    description: str = ""
    user_id: str = ""
    category: str = ""
    verification_status: str = "pending"

    def display_fields(self) -> list[str]:
        return [value for value in (self.title, self.description) if value]

    def facet_values(self) -> dict[str, str]:
        facets = {"verificationStatus": self.verification_status}
        if self.category:
            facets["category"] = self.category
        return facets

    def filter_value(self, filter_name: str) -> list[str] | None:
        if filter_name == "verificationStatus":
            return [self.verification_status]
        if filter_name == "category":
            return [self.category]
        return None


class EventRecord(_Record):
    kind: Literal["event"] = "event"
    title: str = ""
    description: str = ""
    location: str = ""
    status: str = ""
    category: str = ""
    sport: str = ""
    start_date: datetime | None = None

    def display_fields(self) -> list[str]:
        return [value for value in (self.title, self.description, self.location) if value]

    def facet_values(self) -> dict[str, str]:
        facets: dict[str, str] = {}
        if self.status:
            facets["eventStatus"] = self.status
        if self.category:
            facets["category"] = self.category
        return facets

    def filter_value(self, filter_name: str) -> list[str] | None:
        if filter_name == "eventStatus":
            return [self.status]
        if filter_name == "category":
            return [self.category]
        if filter_name == "location":
            return [self.location]
        if filter_name == "sport":
            return [self.sport]
        return None


Record = UserRecord | VideoRecord | EventRecord


def coerce_timestamp(value: Any) -> datetime | None:
    """Convert store timestamps (datetime, ISO string, epoch s/ms) to aware datetimes."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        seconds = value / 1000 if value > _EPOCH_MS_THRESHOLD else value
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    to_datetime = getattr(value, "to_datetime", None)
    if callable(to_datetime):
        return coerce_timestamp(to_datetime())
    return None


def _text(raw: RawRecord, key: str) -> str:
    value = raw.get(key)
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _text_list(raw: RawRecord, key: str) -> list[str]:
    value = raw.get(key)
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple, set)):
        return [str(item) for item in value if item is not None]
    return []


def _record_id(raw: RawRecord) -> str | None:
    value = raw.get("id")
    if value is None or value == "":
        return None
    return str(value)


def user_from_raw(raw: RawRecord) -> UserRecord | None:
    record_id = _record_id(raw)
    if record_id is None:
        return None
    return UserRecord(
        id=record_id,
        display_name=_text(raw, "displayName"),
        email=_text(raw, "email"),
        bio=_text(raw, "bio"),
        role=_text(raw, "role"),
        is_active=bool(raw.get("isActive", True)),
        location=_text(raw, "location"),
        sports=_text_list(raw, "sports"),
        created_at=coerce_timestamp(raw.get("createdAt")),
    )


def video_from_raw(raw: RawRecord) -> VideoRecord | None:
    record_id = _record_id(raw)
    if record_id is None:
        return None
    return VideoRecord(
        id=record_id,
        title=_text(raw, "title"),
        description=_text(raw, "description"),
        user_id=_text(raw, "userId"),
        category=_text(raw, "category"),
        verification_status=_text(raw, "verificationStatus") or "pending",
        created_at=coerce_timestamp(raw.get("createdAt")),
    )


def event_from_raw(raw: RawRecord) -> EventRecord | None:
    record_id = _record_id(raw)
    if record_id is None:
        return None
    return EventRecord(
        id=record_id,
        title=_text(raw, "title"),
        description=_text(raw, "description"),
        location=_text(raw, "location"),
        status=_text(raw, "status"),
        category=_text(raw, "category"),
        sport=_text(raw, "sport"),
        start_date=coerce_timestamp(raw.get("startDate")),
        created_at=coerce_timestamp(raw.get("createdAt")),
    )


RECORD_MAPPERS: dict[str, Callable[[RawRecord], Record | None]] = {
    "users": user_from_raw,
    "videos": video_from_raw,
    "events": event_from_raw,
}


def record_from_raw(collection: str, raw: RawRecord) -> Record | None:
    """Map a raw store document from ``collection`` into its typed record."""
    mapper = RECORD_MAPPERS.get(collection)
    if mapper is None:
        raise ValueError(f"Unknown collection: {collection}")
    record = mapper(raw)
    if record is None:
        logger.debug("Skipping %s record without id", collection)
    return record
