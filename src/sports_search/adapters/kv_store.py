"""Persistent key-value store backing saved searches and search history."""

from abc import ABC, abstractmethod
import asyncio
import logging
import os
from pathlib import Path
import uuid

import orjson

from sports_search.errors import KeyValueStoreError


logger = logging.getLogger(__name__)


class AbstractKeyValueStore(ABC):
    """String-to-string store that survives process restarts."""

    @abstractmethod
    async def get(self, key: str) -> str | None:
        raise NotImplementedError

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    @abstractmethod
    async def remove(self, key: str) -> None:
        raise NotImplementedError


class InMemoryKeyValueStore(AbstractKeyValueStore):
    """Process-local store for tests; ``writes`` counts ``set`` calls."""

    def __init__(self, initial: dict[str, str] | None = None):
        self.data: dict[str, str] = dict(initial or {})
        self.writes = 0

    async def get(self, key: str) -> str | None:
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        self.writes += 1
        self.data[key] = value

    async def remove(self, key: str) -> None:
        self.data.pop(key, None)


class FileKeyValueStore(AbstractKeyValueStore):
    """All keys in one JSON file, rewritten atomically on every change.

    Writes go to a uniquely named temp file in the same directory and are
    moved into place with ``os.replace``; a crash never leaves a torn file.
    """

    def __init__(self, path: Path):
        self.path = path.expanduser().resolve(strict=False)
        self._lock = asyncio.Lock()

    def _read_all(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            payload = orjson.loads(self.path.read_bytes())
        except (OSError, orjson.JSONDecodeError) as exc:
            raise KeyValueStoreError(f"Cannot read {self.path}: {exc}") from exc
        if not isinstance(payload, dict):
            raise KeyValueStoreError(f"Unexpected content in {self.path}")
        return {str(key): str(value) for key, value in payload.items()}

    def _write_all(self, data: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self.path.with_name(f".{self.path.name}.{uuid.uuid4().hex[:8]}.tmp")
        try:
            temp_path.write_bytes(orjson.dumps(data, option=orjson.OPT_SORT_KEYS))
            os.replace(temp_path, self.path)
        except OSError as exc:
            temp_path.unlink(missing_ok=True)
            raise KeyValueStoreError(f"Cannot write {self.path}: {exc}") from exc

    async def get(self, key: str) -> str | None:
        async with self._lock:
            data = await asyncio.to_thread(self._read_all)
        return data.get(key)

    async def set(self, key: str, value: str) -> None:
        async with self._lock:
            data = await asyncio.to_thread(self._read_all)
            data[key] = value
            await asyncio.to_thread(self._write_all, data)
        logger.debug("Stored key %s in %s", key, self.path)

    async def remove(self, key: str) -> None:
        async with self._lock:
            data = await asyncio.to_thread(self._read_all)
            if data.pop(key, None) is not None:
                await asyncio.to_thread(self._write_all, data)
