"""
JSON-backed indexes that map origins to cached files and cached files to their
last playback position.

Both files are loaded once and rewritten in full after every mutation.
"""

import asyncio
import logging
import os
from collections.abc import Callable
from pathlib import Path
from typing import Generic, TypeVar

from pydantic import BaseModel, TypeAdapter, ValidationError

from reelcache.models.target import CacheEntry, PlaybackPosition

log = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)


class JsonIndex(Generic[RecordT]):
    """
    An ordered list of records persisted as a JSON array.

    All access goes through an asyncio lock; callers only ever see copies.
    """

    def __init__(self, file_path: Path, record_type: type[RecordT]):
        self.file_path = Path(file_path)
        self._adapter = TypeAdapter(list[record_type])
        self._records: list[RecordT] = self._load()
        self._lock = asyncio.Lock()

    def _load(self) -> list[RecordT]:
        """Reads the index file; a missing or malformed file yields an empty index."""
        if not self.file_path.is_file():
            return []
        try:
            records = self._adapter.validate_json(self.file_path.read_bytes())
        except (OSError, ValidationError) as e:
            log.warning(f"Failed to load index '{self.file_path}': {e}")
            return []
        log.debug(f"Loaded {len(records)} records from '{self.file_path}'.")
        return records

    def _write_sync(self, payload: bytes) -> None:
        tmp_path = self.file_path.with_name(f"{self.file_path.name}.tmp")
        try:
            self.file_path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_bytes(payload)
            os.replace(tmp_path, self.file_path)
        except OSError as e:
            log.error(f"Failed to write index '{self.file_path}': {e}")

    async def _save(self) -> None:
        """Persists the current records. Must be called with the lock held."""
        payload = self._adapter.dump_json(self._records, indent=2)
        await asyncio.to_thread(self._write_sync, payload)

    def _find(self, predicate: Callable[[RecordT], bool]) -> int:
        for i, record in enumerate(self._records):
            if predicate(record):
                return i
        return -1

    async def _upsert(
        self, record: RecordT, predicate: Callable[[RecordT], bool]
    ) -> None:
        async with self._lock:
            index = self._find(predicate)
            if index < 0:
                self._records.append(record)
            else:
                self._records[index] = record
            await self._save()

    async def records(self) -> list[RecordT]:
        async with self._lock:
            return [record.model_copy() for record in self._records]

    def __len__(self) -> int:
        return len(self._records)


class CacheIndex(JsonIndex[CacheEntry]):
    """Maps normalized origin identifiers to cached file paths."""

    def __init__(self, file_path: Path):
        super().__init__(file_path, CacheEntry)

    async def lookup(self, origin: str) -> str | None:
        """Returns the path recorded for an origin; the first match wins."""
        async with self._lock:
            index = self._find(lambda entry: entry.origin == origin)
            return self._records[index].path if index >= 0 else None

    async def add(self, origin: str, path: str) -> None:
        """Records an origin, replacing any earlier entry for it."""
        await self._upsert(
            CacheEntry(origin=origin, path=path),
            lambda entry: entry.origin == origin,
        )
        log.debug(f"Indexed '{origin}' -> '{path}'.")


class PlaybackIndex(JsonIndex[PlaybackPosition]):
    """Keeps the last-watched time offset of each cached file."""

    def __init__(self, file_path: Path):
        super().__init__(file_path, PlaybackPosition)

    async def get(self, path: str) -> float:
        """Returns the stored position in seconds, or 0.0 if none is known."""
        async with self._lock:
            index = self._find(lambda position: position.path == path)
            return self._records[index].time if index >= 0 else 0.0

    async def update(self, path: str, time: float) -> None:
        """
        Stores the position for a path, replacing the previous one.

        Raises:
            ValidationError: If `time` is NaN or infinite; nothing is stored.
        """
        await self._upsert(
            PlaybackPosition(path=path, time=time),
            lambda position: position.path == path,
        )
