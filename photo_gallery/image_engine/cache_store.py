"""CacheStore: two-tier cache for fetched image bytes.

Lookups probe the in-memory LRU first, then the persistent SQLite tier; a
persistent hit is copied back into memory. Persistence is best-effort: any
``StorageError`` is logged here and turned into a miss (on ``get``) or
ignored (on ``put``), so callers never see it.
"""

from __future__ import annotations

import contextlib
import weakref
from pathlib import Path

from photo_gallery.logger import get_logger

from .db.disk_cache import DiskCache
from .errors import StorageError
from .memory_cache import MemoryCache
from .metrics import metrics

_logger = get_logger("cache_store")

DEFAULT_DB_NAME = "image_cache.db"


class CacheStore:
    def __init__(
        self,
        memory_bytes: int,
        cache_dir: Path | str | None = None,
        disk_bytes: int = 0,
        db_name: str = DEFAULT_DB_NAME,
    ):
        self._memory = MemoryCache(memory_bytes)
        self._disk: DiskCache | None = None
        if cache_dir is not None and disk_bytes > 0:
            try:
                self._disk = DiskCache(Path(cache_dir) / db_name, disk_bytes)
            except StorageError as exc:
                _logger.warning("persistent cache disabled: %s", exc)
                self._disk = None
        self._finalizer = weakref.finalize(self, _close_disk, self._disk)

    @property
    def memory(self) -> MemoryCache:
        return self._memory

    @property
    def disk(self) -> DiskCache | None:
        return self._disk

    @property
    def memory_budget(self) -> int:
        return self._memory.max_bytes

    def get(self, key: str) -> bytes | None:
        data = self._memory.get(key)
        if data is not None:
            metrics.inc("cache.memory_hit")
            return data
        if self._disk is None:
            metrics.inc("cache.miss")
            return None
        try:
            data = self._disk.get(key)
        except StorageError as exc:
            _logger.warning("persistent cache read failed for %s: %s", key, exc)
            data = None
        if data is None:
            metrics.inc("cache.miss")
            return None
        metrics.inc("cache.disk_hit")
        self._memory.put(key, data)
        return data

    def put(self, key: str, data: bytes) -> None:
        self._memory.put(key, data)
        if self._disk is None:
            return
        try:
            self._disk.put(key, data)
        except StorageError as exc:
            _logger.warning("persistent cache write failed for %s: %s", key, exc)

    def clear(self) -> None:
        self._memory.clear()
        if self._disk is None:
            return
        try:
            self._disk.clear()
        except StorageError as exc:
            _logger.warning("persistent cache clear failed: %s", exc)

    def stats(self) -> dict[str, int]:
        out = {
            "memory_entries": len(self._memory),
            "memory_bytes": self._memory.total_bytes,
            "disk_entries": 0,
            "disk_bytes": 0,
        }
        if self._disk is not None:
            try:
                out["disk_entries"] = len(self._disk.keys())
                out["disk_bytes"] = self._disk.total_bytes()
            except StorageError as exc:
                _logger.debug("persistent cache stats failed: %s", exc)
        return out

    def close(self) -> None:
        self._finalizer()


def _close_disk(disk: DiskCache | None) -> None:
    if disk is not None:
        with contextlib.suppress(Exception):
            disk.close()
