"""Size-bounded LRU cache for image bytes held in memory."""

from __future__ import annotations

import threading
import time
from collections import OrderedDict

from photo_gallery.logger import get_logger

from .metrics import metrics
from .models import CacheEntry

_logger = get_logger("memory_cache")


class MemoryCache:
    """Least-recently-accessed eviction over a byte budget.

    The OrderedDict is kept in access order (oldest first), so eviction pops
    from the front. All mutations happen under a single lock.
    """

    def __init__(self, max_bytes: int):
        if int(max_bytes) < 0:
            raise ValueError("max_bytes must be >= 0")
        self.max_bytes = int(max_bytes)
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._total = 0
        self._lock = threading.Lock()

    def get(self, key: str) -> bytes | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            entry.last_accessed = time.time()
            self._entries.move_to_end(key)
            return entry.data

    def put(self, key: str, data: bytes) -> bool:
        """Insert or replace ``key``. Returns False when it cannot fit at all."""
        size = len(data)
        with self._lock:
            old = self._entries.pop(key, None)
            if old is not None:
                self._total -= old.size_bytes
            if size > self.max_bytes:
                _logger.debug("memory put skipped: key=%s size=%s budget=%s", key, size, self.max_bytes)
                return False
            self._entries[key] = CacheEntry(key=key, data=bytes(data), size_bytes=size, last_accessed=time.time())
            self._total += size
            evicted = 0
            # The new entry sits at the end, so it is never the one evicted here.
            while self._total > self.max_bytes:
                _old_key, victim = self._entries.popitem(last=False)
                self._total -= victim.size_bytes
                evicted += 1
            if evicted:
                metrics.inc("memory_cache.evictions", evicted)
                _logger.debug("memory evicted %d entries; total=%s", evicted, self._total)
            return True

    def remove(self, key: str) -> None:
        with self._lock:
            entry = self._entries.pop(key, None)
            if entry is not None:
                self._total -= entry.size_bytes

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._total = 0

    def keys(self) -> list[str]:
        """Keys ordered least- to most-recently accessed."""
        with self._lock:
            return list(self._entries.keys())

    @property
    def total_bytes(self) -> int:
        with self._lock:
            return self._total

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries
