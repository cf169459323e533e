"""Lightweight in-process metrics for the loading pipeline.

Components record counters and timings here so tests and the CLI summary can
see how many requests actually went to the network versus the caches.

Usage:
    from photo_gallery.image_engine.metrics import metrics
    metrics.inc("fetcher.network_requests")
    with metrics.timed("catalog.fetch_page_duration"):
        ...
    metrics.counters("cache.")  # {"cache.memory_hit": 3, ...}
"""

from __future__ import annotations

import time
from collections import Counter
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import asdict, dataclass
from threading import Lock
from typing import Any


@dataclass
class _Timing:
    count: int = 0
    total: float = 0.0
    max: float = 0.0

    def add(self, elapsed: float) -> None:
        self.count += 1
        self.total += elapsed
        self.max = max(self.max, elapsed)


class _Metrics:
    def __init__(self) -> None:
        self._counts: Counter[str] = Counter()
        self._timings: dict[str, _Timing] = {}
        self._lock = Lock()

    def inc(self, key: str, amount: int = 1) -> None:
        with self._lock:
            self._counts[key] += int(amount)

    def count(self, key: str) -> int:
        with self._lock:
            return self._counts[key]

    def counters(self, prefix: str = "") -> dict[str, int]:
        with self._lock:
            return {k: v for k, v in self._counts.items() if k.startswith(prefix)}

    @contextmanager
    def timed(self, key: str) -> Iterator[None]:
        start = time.perf_counter()
        try:
            yield
        finally:
            elapsed = time.perf_counter() - start
            with self._lock:
                self._timings.setdefault(key, _Timing()).add(elapsed)

    def snapshot(self) -> dict[str, Any]:
        """Counters plus per-key timing aggregates (count, total and max seconds)."""
        with self._lock:
            return {
                "counters": dict(self._counts),
                "timings": {k: asdict(t) for k, t in self._timings.items()},
            }

    def reset(self) -> None:
        with self._lock:
            self._counts.clear()
            self._timings.clear()


metrics = _Metrics()
