"""Image byte fetcher with cache-first lookup and in-flight de-duplication.

Requests are keyed by source URL. While a request for a URL is outstanding,
every further ``submit`` for that URL receives the same future, so a burst of
cells asking for one image produces a single network GET.
"""

from __future__ import annotations

import contextlib
import threading
from concurrent.futures import Future, InvalidStateError, ThreadPoolExecutor

import httpx

from photo_gallery.logger import get_logger

from .cache_store import CacheStore
from .errors import FetchError
from .metrics import metrics
from .models import ImageDescriptor

_logger = get_logger("fetcher")


class ImageFetcher:
    def __init__(self, client: httpx.Client, cache: CacheStore, max_workers: int = 4):
        self._client = client
        self._cache = cache
        self._pool = ThreadPoolExecutor(max_workers=max(1, int(max_workers)), thread_name_prefix="photo-gallery-fetch")
        self._in_flight: dict[str, Future] = {}
        self._lock = threading.Lock()
        _logger.debug("ImageFetcher init: workers=%s", max_workers)

    @property
    def cache(self) -> CacheStore:
        return self._cache

    def submit(self, descriptor: ImageDescriptor) -> Future:
        """Return a future resolving to the image bytes or raising FetchError."""
        url = descriptor.source_url
        with self._lock:
            pending = self._in_flight.get(url)
            if pending is not None:
                metrics.inc("fetcher.dedup_joined")
                _logger.debug("submit dedupe(in-flight): id=%s url=%s", descriptor.id, url)
                return pending
            fut: Future = Future()
            self._in_flight[url] = fut
        try:
            self._pool.submit(self._run, url, fut)
        except RuntimeError as exc:
            # Pool already shut down.
            with self._lock:
                self._in_flight.pop(url, None)
            fut.set_exception(FetchError(url, "fetcher is shut down", exc))
        return fut

    def fetch(self, descriptor: ImageDescriptor) -> bytes:
        """Blocking form of ``submit``."""
        return self.submit(descriptor).result()

    def in_flight_count(self) -> int:
        with self._lock:
            return len(self._in_flight)

    def _run(self, url: str, fut: Future) -> None:
        try:
            data = self._load(url)
        except Exception as exc:
            self._finish(url, fut)
            with contextlib.suppress(InvalidStateError):
                fut.set_exception(exc)
            return
        self._finish(url, fut)
        with contextlib.suppress(InvalidStateError):
            fut.set_result(data)

    def _finish(self, url: str, fut: Future) -> None:
        # Drop the table entry before resolving so a retry triggered from a
        # done-callback starts a new request instead of joining this one.
        with self._lock:
            if self._in_flight.get(url) is fut:
                del self._in_flight[url]

    def _load(self, url: str) -> bytes:
        cached = self._cache.get(url)
        if cached is not None:
            _logger.debug("cache hit: url=%s size=%d", url, len(cached))
            return cached

        metrics.inc("fetcher.network_requests")
        _logger.debug("network fetch: url=%s", url)
        try:
            with metrics.timed("fetcher.request_duration"):
                response = self._client.get(url)
        except httpx.HTTPError as exc:
            metrics.inc("fetcher.failures")
            raise FetchError(url, f"request failed: {exc}", exc) from exc

        if not response.is_success:
            metrics.inc("fetcher.failures")
            raise FetchError(url, f"HTTP {response.status_code}")
        data = response.content
        if not data:
            metrics.inc("fetcher.failures")
            raise FetchError(url, "empty body")

        self._cache.put(url, data)
        return data

    def shutdown(self, wait: bool = False) -> None:
        self._pool.shutdown(wait=wait, cancel_futures=True)
        with self._lock:
            orphaned = list(self._in_flight.items())
            self._in_flight.clear()
        for url, fut in orphaned:
            with contextlib.suppress(InvalidStateError):
                fut.set_exception(FetchError(url, "fetcher is shut down"))
