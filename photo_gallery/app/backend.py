"""Wiring for the gallery core.

``GalleryBackend`` constructs the HTTP client, cache, fetcher and controller
from a SettingsManager and owns their lifetimes. The presentation layer talks
to ``backend.controller`` and observes ``backend.state``.
"""

from __future__ import annotations

import contextlib

import httpx

from photo_gallery.image_engine.cache_store import CacheStore
from photo_gallery.image_engine.catalog_client import CatalogClient
from photo_gallery.image_engine.fetcher import ImageFetcher
from photo_gallery.image_engine.gallery_controller import GalleryController
from photo_gallery.image_engine.transport import make_http_client
from photo_gallery.logger import get_logger
from photo_gallery.settings_manager import SettingsManager

_logger = get_logger("backend")


class GalleryBackend:
    def __init__(
        self,
        settings: SettingsManager,
        transport: httpx.BaseTransport | None = None,
        persistent: bool = True,
        with_qt_state: bool = False,
    ):
        self.settings = settings
        self.client = make_http_client(
            timeout=settings.request_timeout,
            transport=transport,
            max_connections=settings.max_workers * 2,
        )
        self.cache = CacheStore(
            memory_bytes=settings.memory_cache_bytes,
            cache_dir=settings.cache_dir if persistent else None,
            disk_bytes=settings.disk_cache_bytes if persistent else 0,
        )
        self.catalog = CatalogClient(self.client, base_url=settings.catalog_base_url)
        self.fetcher = ImageFetcher(self.client, self.cache, max_workers=settings.max_workers)
        self.controller = GalleryController(self.catalog, self.fetcher, page_size=settings.page_size)
        self.state = None
        self._unsubscribe = None
        if with_qt_state:
            from photo_gallery.app.state.gallery_state import GalleryState

            self.state = GalleryState()
            self._unsubscribe = self.controller.subscribe(self.state)
        _logger.debug(
            "backend ready: base_url=%s page_size=%s cache_dir=%s",
            settings.catalog_base_url,
            settings.page_size,
            settings.cache_dir if persistent else None,
        )

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self.controller.shutdown()
        self.fetcher.shutdown()
        self.cache.close()
        with contextlib.suppress(Exception):
            self.client.close()

    def __enter__(self) -> GalleryBackend:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
