"""Pytest configuration.

The Qt state bridge emits signals from worker threads, so a QCoreApplication
is created once for the whole session and shut down at the end.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

import pytest

from photo_gallery.image_engine.cache_store import CacheStore
from photo_gallery.image_engine.catalog_client import CatalogClient
from photo_gallery.image_engine.fetcher import ImageFetcher
from photo_gallery.image_engine.gallery_controller import GalleryController
from photo_gallery.image_engine.metrics import metrics
from tests.helpers.fake_catalog import BASE_URL, FakeCatalog, RecordingObserver

_APP: Any | None = None


def pytest_configure(config) -> None:  # noqa: ARG001
    """Ensure a QCoreApplication exists before collecting/running tests."""

    # Import lazily so non-Qt environments can still import this conftest.
    try:
        from PySide6.QtCore import QCoreApplication
    except ImportError:
        return

    global _APP

    app = QCoreApplication.instance()
    _APP = QCoreApplication([]) if app is None else app


def pytest_sessionfinish(session, exitstatus) -> None:  # noqa: ARG001
    try:
        from PySide6.QtCore import QCoreApplication
    except ImportError:
        return

    app = QCoreApplication.instance()
    if app is None:
        return
    app.quit()
    app.processEvents()


@pytest.fixture(autouse=True)
def _reset_metrics() -> Iterator[None]:
    metrics.reset()
    yield
    metrics.reset()


@pytest.fixture
def fake() -> FakeCatalog:
    return FakeCatalog()


@pytest.fixture
def gallery(fake: FakeCatalog) -> Iterator[tuple[GalleryController, RecordingObserver]]:
    client = fake.client()
    cache = CacheStore(memory_bytes=1024 * 1024)
    fetcher = ImageFetcher(client, cache, max_workers=4)
    controller = GalleryController(CatalogClient(client, base_url=BASE_URL), fetcher, page_size=20)
    observer = RecordingObserver()
    controller.subscribe(observer)
    yield controller, observer
    for gate in (fake.gate, fake.page_gate):
        if gate is not None:
            gate.set()
    controller.shutdown()
    fetcher.shutdown()
    cache.close()
    client.close()
