"""In-process doubles for the catalog service, the image host and the UI observer."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable

import httpx

BASE_URL = "http://catalog.test"


class FakeCatalog:
    """Serves catalog pages and image bytes through ``httpx.MockTransport``.

    ``pages`` maps page number -> JSON payload, an ``httpx.Response`` or an
    exception to raise. ``images`` maps absolute URL -> bytes, a Response, an
    exception, or a list of those consumed one per request (the last one
    repeats).
    """

    def __init__(self) -> None:
        self.pages: dict[int, object] = {}
        self.images: dict[str, object] = {}
        self.requests: list[httpx.Request] = []
        self.gate: threading.Event | None = None
        self.page_gate: threading.Event | None = None
        self._lock = threading.Lock()

    def _next(self, value: object) -> object:
        if isinstance(value, list):
            with self._lock:
                return value.pop(0) if len(value) > 1 else value[0]
        return value

    def handler(self, request: httpx.Request) -> httpx.Response:
        with self._lock:
            self.requests.append(request)
        if request.url.path == "/v2/list":
            if self.page_gate is not None:
                self.page_gate.wait(timeout=5)
            page = int(request.url.params["page"])
            body = self.pages.get(page, [])
            if isinstance(body, Exception):
                raise body
            if isinstance(body, httpx.Response):
                return body
            return httpx.Response(200, json=body)

        if self.gate is not None:
            self.gate.wait(timeout=5)
        value = self._next(self.images.get(str(request.url)))
        if value is None:
            return httpx.Response(404)
        if isinstance(value, Exception):
            raise value
        if isinstance(value, httpx.Response):
            return value
        return httpx.Response(200, content=value, headers={"Content-Type": "image/jpeg"})

    def count(self, url: str) -> int:
        with self._lock:
            return sum(1 for r in self.requests if str(r.url) == url)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def client(self) -> httpx.Client:
        return httpx.Client(transport=self.transport())


def record(image_id: str) -> dict[str, str]:
    return {"id": image_id, "author": "someone", "download_url": image_url(image_id)}


def image_url(image_id: str) -> str:
    return f"http://img.test/{image_id}.jpg"


class RecordingObserver:
    def __init__(self) -> None:
        self.snapshots: list = []
        self.errors: list = []
        self._lock = threading.Lock()

    def on_gallery_changed(self, snapshot) -> None:  # noqa: ANN001
        with self._lock:
            self.snapshots.append(snapshot)

    def on_page_error(self, error) -> None:  # noqa: ANN001
        with self._lock:
            self.errors.append(error)

    def history(self, cell_key: str) -> list:
        """States of one cell across notifications, consecutive repeats collapsed."""
        out: list = []
        with self._lock:
            snapshots = list(self.snapshots)
        for snap in snapshots:
            state = snap.state_of(cell_key)
            if state is None:
                continue
            if not out or out[-1] != state:
                out.append(state)
        return out


def wait_until(predicate: Callable[[], bool], timeout: float = 5.0) -> bool:
    """Poll ``predicate`` until it holds; done-callbacks run after waiters wake."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()
