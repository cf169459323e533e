"""GalleryController: page loading and per-cell load state.

The controller owns the ordered cell list and one LoadState per cell. All
transitions happen under one re-entrant lock and each is published to the
subscribed observers before the lock is released, so observers see the
transitions of a cell in the order they were applied.

Every image load carries a generation number. When a completion arrives
whose generation is no longer the cell's latest (a page reload replaced the
cell, or a retry started a newer attempt), the result is dropped.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import replace
from functools import partial
from typing import Protocol

from photo_gallery.logger import get_logger

from .catalog_client import CatalogClient
from .errors import ErrorKind, GalleryError, PageLoadError
from .fetcher import ImageFetcher
from .metrics import metrics
from .models import (
    LOADING,
    NOT_REQUESTED,
    Cell,
    Failed,
    GallerySnapshot,
    ImageDescriptor,
    Loaded,
    LoadState,
    Loading,
    PageState,
)

_logger = get_logger("controller")

DEFAULT_PAGE_SIZE = 20


class GalleryObserver(Protocol):
    def on_gallery_changed(self, snapshot: GallerySnapshot) -> None: ...

    def on_page_error(self, error: PageLoadError) -> None: ...


def _completed(value: object) -> Future:
    fut: Future = Future()
    fut.set_result(value)
    return fut


class GalleryController:
    def __init__(
        self,
        catalog: CatalogClient,
        fetcher: ImageFetcher,
        page_size: int = DEFAULT_PAGE_SIZE,
        max_page_workers: int = 2,
    ):
        if page_size < 1:
            raise ValueError("page_size must be >= 1")
        self._catalog = catalog
        self._fetcher = fetcher
        self.page_size = int(page_size)
        self._page_pool = ThreadPoolExecutor(max_workers=max(1, max_page_workers), thread_name_prefix="photo-gallery-page")
        self._lock = threading.RLock()
        self._observers: list[GalleryObserver] = []

        self._page = PageState()
        self._loaded_pages: set[int] = set()
        self._pages_in_flight: dict[int, int] = {}
        self._epoch = 0

        self._cells: list[Cell] = []
        self._cell_index: dict[str, Cell] = {}
        self._states: dict[str, LoadState] = {}
        self._generation: dict[str, int] = {}
        self._pending: dict[str, Future] = {}

    # ---- observation ----

    def subscribe(self, observer: GalleryObserver) -> Callable[[], None]:
        """Register an observer; returns a callable that unsubscribes it."""
        with self._lock:
            self._observers.append(observer)

        def _unsubscribe() -> None:
            with self._lock:
                if observer in self._observers:
                    self._observers.remove(observer)

        return _unsubscribe

    def snapshot(self) -> GallerySnapshot:
        with self._lock:
            return GallerySnapshot(
                page=self._page,
                cells=tuple((c.key, self._states[c.key]) for c in self._cells),
            )

    def cells(self) -> list[tuple[str, LoadState]]:
        return list(self.snapshot().cells)

    @property
    def page_state(self) -> PageState:
        with self._lock:
            return self._page

    def cell(self, cell_key: str) -> Cell:
        with self._lock:
            return self._cell_index[cell_key]

    def state_of(self, cell_key: str) -> LoadState:
        with self._lock:
            if cell_key not in self._states:
                raise KeyError(cell_key)
            return self._states[cell_key]

    def _notify(self) -> None:
        snap = self.snapshot()
        for observer in list(self._observers):
            try:
                observer.on_gallery_changed(snap)
            except Exception:
                _logger.exception("observer failed in on_gallery_changed")

    def _notify_page_error(self, error: PageLoadError) -> None:
        for observer in list(self._observers):
            try:
                observer.on_page_error(error)
            except Exception:
                _logger.exception("observer failed in on_page_error")

    # ---- pages ----

    def load_page(self, page_number: int) -> Future | None:
        """Start loading ``page_number``; None if that page is already in flight.

        The returned future resolves to the list of descriptors once the
        result has been applied, to a PageLoadError on failure, or to None when
        a reload of page 1 superseded it.
        """
        if page_number < 1:
            raise ValueError(f"page_number must be >= 1, got {page_number}")
        with self._lock:
            if page_number in self._pages_in_flight:
                _logger.debug("load_page skip(in-flight): page=%s", page_number)
                return None
            if page_number == 1:
                # A reload of the first page supersedes later pages still in flight.
                self._epoch += 1
            self._pages_in_flight[page_number] = self._epoch
            epoch = self._epoch
            self._page = replace(self._page, is_loading_next_page=True)
            self._notify()

        done: Future = Future()
        try:
            fut = self._page_pool.submit(self._catalog.fetch_page, page_number, self.page_size)
        except RuntimeError as exc:
            fut = Future()
            fut.set_exception(GalleryError(f"controller is shut down: {exc}"))
        fut.add_done_callback(partial(self._on_page_done, page_number, epoch, done))
        return done

    def load_next_page(self) -> Future | None:
        with self._lock:
            if self._page.reached_end:
                return None
            nxt = max(self._loaded_pages) + 1 if self._loaded_pages else 1
        return self.load_page(nxt)

    def _on_page_done(self, page_number: int, epoch: int, done: Future, fut: Future) -> None:
        exc = GalleryError("page load cancelled") if fut.cancelled() else fut.exception()
        result: object
        with self._lock:
            self._pages_in_flight.pop(page_number, None)
            loading = bool(self._pages_in_flight)
            if epoch != self._epoch:
                # Superseded by a reload of page 1: neither data nor errors apply.
                metrics.inc("controller.stale_pages")
                _logger.debug("page result stale: page=%s epoch=%s latest=%s", page_number, epoch, self._epoch)
                self._page = replace(self._page, is_loading_next_page=loading)
                self._notify()
                result = None
            elif exc is not None:
                cause = exc if isinstance(exc, GalleryError) else GalleryError(str(exc))
                if not isinstance(exc, GalleryError):
                    _logger.error("unexpected page load failure: page=%s", page_number, exc_info=exc)
                error = PageLoadError(page_number, cause)
                _logger.warning("page load failed: %s", error)
                metrics.inc("controller.page_failures")
                self._page = replace(self._page, is_loading_next_page=loading)
                self._notify()
                self._notify_page_error(error)
                result = error
            else:
                descriptors = list(fut.result())
                self._apply_page(page_number, descriptors, loading)
                self._notify()
                result = descriptors
        done.set_result(result)

    def _apply_page(self, page_number: int, descriptors: list[ImageDescriptor], loading: bool) -> None:
        if not descriptors:
            # An empty page is treated as the end of the catalog.
            _logger.info("page %s is empty; end of catalog", page_number)
            self._page = replace(self._page, is_loading_next_page=loading, reached_end=True)
            return

        if page_number == 1:
            for cell in self._cells:
                self._supersede(cell.key)
            self._cells = []
            self._cell_index = {}
            self._states = {}
            self._loaded_pages = set()
        else:
            kept = [c for c in self._cells if c.page_number != page_number]
            for cell in self._cells:
                if cell.page_number == page_number:
                    self._supersede(cell.key)
                    self._cell_index.pop(cell.key, None)
                    self._states.pop(cell.key, None)
            self._cells = kept

        for desc in descriptors:
            key = Cell.make_key(page_number, desc.id)
            if key in self._cell_index:
                # Ids are unique within a page; keep the first.
                _logger.debug("duplicate id within page dropped: page=%s id=%s", page_number, desc.id)
                continue
            cell = Cell(key=key, descriptor=desc, page_number=page_number)
            self._cells.append(cell)
            self._cell_index[key] = cell
            self._states[key] = NOT_REQUESTED

        self._loaded_pages.add(page_number)
        self._page = PageState(
            page_number=max(self._loaded_pages),
            descriptors=tuple(c.descriptor for c in self._cells),
            is_loading_next_page=loading,
            reached_end=False,
        )

    def _supersede(self, cell_key: str) -> None:
        self._generation[cell_key] = self._generation.get(cell_key, 0) + 1
        pending = self._pending.pop(cell_key, None)
        if pending is not None and not pending.done():
            pending.set_result(None)

    # ---- images ----

    def load_image(self, cell_key: str) -> Future | None:
        """Load the image for a cell unless it is already Loading or Loaded.

        Returns a future resolving to the cell's terminal LoadState. Redundant
        calls while Loading receive the same future as the first caller.
        """
        with self._lock:
            if cell_key not in self._cell_index:
                raise KeyError(cell_key)
            state = self._states[cell_key]
            if isinstance(state, Loading):
                _logger.debug("load_image skip(loading): cell=%s", cell_key)
                return self._pending.get(cell_key)
            if isinstance(state, Loaded):
                return _completed(state)
            return self._start_fetch(self._cell_index[cell_key])

    def retry(self, cell_key: str) -> Future | None:
        """Re-fetch a Failed cell. Any other state is left alone and None returned."""
        with self._lock:
            if cell_key not in self._cell_index:
                raise KeyError(cell_key)
            if not isinstance(self._states[cell_key], Failed):
                _logger.debug("retry rejected: cell=%s state=%s", cell_key, self._states[cell_key])
                return None
            metrics.inc("controller.retries")
            return self._start_fetch(self._cell_index[cell_key])

    def _start_fetch(self, cell: Cell) -> Future:
        gen = self._generation.get(cell.key, 0) + 1
        self._generation[cell.key] = gen
        self._states[cell.key] = LOADING
        done: Future = Future()
        self._pending[cell.key] = done
        self._notify()
        fut = self._fetcher.submit(cell.descriptor)
        fut.add_done_callback(partial(self._on_image_done, cell.key, gen, done))
        return done

    def _on_image_done(self, cell_key: str, gen: int, done: Future, fut: Future) -> None:
        exc = fut.exception()
        with self._lock:
            if self._generation.get(cell_key) != gen or cell_key not in self._cell_index:
                metrics.inc("controller.stale_results")
                _logger.debug("image result stale: cell=%s gen=%s latest=%s", cell_key, gen, self._generation.get(cell_key))
                state: LoadState | None = None
            else:
                if exc is None:
                    state = Loaded(fut.result())
                else:
                    kind = exc.kind if isinstance(exc, GalleryError) else ErrorKind.UNKNOWN
                    _logger.debug("image load failed: cell=%s err=%s", cell_key, exc)
                    state = Failed(kind, str(exc))
                self._states[cell_key] = state
                if self._pending.get(cell_key) is done:
                    del self._pending[cell_key]
                self._notify()
            if not done.done():
                done.set_result(state)

    def shutdown(self, wait: bool = False) -> None:
        self._page_pool.shutdown(wait=wait, cancel_futures=True)
