from __future__ import annotations

from PySide6.QtCore import Property, QObject, Signal

from photo_gallery.image_engine.errors import PageLoadError
from photo_gallery.image_engine.models import Failed, GallerySnapshot, Loaded, Loading, NotRequested


def state_name(state: object) -> str:
    if isinstance(state, Loaded):
        return "loaded"
    if isinstance(state, Loading):
        return "loading"
    if isinstance(state, Failed):
        return "failed"
    if isinstance(state, NotRequested):
        return "idle"
    return "unknown"


class GalleryState(QObject):
    """State bound by the gallery grid UI.

    Subscribe an instance to a GalleryController; every controller transition
    is re-emitted as Qt signals. Signals may fire from worker threads, so
    widgets should connect with the default (auto/queued) connection type.
    """

    cellsChanged = Signal(list)  # [(cell_key, state_name), ...]
    cellLoaded = Signal(str, object)  # cell_key, image bytes
    cellFailed = Signal(str, str)
    pageLoadingChanged = Signal(bool)
    pageNumberChanged = Signal(int)
    reachedEndChanged = Signal(bool)
    pageErrorChanged = Signal(str)

    def __init__(self, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self._cells: list[tuple[str, str]] = []
        self._page_loading = False
        self._page_number = 1
        self._reached_end = False
        self._page_error = ""

    # ---- read-only properties (mutate via controller notifications) ----
    def _get_page_loading(self) -> bool:
        return bool(self._page_loading)

    pageLoading = Property(bool, _get_page_loading, notify=pageLoadingChanged)  # type: ignore[arg-type]

    def _get_page_number(self) -> int:
        return int(self._page_number)

    pageNumber = Property(int, _get_page_number, notify=pageNumberChanged)  # type: ignore[arg-type]

    def _get_reached_end(self) -> bool:
        return bool(self._reached_end)

    reachedEnd = Property(bool, _get_reached_end, notify=reachedEndChanged)  # type: ignore[arg-type]

    def _get_page_error(self) -> str:
        return str(self._page_error)

    pageError = Property(str, _get_page_error, notify=pageErrorChanged)  # type: ignore[arg-type]

    @property
    def cells(self) -> list[tuple[str, str]]:
        return list(self._cells)

    # ---- observer protocol ----
    def on_gallery_changed(self, snapshot: GallerySnapshot) -> None:
        previous = dict(self._cells)
        cells = [(key, state_name(state)) for key, state in snapshot.cells]
        if cells != self._cells:
            self._cells = cells
            self.cellsChanged.emit(list(cells))
        for key, state in snapshot.cells:
            name = state_name(state)
            if previous.get(key) == name:
                continue
            if isinstance(state, Loaded):
                self.cellLoaded.emit(key, state.data)
            elif isinstance(state, Failed):
                self.cellFailed.emit(key, state.error_kind.value)

        page = snapshot.page
        self._set_page_loading(page.is_loading_next_page)
        self._set_page_number(page.page_number)
        self._set_reached_end(page.reached_end)
        if page.is_loading_next_page:
            self._set_page_error("")

    def on_page_error(self, error: PageLoadError) -> None:
        self._set_page_error(str(error))

    # ---- internal mutation helpers ----
    def _set_page_loading(self, value: bool) -> None:
        v = bool(value)
        if v == self._page_loading:
            return
        self._page_loading = v
        self.pageLoadingChanged.emit(v)

    def _set_page_number(self, value: int) -> None:
        n = int(value)
        if n == self._page_number:
            return
        self._page_number = n
        self.pageNumberChanged.emit(n)

    def _set_reached_end(self, value: bool) -> None:
        v = bool(value)
        if v == self._reached_end:
            return
        self._reached_end = v
        self.reachedEndChanged.emit(v)

    def _set_page_error(self, text: str) -> None:
        t = str(text)
        if t == self._page_error:
            return
        self._page_error = t
        self.pageErrorChanged.emit(t)
