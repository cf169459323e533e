"""Value types shared by the catalog client, fetcher and controller."""

from __future__ import annotations

from dataclasses import dataclass, field

from .errors import ErrorKind


@dataclass(frozen=True)
class ImageDescriptor:
    id: str
    source_url: str
    # Informational catalog fields; never required.
    author: str | None = None
    width: int | None = None
    height: int | None = None


@dataclass
class CacheEntry:
    key: str
    data: bytes
    size_bytes: int
    last_accessed: float


# ---- LoadState variants ----


@dataclass(frozen=True)
class NotRequested:
    pass


@dataclass(frozen=True)
class Loading:
    pass


@dataclass(frozen=True)
class Loaded:
    data: bytes = field(repr=False)

    @property
    def size_bytes(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class Failed:
    error_kind: ErrorKind
    message: str = ""


LoadState = NotRequested | Loading | Loaded | Failed

NOT_REQUESTED = NotRequested()
LOADING = Loading()


@dataclass(frozen=True)
class Cell:
    """One grid position bound to a descriptor.

    The key is ``"<page>:<descriptor id>"`` so the same descriptor id on two
    pages yields two independent cells.
    """

    key: str
    descriptor: ImageDescriptor
    page_number: int

    @staticmethod
    def make_key(page_number: int, descriptor_id: str) -> str:
        return f"{int(page_number)}:{descriptor_id}"


@dataclass(frozen=True)
class PageState:
    page_number: int = 1
    descriptors: tuple[ImageDescriptor, ...] = ()
    is_loading_next_page: bool = False
    reached_end: bool = False


@dataclass(frozen=True)
class GallerySnapshot:
    """What observers receive on every transition."""

    page: PageState
    cells: tuple[tuple[str, LoadState], ...]

    def state_of(self, cell_key: str) -> LoadState | None:
        for key, state in self.cells:
            if key == cell_key:
                return state
        return None
