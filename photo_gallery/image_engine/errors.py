"""Error taxonomy for the loading pipeline.

Catalog and fetch errors are raised to the controller, which turns them into
observable states. ``StorageError`` never leaves the cache store.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    NETWORK = "network"
    PARSE = "parse"
    FETCH = "fetch"
    STORAGE = "storage"
    UNKNOWN = "unknown"


class GalleryError(Exception):
    """Base exception for the gallery core."""

    kind: ErrorKind = ErrorKind.UNKNOWN


class NetworkError(GalleryError):
    """No connectivity, timeout, DNS failure or an unusable HTTP status."""

    kind = ErrorKind.NETWORK


class ParseError(GalleryError):
    """The catalog response body is not a JSON array."""

    kind = ErrorKind.PARSE


class StorageError(GalleryError):
    """Persistent cache I/O failed. Always non-fatal."""

    kind = ErrorKind.STORAGE


class FetchError(GalleryError):
    """Image bytes could not be fetched.

    Attributes:
        url: The source URL that was requested.
        cause: The underlying exception, when there is one.
    """

    kind = ErrorKind.FETCH

    def __init__(self, url: str, message: str, cause: BaseException | None = None) -> None:
        self.url = url
        self.cause = cause
        super().__init__(f"{message} ({url})")


class PageLoadError(GalleryError):
    """A catalog page failed to load; wraps a NetworkError or ParseError."""

    def __init__(self, page_number: int, cause: GalleryError) -> None:
        self.page_number = page_number
        self.cause = cause
        self.kind = cause.kind
        super().__init__(f"page {page_number} failed: {cause}")
