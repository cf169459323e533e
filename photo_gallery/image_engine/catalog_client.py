"""Paginated catalog client.

``GET {base_url}/v2/list?page=n&limit=m`` returns a JSON array of objects.
Each record needs an ``id`` and a ``download_url``; records missing either
are dropped and the rest of the page is kept.
"""

from __future__ import annotations

from typing import Any

import httpx

from photo_gallery.logger import get_logger

from .errors import NetworkError, ParseError
from .metrics import metrics
from .models import ImageDescriptor

_logger = get_logger("catalog")

DEFAULT_BASE_URL = "https://picsum.photos"
LIST_PATH = "/v2/list"


def _opt_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    return None


def parse_record(record: Any) -> ImageDescriptor | None:
    """Build a descriptor from one catalog record, or None if it is unusable."""
    if not isinstance(record, dict):
        return None
    raw_id = record.get("id")
    url = record.get("download_url")
    # bool is an int subclass; a true/false id is malformed.
    if isinstance(raw_id, bool) or not isinstance(raw_id, str | int):
        return None
    image_id = str(raw_id).strip()
    if not image_id:
        return None
    if not isinstance(url, str) or not url.strip():
        return None
    author = record.get("author")
    return ImageDescriptor(
        id=image_id,
        source_url=url.strip(),
        author=author if isinstance(author, str) else None,
        width=_opt_int(record.get("width")),
        height=_opt_int(record.get("height")),
    )


def parse_page(payload: Any) -> list[ImageDescriptor]:
    if not isinstance(payload, list):
        raise ParseError(f"expected a JSON array, got {type(payload).__name__}")
    descriptors: list[ImageDescriptor] = []
    dropped = 0
    for record in payload:
        desc = parse_record(record)
        if desc is None:
            dropped += 1
            continue
        descriptors.append(desc)
    if dropped:
        metrics.inc("catalog.records_dropped", dropped)
        _logger.debug("catalog page: dropped %d malformed records", dropped)
    return descriptors


class CatalogClient:
    """Stateless client for the catalog listing endpoint."""

    def __init__(self, client: httpx.Client, base_url: str = DEFAULT_BASE_URL):
        self._client = client
        self.base_url = base_url.rstrip("/")

    @property
    def list_url(self) -> str:
        return f"{self.base_url}{LIST_PATH}"

    def fetch_page(self, page_number: int, page_size: int) -> list[ImageDescriptor]:
        if page_number < 1:
            raise ValueError(f"page_number must be >= 1, got {page_number}")
        if page_size < 1:
            raise ValueError(f"page_size must be >= 1, got {page_size}")

        params = {"page": int(page_number), "limit": int(page_size)}
        _logger.debug("fetch_page: url=%s params=%s", self.list_url, params)
        metrics.inc("catalog.requests")
        try:
            with metrics.timed("catalog.fetch_page_duration"):
                response = self._client.get(self.list_url, params=params)
        except httpx.HTTPError as exc:
            raise NetworkError(f"catalog request failed: {exc}") from exc

        if not response.is_success:
            raise NetworkError(f"catalog returned HTTP {response.status_code}")

        if not response.content.strip():
            return []
        try:
            payload = response.json()
        except ValueError as exc:
            raise ParseError(f"catalog body is not JSON: {exc}") from exc

        descriptors = parse_page(payload)
        _logger.debug("fetch_page: page=%s got=%d", page_number, len(descriptors))
        return descriptors
