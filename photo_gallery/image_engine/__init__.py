"""Image Engine - loading pipeline for the gallery.

This package provides the core data and loading functionality:
- Catalog paging (catalog_client)
- Image byte fetching with de-duplication (fetcher)
- Caching (memory_cache, cache_store, db)
- Per-cell load state (gallery_controller)

Usage:
    from photo_gallery.image_engine import CacheStore, CatalogClient, GalleryController, ImageFetcher

    controller = GalleryController(CatalogClient(client), ImageFetcher(client, CacheStore(32 << 20)))
    controller.subscribe(observer)
    controller.load_page(1)
    controller.load_image("1:0")
"""

from .cache_store import CacheStore
from .catalog_client import CatalogClient
from .fetcher import ImageFetcher
from .gallery_controller import GalleryController, GalleryObserver

__all__ = ["CacheStore", "CatalogClient", "GalleryController", "GalleryObserver", "ImageFetcher"]
