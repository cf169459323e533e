"""Headless gallery run: load one catalog page and fetch every image.

    python -m photo_gallery --page 2 --limit 20 --log-level debug
"""

from __future__ import annotations

import argparse
import os
import sys
from concurrent.futures import wait

from photo_gallery.app.backend import GalleryBackend
from photo_gallery.image_engine.errors import PageLoadError
from photo_gallery.image_engine.metrics import metrics
from photo_gallery.image_engine.models import Failed, Loaded
from photo_gallery.logger import get_logger, setup_logger
from photo_gallery.settings_manager import SettingsManager


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="photo_gallery", description="Photo gallery loader")
    parser.add_argument("--page", type=int, default=1, help="Catalog page to load")
    parser.add_argument("--limit", type=int, help="Page size")
    parser.add_argument("--base-url", help="Catalog service base URL")
    parser.add_argument("--cache-dir", help="Directory for the persistent cache")
    parser.add_argument("--no-disk-cache", action="store_true", help="Keep the cache in memory only")
    parser.add_argument("--settings", help="Path to settings.json")
    parser.add_argument("--log-level", help="Set log level")
    parser.add_argument("--log-cats", help="Set log categories")
    return parser


def _apply_args(settings: SettingsManager, args: argparse.Namespace) -> None:
    # Command-line values override the file for this run only; nothing is saved.
    if args.limit:
        settings.data["page_size"] = args.limit
    if args.base_url:
        settings.data["catalog_base_url"] = args.base_url
    if args.cache_dir:
        settings.data["cache_dir"] = args.cache_dir


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    if args.log_level:
        os.environ["PHOTO_GALLERY_LOG_LEVEL"] = args.log_level
    if args.log_cats:
        os.environ["PHOTO_GALLERY_LOG_CATS"] = args.log_cats
    setup_logger()
    logger = get_logger("main")

    settings = SettingsManager(args.settings)
    _apply_args(settings, args)

    with GalleryBackend(settings, persistent=not args.no_disk_cache) as backend:
        page_future = backend.controller.load_page(args.page)
        if page_future is None:
            return 1
        result = page_future.result()
        if result is None:
            logger.warning("page %s was superseded before it finished", args.page)
            return 1
        if isinstance(result, PageLoadError):
            logger.error("%s", result)
            return 1
        if not result:
            print(f"page {args.page}: no images")
            return 0

        futures = []
        for key, _state in backend.controller.cells():
            fut = backend.controller.load_image(key)
            if fut is not None:
                futures.append(fut)
        wait(futures)

        loaded = failed = 0
        for key, state in backend.controller.cells():
            if isinstance(state, Loaded):
                loaded += 1
                print(f"{key}\tloaded\t{state.size_bytes} bytes")
            elif isinstance(state, Failed):
                failed += 1
                url = backend.controller.cell(key).descriptor.source_url
                print(f"{key}\tfailed\t{state.error_kind.value}: {state.message}\t{url}")
        cache = metrics.counters("cache.")
        print(
            f"loaded={loaded} failed={failed} "
            f"network={metrics.count('fetcher.network_requests')} "
            f"memory_hits={cache.get('cache.memory_hit', 0)} "
            f"disk_hits={cache.get('cache.disk_hit', 0)}"
        )
        return 0 if failed == 0 else 2


if __name__ == "__main__":
    sys.exit(main())
