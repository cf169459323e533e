import io
import logging
import sys

from photo_gallery.logger import get_logger, setup_logger


def _stderr_handlers(logger: logging.Logger) -> list[logging.Handler]:
    return [h for h in logger.handlers if type(h) is logging.StreamHandler]


def test_setup_logger_keeps_single_stderr_handler(monkeypatch):
    monkeypatch.delenv("PHOTO_GALLERY_LOG_CATS", raising=False)
    setup_logger()
    logger = setup_logger()
    assert len(_stderr_handlers(logger)) == 1
    assert _stderr_handlers(logger)[0].stream is sys.stderr
    assert logger.propagate is False


def test_env_level_override(monkeypatch):
    monkeypatch.setenv("PHOTO_GALLERY_LOG_LEVEL", "debug")
    try:
        assert setup_logger().level == logging.DEBUG
    finally:
        monkeypatch.delenv("PHOTO_GALLERY_LOG_LEVEL")
        setup_logger()


def test_category_filter_passes_only_listed_children(monkeypatch):
    monkeypatch.setenv("PHOTO_GALLERY_LOG_CATS", "fetcher, cache_store")
    try:
        handler = _stderr_handlers(setup_logger())[0]
        fetcher_rec = get_logger("fetcher").makeRecord("photo_gallery.fetcher", logging.INFO, __file__, 1, "m", (), None)
        catalog_rec = get_logger("catalog").makeRecord("photo_gallery.catalog", logging.INFO, __file__, 1, "m", (), None)
        assert handler.filter(fetcher_rec)
        assert not handler.filter(catalog_rec)
    finally:
        monkeypatch.delenv("PHOTO_GALLERY_LOG_CATS")
        setup_logger()


def test_get_logger_returns_child():
    assert get_logger("controller").name == "photo_gallery.controller"
    assert get_logger().name == "photo_gallery"


def test_setup_logger_survives_closed_previous_stderr(monkeypatch):
    captured = io.StringIO()
    monkeypatch.setattr(sys, "stderr", captured)
    setup_logger()
    captured.close()
    monkeypatch.undo()

    logger = get_logger("main")
    logger.warning("still logging")

    handlers = _stderr_handlers(logging.getLogger("photo_gallery"))
    assert len(handlers) == 1
    assert handlers[0].stream is sys.stderr
