from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

from .logger import get_logger

_logger = get_logger("settings")


def default_settings_path() -> str:
    base = os.getenv("XDG_CONFIG_HOME") or os.path.join(os.path.expanduser("~"), ".config")
    return os.path.join(base, "photo_gallery", "settings.json")


def default_cache_root() -> str:
    return os.getenv("XDG_CACHE_HOME") or os.path.join(os.path.expanduser("~"), ".cache")


class SettingsManager:
    def __init__(self, settings_path: str | None = None):
        self.settings_path = os.path.abspath(settings_path or default_settings_path())
        self._settings: dict[str, Any] = {}
        self.load()

    DEFAULTS: dict[str, Any] = {
        "catalog_base_url": "https://picsum.photos",
        "page_size": 20,
        "memory_cache_bytes": 32 * 1024 * 1024,
        "disk_cache_bytes": 256 * 1024 * 1024,
        "cache_dir_name": "photo_gallery",
        "request_timeout": 10.0,
        "max_workers": 4,
    }

    ENV_OVERRIDES: dict[str, str] = {
        "catalog_base_url": "PHOTO_GALLERY_BASE_URL",
        "cache_dir": "PHOTO_GALLERY_CACHE_DIR",
    }

    def load(self) -> None:
        try:
            if os.path.exists(self.settings_path):
                with open(self.settings_path, encoding="utf-8") as f:
                    data = json.load(f)
                    if isinstance(data, dict):
                        self._settings = data
                        _logger.debug("settings loaded: %s", self.settings_path)
                        return
                    _logger.warning("settings file is not a JSON object: %s", self.settings_path)
        except (OSError, ValueError) as e:
            _logger.warning("settings load failed: %s", e)
        self._settings = {}

    def save(self) -> None:
        try:
            os.makedirs(os.path.dirname(self.settings_path), exist_ok=True)
            with open(self.settings_path, "w", encoding="utf-8") as f:
                json.dump(self._settings, f, ensure_ascii=False, indent=2)
            _logger.debug("settings saved: %s", self.settings_path)
        except OSError as e:
            _logger.error("settings save failed: %s", e)

    def get(self, key: str, default: Any = None) -> Any:
        env_name = self.ENV_OVERRIDES.get(key)
        if env_name:
            env_val = (os.getenv(env_name) or "").strip()
            if env_val:
                return env_val
        if key in self._settings:
            return self._settings[key]
        if default is not None:
            return default
        return self.DEFAULTS.get(key)

    def has(self, key: str) -> bool:
        return key in self._settings

    def set(self, key: str, value: Any) -> None:
        self._settings[key] = value
        self.save()

    @property
    def data(self) -> dict[str, Any]:
        return self._settings

    def _positive_int(self, key: str) -> int:
        try:
            value = int(self.get(key))
            if value > 0:
                return value
        except (TypeError, ValueError):
            pass
        _logger.warning("invalid %s=%r; using default", key, self._settings.get(key))
        return int(self.DEFAULTS[key])

    @property
    def catalog_base_url(self) -> str:
        return str(self.get("catalog_base_url")).rstrip("/")

    @property
    def page_size(self) -> int:
        return self._positive_int("page_size")

    @property
    def memory_cache_bytes(self) -> int:
        return self._positive_int("memory_cache_bytes")

    @property
    def disk_cache_bytes(self) -> int:
        try:
            return max(0, int(self.get("disk_cache_bytes")))
        except (TypeError, ValueError):
            return int(self.DEFAULTS["disk_cache_bytes"])

    @property
    def max_workers(self) -> int:
        return self._positive_int("max_workers")

    @property
    def request_timeout(self) -> float:
        try:
            value = float(self.get("request_timeout"))
            if value > 0:
                return value
        except (TypeError, ValueError):
            pass
        return float(self.DEFAULTS["request_timeout"])

    @property
    def cache_dir(self) -> Path:
        explicit = self.get("cache_dir")
        if isinstance(explicit, str) and explicit:
            return Path(explicit).expanduser()
        return Path(default_cache_root()) / str(self.get("cache_dir_name"))
