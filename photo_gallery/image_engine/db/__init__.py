"""SQLite-backed persistent tier of the image cache."""

from .db_operator import DbOperator
from .disk_cache import DiskCache

__all__ = [
    "DbOperator",
    "DiskCache",
]
