"""Persistent image byte store backed by SQLite.

Rows are keyed by source URL. ``access_seq`` is a monotonically increasing
journal of accesses; eviction removes the lowest sequence numbers first until
the stored total fits the budget. Every statement goes through a
``DbOperator`` so writes are serialized on one worker thread.
"""

from __future__ import annotations

import sqlite3
import time
from concurrent.futures import TimeoutError as FutureTimeoutError
from pathlib import Path

from photo_gallery.logger import get_logger

from ..errors import StorageError
from ..metrics import metrics
from .db_operator import DbOperator
from .migrations import apply_migrations

_logger = get_logger("disk_cache")

_NEXT_SEQ = "(SELECT COALESCE(MAX(access_seq), 0) + 1 FROM images)"


class DiskCache:
    """Size-bounded key -> bytes store that survives process restart."""

    def __init__(self, db_path: Path | str, max_bytes: int, timeout: float = 10.0):
        self.db_path = Path(db_path)
        self.max_bytes = int(max_bytes)
        self._timeout = timeout
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageError(f"cannot create cache dir {self.db_path.parent}: {exc}") from exc
        self._operator = DbOperator(self.db_path)
        self._wait(self._operator.schedule_write(apply_migrations), "init")
        _logger.debug("disk cache initialized: %s budget=%s", self.db_path, self.max_bytes)

    def _wait(self, fut, op: str):
        try:
            return fut.result(timeout=self._timeout)
        except (sqlite3.Error, OSError, RuntimeError, FutureTimeoutError) as exc:
            metrics.inc("disk_cache.errors")
            raise StorageError(f"disk cache {op} failed: {exc}") from exc

    def get(self, key: str) -> bytes | None:
        def _do(conn: sqlite3.Connection, key: str) -> bytes | None:
            row = conn.execute("SELECT data FROM images WHERE key = ?", (key,)).fetchone()
            if row is None:
                return None
            conn.execute(
                f"UPDATE images SET last_accessed = ?, access_seq = {_NEXT_SEQ} WHERE key = ?",
                (time.time(), key),
            )
            return bytes(row[0])

        # Touching access_seq is a write, so this runs as one.
        return self._wait(self._operator.schedule_write(_do, key), "get")

    def put(self, key: str, data: bytes) -> int:
        """Upsert ``key`` and evict older rows. Returns the number evicted."""
        size = len(data)
        if size > self.max_bytes:
            _logger.debug("disk put skipped: key=%s size=%s budget=%s", key, size, self.max_bytes)
            return 0

        def _do(conn: sqlite3.Connection, key: str, data: bytes, budget: int) -> int:
            now = time.time()
            conn.execute(
                f"""
                INSERT INTO images (key, data, size_bytes, last_accessed, access_seq, created_at)
                VALUES (?, ?, ?, ?, {_NEXT_SEQ}, ?)
                ON CONFLICT(key) DO UPDATE SET
                    data = excluded.data,
                    size_bytes = excluded.size_bytes,
                    last_accessed = excluded.last_accessed,
                    access_seq = excluded.access_seq
                """,
                (key, sqlite3.Binary(data), len(data), now, now),
            )
            total = int(conn.execute("SELECT COALESCE(SUM(size_bytes), 0) FROM images").fetchone()[0])
            evicted = 0
            if total > budget:
                rows = conn.execute(
                    "SELECT key, size_bytes FROM images WHERE key != ? ORDER BY access_seq ASC",
                    (key,),
                ).fetchall()
                for victim, victim_size in rows:
                    if total <= budget:
                        break
                    conn.execute("DELETE FROM images WHERE key = ?", (victim,))
                    total -= int(victim_size)
                    evicted += 1
            return evicted

        evicted = self._wait(self._operator.schedule_write(_do, key, bytes(data), self.max_bytes), "put")
        if evicted:
            metrics.inc("disk_cache.evictions", evicted)
            _logger.debug("disk evicted %d entries for key=%s", evicted, key)
        return evicted

    def delete(self, key: str) -> None:
        def _do(conn: sqlite3.Connection, key: str) -> None:
            conn.execute("DELETE FROM images WHERE key = ?", (key,))

        self._wait(self._operator.schedule_write(_do, key), "delete")

    def clear(self) -> None:
        def _do(conn: sqlite3.Connection) -> None:
            conn.execute("DELETE FROM images")

        self._wait(self._operator.schedule_write(_do), "clear")

    def keys(self) -> list[str]:
        """Keys ordered least- to most-recently accessed."""

        def _do(conn: sqlite3.Connection) -> list[str]:
            return [r[0] for r in conn.execute("SELECT key FROM images ORDER BY access_seq ASC")]

        return self._wait(self._operator.schedule_read(_do), "keys")

    def total_bytes(self) -> int:
        def _do(conn: sqlite3.Connection) -> int:
            return int(conn.execute("SELECT COALESCE(SUM(size_bytes), 0) FROM images").fetchone()[0])

        return self._wait(self._operator.schedule_read(_do), "total_bytes")

    def vacuum(self) -> None:
        def _do(conn: sqlite3.Connection) -> None:
            conn.execute("VACUUM")

        self._wait(self._operator.schedule_write(_do), "vacuum")

    def close(self) -> None:
        self._operator.shutdown(wait=True)
