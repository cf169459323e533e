from __future__ import annotations

import sqlite3
from collections.abc import Callable

from ..metrics import metrics

# Migration function signature: (conn: sqlite3.Connection) -> None
MigrationFn = Callable[[sqlite3.Connection], None]


def _upgrade_to_1(conn: sqlite3.Connection) -> None:
    conn.execute("""
        CREATE TABLE IF NOT EXISTS images (
            key TEXT PRIMARY KEY,
            data BLOB NOT NULL,
            size_bytes INTEGER NOT NULL,
            last_accessed REAL NOT NULL,
            access_seq INTEGER NOT NULL,
            created_at REAL NOT NULL
        )
    """)
    conn.execute("CREATE INDEX IF NOT EXISTS idx_images_access_seq ON images(access_seq)")
    conn.execute("PRAGMA user_version = 1")


MIGRATIONS_UPGRADE: dict[int, MigrationFn] = {1: _upgrade_to_1}


def get_latest_version() -> int:
    return max(MIGRATIONS_UPGRADE.keys()) if MIGRATIONS_UPGRADE else 0


def get_user_version(conn: sqlite3.Connection) -> int:
    row = conn.execute("PRAGMA user_version").fetchone()
    return int(row[0]) if row else 0


def apply_migrations(conn: sqlite3.Connection) -> None:
    """Bring the cache DB to the latest user_version.

    A DB written by a newer build is dropped and recreated; the cache holds
    nothing that cannot be fetched again.
    """
    current = get_user_version(conn)
    latest = get_latest_version()

    if current == latest:
        return

    if current > latest:
        conn.execute("DROP TABLE IF EXISTS images")
        current = 0
        metrics.inc("migrations.reset")

    for v in range(current + 1, latest + 1):
        fn = MIGRATIONS_UPGRADE.get(v)
        if fn:
            with metrics.timed(f"migrations.apply_v{v}_duration"):
                fn(conn)
            metrics.inc(f"migrations.applied_v{v}")
