import sqlite3
from pathlib import Path

import pytest

from photo_gallery.image_engine.db.db_operator import DbOperator
from photo_gallery.image_engine.metrics import metrics


def test_db_operator_runs_writes_in_order(tmp_path: Path):
    op = DbOperator(tmp_path / "order.db")

    def insert(conn, v):
        conn.execute("CREATE TABLE IF NOT EXISTS t (id INTEGER PRIMARY KEY, value INTEGER)")
        conn.execute("INSERT INTO t (value) VALUES (?)", (v,))
        return v

    futures = [op.schedule_write(insert, i) for i in range(5)]
    assert [f.result(timeout=2) for f in futures] == [0, 1, 2, 3, 4]

    rows = op.schedule_read(lambda conn: [r[0] for r in conn.execute("SELECT value FROM t ORDER BY id")])
    assert rows.result(timeout=2) == [0, 1, 2, 3, 4]
    snap = metrics.snapshot()
    assert snap["counters"]["db_operator.write_queued"] == 5
    assert "db_operator.task_duration" in snap["timings"]
    op.shutdown()


def test_db_operator_retries_transient_operational_error(tmp_path: Path):
    op = DbOperator(tmp_path / "retry.db")
    calls = {"count": 0}

    def flaky(conn):
        calls["count"] += 1
        if calls["count"] == 1:
            raise sqlite3.OperationalError("database is locked")
        return "ok"

    assert op.schedule_write(flaky, retries=3).result(timeout=5) == "ok"
    assert metrics.count("db_operator.retries") >= 1
    op.shutdown()


def test_db_operator_failed_task_is_rolled_back(tmp_path: Path):
    op = DbOperator(tmp_path / "rollback.db")
    op.schedule_write(lambda conn: conn.execute("CREATE TABLE t (v INTEGER)")).result(timeout=2)

    def half_write(conn):
        conn.execute("INSERT INTO t (v) VALUES (1)")
        raise ValueError("boom")

    with pytest.raises(ValueError):
        op.schedule_write(half_write).result(timeout=2)
    count = op.schedule_read(lambda conn: conn.execute("SELECT COUNT(*) FROM t").fetchone()[0])
    assert count.result(timeout=2) == 0
    op.shutdown()


def test_db_operator_shutdown_after_tasks(tmp_path: Path):
    op = DbOperator(tmp_path / "testdb.sqlite")

    def write_fn(conn, idx):
        conn.execute("CREATE TABLE IF NOT EXISTS t (i INTEGER)")
        conn.execute("INSERT INTO t (i) VALUES (?)", (idx,))

    futures = [op.schedule_write(write_fn, i) for i in range(50)]

    # Queued tasks are drained before the worker stops.
    op.shutdown(wait=True)
    assert not op.is_alive()
    assert all(f.done() and f.exception() is None for f in futures)


def test_db_operator_rejects_tasks_after_shutdown(tmp_path: Path):
    op = DbOperator(tmp_path / "closed.db")
    op.shutdown()
    fut = op.schedule_write(lambda conn: None)
    with pytest.raises(RuntimeError):
        fut.result(timeout=1)
