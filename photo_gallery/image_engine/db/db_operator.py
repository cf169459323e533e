from __future__ import annotations

import contextlib
import queue
import sqlite3
import threading
import time
from collections.abc import Callable
from concurrent.futures import Future
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from photo_gallery.logger import get_logger

from ..metrics import metrics

_logger = get_logger("db_operator")


@dataclass
class _DbTask:
    fn: Callable[..., Any]
    args: tuple
    kwargs: dict
    future: Future
    retries: int = 3


class DbOperator:
    """Serialized sqlite task queue.

    A single worker thread runs queued callables as ``fn(conn, *args)``
    against a fresh connection, so no two cache writes ever interleave. Each
    task is committed on success and rolled back on error; transient
    ``sqlite3.OperationalError`` (locked/busy) is retried with a short backoff.
    """

    def __init__(self, db_path: Path | str, busy_timeout_ms: int = 5000):
        self._db_path = Path(db_path)
        self._queue: queue.Queue[_DbTask] = queue.Queue()
        self._stop_event = threading.Event()
        self._busy_timeout_ms = int(busy_timeout_ms)
        self._thread = threading.Thread(target=self._worker, name="photo-gallery-db", daemon=True)
        self._thread.start()

    @property
    def db_path(self) -> Path:
        return self._db_path

    def _open_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
        try:
            conn.execute("PRAGMA journal_mode=WAL")
        except sqlite3.Error:
            _logger.debug("PRAGMA journal_mode=WAL failed", exc_info=True)
        conn.execute(f"PRAGMA busy_timeout = {int(self._busy_timeout_ms)}")
        return conn

    def _enqueue(self, fn: Callable[..., Any], args: tuple, kwargs: dict, retries: int) -> Future:
        fut: Future = Future()
        if self._stop_event.is_set():
            fut.set_exception(RuntimeError("DbOperator is shut down"))
            return fut
        self._queue.put(_DbTask(fn=fn, args=args, kwargs=kwargs, future=fut, retries=retries))
        return fut

    def schedule_write(self, fn: Callable[..., Any], *args, retries: int = 3, **kwargs) -> Future:
        metrics.inc("db_operator.write_queued")
        return self._enqueue(fn, args, kwargs, retries)

    def schedule_read(self, fn: Callable[..., Any], *args, **kwargs) -> Future:
        # Reads share the queue so they always observe completed writes.
        metrics.inc("db_operator.read_queued")
        return self._enqueue(fn, args, kwargs, 1)

    def _run(self, task: _DbTask) -> None:
        attempt = 0
        while True:
            conn = None
            try:
                with metrics.timed("db_operator.task_duration"):
                    conn = self._open_conn()
                    res = task.fn(conn, *task.args, **task.kwargs)
                    conn.commit()
                task.future.set_result(res)
                return
            except sqlite3.OperationalError as exc:
                if conn is not None:
                    with contextlib.suppress(sqlite3.Error):
                        conn.rollback()
                attempt += 1
                metrics.inc("db_operator.retries")
                if attempt > (task.retries or 0):
                    task.future.set_exception(exc)
                    return
                time.sleep(0.05 * attempt)
            except Exception as exc:
                if conn is not None:
                    with contextlib.suppress(sqlite3.Error):
                        conn.rollback()
                task.future.set_exception(exc)
                return
            finally:
                if conn is not None:
                    with contextlib.suppress(sqlite3.Error):
                        conn.close()

    def _worker(self) -> None:
        while not self._stop_event.is_set() or not self._queue.empty():
            try:
                task = self._queue.get(timeout=0.1)
            except queue.Empty:
                continue
            try:
                if task.future.set_running_or_notify_cancel():
                    self._run(task)
            finally:
                self._queue.task_done()

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting tasks; queued tasks are still drained."""
        self._stop_event.set()
        if wait:
            self._thread.join(timeout=5)

    def is_alive(self) -> bool:
        return self._thread.is_alive()
