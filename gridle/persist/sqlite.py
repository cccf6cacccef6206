from __future__ import annotations

import json
import logging
import queue
import sqlite3
import threading
import time
from collections.abc import Callable

from gridle.persist.base import Persistence

logger = logging.getLogger(__name__)


class SqlitePersistence(Persistence):
    def __init__(self, db_path: str, history_max_rows: int = 0) -> None:
        self.db_path = db_path
        self._pragmas = (
            "PRAGMA journal_mode=WAL",
            "PRAGMA synchronous=NORMAL",
            "PRAGMA busy_timeout=5000",
        )
        self._local = threading.local()
        self._history_max_rows = history_max_rows
        self._init_db()
        self._write_queue: queue.Queue[
            tuple[Callable[[sqlite3.Connection], object], threading.Event, dict[str, object]] | None
        ] = queue.Queue()
        self._writer_stop = threading.Event()
        self._writer_thread = threading.Thread(
            target=self._writer_loop, name="sqlite-writer", daemon=True
        )
        self._writer_thread.start()

    def _writer_loop(self) -> None:
        conn = sqlite3.connect(self.db_path)
        self._apply_pragmas(conn)
        while True:
            task = self._write_queue.get()
            if task is None:
                self._write_queue.task_done()
                break
            fn, event, holder = task
            try:
                holder["result"] = fn(conn)
                conn.commit()
            except Exception as exc:
                conn.rollback()
                holder["error"] = exc
                logger.exception("SQLite write failed")
            finally:
                event.set()
                self._write_queue.task_done()
        conn.close()

    def _run_write(self, fn: Callable[[sqlite3.Connection], object], wait: bool = True):
        if self._writer_stop.is_set():
            raise RuntimeError("Persistence writer stopped")
        event = threading.Event()
        holder: dict[str, object] = {"result": None, "error": None}
        self._write_queue.put((fn, event, holder))
        if not wait:
            return None
        event.wait()
        if holder["error"] is not None:
            raise holder["error"]
        return holder["result"]

    def flush(self) -> None:
        self._write_queue.join()

    def _init_db(self) -> None:
        conn = self._get_conn()
        conn.execute("""
                CREATE TABLE IF NOT EXISTS challenge_cache (
                    date TEXT PRIMARY KEY,
                    payload TEXT NOT NULL,
                    created_at INTEGER NOT NULL
                )
                """)
        conn.execute("""
                CREATE TABLE IF NOT EXISTS streak (
                    id INTEGER PRIMARY KEY CHECK (id = 1),
                    streak INTEGER NOT NULL DEFAULT 0,
                    last_win_date TEXT,
                    last_win_ms INTEGER
                )
                """)
        conn.execute("""
                CREATE TABLE IF NOT EXISTS attempt_history (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    attempt_id TEXT NOT NULL UNIQUE,
                    date TEXT NOT NULL,
                    status TEXT NOT NULL,
                    elapsed_ms INTEGER NOT NULL,
                    ticks INTEGER NOT NULL,
                    opponents_left INTEGER NOT NULL,
                    created_at INTEGER NOT NULL
                )
                """)
        conn.execute("CREATE INDEX IF NOT EXISTS idx_history_date ON attempt_history(date)")
        conn.commit()

    def _apply_pragmas(self, conn: sqlite3.Connection) -> None:
        for pragma in self._pragmas:
            conn.execute(pragma)

    def _get_conn(self) -> sqlite3.Connection:
        conn = getattr(self._local, "conn", None)
        if conn is None:
            conn = sqlite3.connect(self.db_path)
            self._apply_pragmas(conn)
            self._local.conn = conn
        return conn

    def close(self) -> None:
        self.flush()
        self._writer_stop.set()
        self._write_queue.put(None)
        self._writer_thread.join(timeout=2)
        conn = getattr(self._local, "conn", None)
        if conn is not None:
            conn.close()
            self._local.conn = None

    def get_cached_challenge(self, date: str) -> dict | None:
        conn = self._get_conn()
        row = conn.execute(
            "SELECT payload FROM challenge_cache WHERE date = ?", (date,)
        ).fetchone()
        if not row:
            return None
        try:
            payload = json.loads(row[0])
        except ValueError:
            logger.warning("Discarding undecodable cached challenge for %s", date)
            return None
        return payload if isinstance(payload, dict) else None

    def cache_challenge(self, date: str, payload: dict) -> None:
        encoded = json.dumps(payload, separators=(",", ":"), sort_keys=True)
        created_at = int(time.time())

        def _task(conn: sqlite3.Connection) -> None:
            conn.execute(
                "INSERT OR REPLACE INTO challenge_cache(date, payload, created_at) VALUES (?, ?, ?)",
                (date, encoded, created_at),
            )

        self._run_write(_task, wait=True)

    def load_streak(self) -> dict | None:
        conn = self._get_conn()
        row = conn.execute(
            "SELECT streak, last_win_date, last_win_ms FROM streak WHERE id = 1"
        ).fetchone()
        if not row:
            return None
        return {"streak": row[0], "last_win_date": row[1], "last_win_ms": row[2]}

    def save_streak(self, streak: int, last_win_date: str, last_win_ms: int) -> None:
        def _task(conn: sqlite3.Connection) -> None:
            conn.execute(
                "INSERT OR REPLACE INTO streak(id, streak, last_win_date, last_win_ms) "
                "VALUES (1, ?, ?, ?)",
                (streak, last_win_date, last_win_ms),
            )

        self._run_write(_task, wait=False)

    def record_attempt(self, result: dict) -> None:
        created_at = int(time.time())
        row = (
            str(result["attempt_id"]),
            str(result["date"]),
            str(result["status"]),
            int(result.get("elapsed_ms", 0)),
            int(result.get("ticks", 0)),
            int(result.get("opponents_left", 0)),
            created_at,
        )

        def _task(conn: sqlite3.Connection) -> None:
            conn.execute(
                "INSERT OR IGNORE INTO attempt_history(attempt_id, date, status, elapsed_ms, "
                "ticks, opponents_left, created_at) VALUES (?, ?, ?, ?, ?, ?, ?)",
                row,
            )
            self._enforce_history_limit(conn)

        self._run_write(_task, wait=False)

    def list_attempts(self, limit: int = 50) -> list[dict]:
        conn = self._get_conn()
        rows = conn.execute(
            "SELECT attempt_id, date, status, elapsed_ms, ticks, opponents_left, created_at "
            "FROM attempt_history ORDER BY id DESC LIMIT ?",
            (limit,),
        ).fetchall()
        return [
            {
                "attempt_id": r[0],
                "date": r[1],
                "status": r[2],
                "elapsed_ms": r[3],
                "ticks": r[4],
                "opponents_left": r[5],
                "created_at": r[6],
            }
            for r in rows
        ]

    def _enforce_history_limit(self, conn: sqlite3.Connection) -> None:
        if self._history_max_rows <= 0:
            return
        conn.execute(
            "DELETE FROM attempt_history WHERE id NOT IN "
            "(SELECT id FROM attempt_history ORDER BY id DESC LIMIT ?)",
            (self._history_max_rows,),
        )
