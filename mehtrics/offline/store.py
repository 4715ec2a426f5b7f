"""mehtrics.offline.store

Durable local storage for queued mutations.

One SQLite file, many namespaces. Each namespace is an append-only FIFO keyed by
an autoincrement integer; rows leave only by explicit delete (replayed) or by a
move to the dead-letter table (given up on).

The schema is created on first use. If the file cannot be opened at all the store
reports ``available == False`` and every operation becomes a no-op.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from mehtrics.core.exceptions import QueueStoreError
from mehtrics.core.time import utc_now

logger = logging.getLogger(__name__)

STORE_VERSION = 1

SCHEMA = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY,
    applied_at TEXT DEFAULT (datetime('now'))
);

-- ============================================================
-- Pending mutations (FIFO per namespace by key)
-- ============================================================
CREATE TABLE IF NOT EXISTS offline_queue (
    key INTEGER PRIMARY KEY AUTOINCREMENT,
    namespace TEXT NOT NULL,
    kind TEXT NOT NULL,
    payload TEXT NOT NULL,
    attempts INTEGER NOT NULL DEFAULT 0,
    last_error TEXT,
    enqueued_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_offline_queue_ns_key ON offline_queue(namespace, key);

-- ============================================================
-- Dead letters (mutations the queue gave up on)
-- ============================================================
CREATE TABLE IF NOT EXISTS offline_dead_letters (
    key INTEGER PRIMARY KEY,
    namespace TEXT NOT NULL,
    kind TEXT NOT NULL,
    payload TEXT NOT NULL,
    attempts INTEGER NOT NULL,
    last_error TEXT,
    enqueued_at TEXT NOT NULL,
    dead_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_offline_dead_ns ON offline_dead_letters(namespace);
"""


@dataclass(frozen=True, slots=True)
class StoredItem:
    key: int
    namespace: str
    kind: str
    payload: dict[str, Any]
    attempts: int
    last_error: str | None
    enqueued_at: str


class QueueDatabase:
    """Owns the SQLite connection shared by every namespace."""

    def __init__(self, db_path: Path | str) -> None:
        self.db_path = Path(db_path)
        self._lock = threading.RLock()
        self._conn: sqlite3.Connection | None = None
        self._unavailable_reason: str | None = None

    def namespace(self, name: str) -> QueueStore:
        return QueueStore(self, name)

    @property
    def available(self) -> bool:
        return self._connect() is not None

    @property
    def unavailable_reason(self) -> str | None:
        return self._unavailable_reason

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    def _connect(self) -> sqlite3.Connection | None:
        with self._lock:
            if self._conn is not None:
                return self._conn
            if self._unavailable_reason is not None:
                return None
            try:
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
                conn = sqlite3.connect(self.db_path, check_same_thread=False)
                conn.row_factory = sqlite3.Row
                with conn:
                    conn.executescript(SCHEMA)
                    conn.execute("PRAGMA journal_mode=WAL")
                    conn.execute("PRAGMA synchronous=NORMAL")
                    conn.execute(
                        "INSERT OR IGNORE INTO schema_version (version) VALUES (?)",
                        (STORE_VERSION,),
                    )
            except (sqlite3.Error, OSError) as e:
                self._unavailable_reason = f"{type(e).__name__}: {e}"
                logger.warning(
                    "offline_store_unavailable",
                    extra={"db_path": str(self.db_path), "reason": self._unavailable_reason},
                )
                return None
            self._conn = conn
            return conn

    def execute(self, sql: str, params: tuple[Any, ...] = ()) -> sqlite3.Cursor | None:
        with self._lock:
            conn = self._connect()
            if conn is None:
                return None
            try:
                with conn:
                    return conn.execute(sql, params)
            except sqlite3.Error as e:
                raise QueueStoreError(str(e)) from e

    def query(self, sql: str, params: tuple[Any, ...] = ()) -> list[sqlite3.Row]:
        with self._lock:
            conn = self._connect()
            if conn is None:
                return []
            try:
                return conn.execute(sql, params).fetchall()
            except sqlite3.Error as e:
                raise QueueStoreError(str(e)) from e

    def transaction(self, statements: list[tuple[str, tuple[Any, ...]]]) -> bool:
        """Run statements atomically. Returns False when the store is unavailable."""

        with self._lock:
            conn = self._connect()
            if conn is None:
                return False
            try:
                with conn:
                    for sql, params in statements:
                        conn.execute(sql, params)
            except sqlite3.Error as e:
                raise QueueStoreError(str(e)) from e
            return True


def _row_to_item(row: sqlite3.Row) -> StoredItem:
    return StoredItem(
        key=int(row["key"]),
        namespace=str(row["namespace"]),
        kind=str(row["kind"]),
        payload=json.loads(row["payload"]),
        attempts=int(row["attempts"]),
        last_error=row["last_error"],
        enqueued_at=str(row["enqueued_at"]),
    )


class QueueStore:
    """One namespace of the queue database."""

    def __init__(self, db: QueueDatabase, namespace: str) -> None:
        if not namespace:
            raise ValueError("namespace must be non-empty")
        self.db = db
        self.namespace = namespace

    @property
    def available(self) -> bool:
        return self.db.available

    def append(self, kind: str, payload: dict[str, Any]) -> int | None:
        body = json.dumps(payload, sort_keys=True, ensure_ascii=False, default=str)
        cur = self.db.execute(
            "INSERT INTO offline_queue (namespace, kind, payload, enqueued_at) VALUES (?, ?, ?, ?)",
            (self.namespace, kind, body, utc_now().isoformat()),
        )
        return None if cur is None else int(cur.lastrowid)

    def count(self) -> int:
        rows = self.db.query(
            "SELECT COUNT(*) FROM offline_queue WHERE namespace = ?", (self.namespace,)
        )
        return int(rows[0][0]) if rows else 0

    def items(self) -> list[StoredItem]:
        rows = self.db.query(
            "SELECT * FROM offline_queue WHERE namespace = ? ORDER BY key ASC", (self.namespace,)
        )
        return [_row_to_item(r) for r in rows]

    def delete(self, key: int) -> bool:
        cur = self.db.execute(
            "DELETE FROM offline_queue WHERE namespace = ? AND key = ?", (self.namespace, int(key))
        )
        return cur is not None and cur.rowcount > 0

    def record_failure(self, key: int, error: str) -> int:
        """Bump the attempt counter. Returns the new count (0 if the row is gone)."""

        self.db.execute(
            "UPDATE offline_queue SET attempts = attempts + 1, last_error = ? "
            "WHERE namespace = ? AND key = ?",
            (error, self.namespace, int(key)),
        )
        rows = self.db.query(
            "SELECT attempts FROM offline_queue WHERE namespace = ? AND key = ?",
            (self.namespace, int(key)),
        )
        return int(rows[0][0]) if rows else 0

    def move_to_dead_letter(self, key: int, error: str) -> bool:
        rows = self.db.query(
            "SELECT * FROM offline_queue WHERE namespace = ? AND key = ?", (self.namespace, int(key))
        )
        if not rows:
            return False
        item = _row_to_item(rows[0])
        return self.db.transaction(
            [
                (
                    """
                    INSERT INTO offline_dead_letters (
                        key, namespace, kind, payload, attempts, last_error, enqueued_at, dead_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        item.key,
                        item.namespace,
                        item.kind,
                        json.dumps(item.payload, sort_keys=True, ensure_ascii=False),
                        item.attempts,
                        error,
                        item.enqueued_at,
                        utc_now().isoformat(),
                    ),
                ),
                (
                    "DELETE FROM offline_queue WHERE namespace = ? AND key = ?",
                    (self.namespace, item.key),
                ),
            ]
        )

    def dead_letters(self) -> list[StoredItem]:
        rows = self.db.query(
            "SELECT * FROM offline_dead_letters WHERE namespace = ? ORDER BY key ASC",
            (self.namespace,),
        )
        return [_row_to_item(r) for r in rows]

    def dead_letter_count(self) -> int:
        rows = self.db.query(
            "SELECT COUNT(*) FROM offline_dead_letters WHERE namespace = ?", (self.namespace,)
        )
        return int(rows[0][0]) if rows else 0

    def requeue_dead_letters(self) -> int:
        """Put dead letters back at the tail, oldest first, with fresh attempt counters."""

        dead = self.dead_letters()
        statements: list[tuple[str, tuple[Any, ...]]] = []
        for item in dead:
            statements.append(
                (
                    "INSERT INTO offline_queue (namespace, kind, payload, enqueued_at) "
                    "VALUES (?, ?, ?, ?)",
                    (
                        self.namespace,
                        item.kind,
                        json.dumps(item.payload, sort_keys=True, ensure_ascii=False),
                        utc_now().isoformat(),
                    ),
                )
            )
            statements.append(
                (
                    "DELETE FROM offline_dead_letters WHERE namespace = ? AND key = ?",
                    (self.namespace, item.key),
                )
            )
        if not statements or not self.db.transaction(statements):
            return 0
        return len(dead)
