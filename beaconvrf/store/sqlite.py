"""
SQLite-backed KeyValue store for coordinator state.

Features
--------
- Simple byte-oriented KV: (key BLOB PRIMARY KEY, value BLOB NOT NULL)
- Atomic blocks via context manager: `with kv.transaction(): ...`
- `compare_and_swap` inside a single IMMEDIATE transaction.
- Efficient prefix iteration using range scans (lower/upper bound).
- Pragmas tuned for a single-writer service (WAL, synchronous=NORMAL).

Notes
-----
One connection is shared by all threads of the process; an RLock serializes
access to it so writers never interleave. Keys are arbitrary bytes and prefix
iteration relies on lexicographic byte ordering of BLOBs:
  key >= p AND key < next_prefix(p)
"""

from __future__ import annotations

import os
import sqlite3
import threading
from contextlib import contextmanager
from typing import Generator, Iterable, List, Optional, Tuple


# --- Helpers -----------------------------------------------------------------

def _ensure_dir(path: str) -> None:
    if path == ":memory:":
        return
    d = os.path.dirname(os.path.abspath(path))
    if d and not os.path.exists(d):
        os.makedirs(d, exist_ok=True)


def _apply_pragmas(conn: sqlite3.Connection, path: str) -> None:
    if path != ":memory:":
        conn.execute("PRAGMA journal_mode=WAL;")
    conn.execute("PRAGMA synchronous=NORMAL;")
    conn.execute("PRAGMA temp_store=MEMORY;")


def _init_schema(conn: sqlite3.Connection) -> None:
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS kv (
            key   BLOB PRIMARY KEY,
            value BLOB NOT NULL
        );
        """
    )


def _next_prefix(prefix: bytes) -> Optional[bytes]:
    """
    Smallest byte-string strictly greater than all keys starting with
    `prefix`, or None if no such bound exists (empty or all-0xFF prefix).
    """
    if not prefix:
        return None
    b = bytearray(prefix)
    for i in range(len(b) - 1, -1, -1):
        if b[i] != 0xFF:
            b[i] += 1
            return bytes(b[: i + 1])
    return None


# --- Implementation -----------------------------------------------------------

class SQLiteKeyValue:
    """
    SQLite-backed implementation of the KeyValue protocol.

    Example
    -------
    >>> kv = SQLiteKeyValue("/tmp/beaconvrf.db")
    >>> with kv.transaction():
    ...     kv.put(b"hello", b"world")
    ...     assert kv.get(b"hello") == b"world"
    >>> kv.close()
    """

    def __init__(self, path: str) -> None:
        self.path = path
        _ensure_dir(path)
        # isolation_level=None -> autocommit mode; we manage BEGIN/COMMIT explicitly
        self._conn = sqlite3.connect(
            path, detect_types=0, isolation_level=None, timeout=30.0, check_same_thread=False
        )
        self._lock = threading.RLock()
        self._depth = 0
        _apply_pragmas(self._conn, path)
        _init_schema(self._conn)

    # --- Context manager support --------------------------------------------

    def __enter__(self) -> "SQLiteKeyValue":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # --- KV API --------------------------------------------------------------

    def put(self, key: bytes, value: bytes) -> None:
        if not isinstance(key, (bytes, bytearray)) or not isinstance(value, (bytes, bytearray)):
            raise TypeError("key and value must be bytes")
        with self._lock:
            self._conn.execute(
                "INSERT OR REPLACE INTO kv(key, value) VALUES(?, ?)", (bytes(key), bytes(value))
            )

    def get(self, key: bytes) -> Optional[bytes]:
        with self._lock:
            row = self._conn.execute("SELECT value FROM kv WHERE key = ?", (bytes(key),)).fetchone()
        return bytes(row[0]) if row else None

    def delete(self, key: bytes) -> None:
        with self._lock:
            self._conn.execute("DELETE FROM kv WHERE key = ?", (bytes(key),))

    def has(self, key: bytes) -> bool:
        return self.get(key) is not None

    def iter_prefix(self, prefix: bytes) -> Iterable[Tuple[bytes, bytes]]:
        """
        Iterate (key, value) for keys that start with `prefix`, ordered by key.

        Rows are materialized under the lock so a concurrent writer cannot
        interleave with the cursor.
        """
        upper = _next_prefix(prefix)
        if upper is not None:
            sql = "SELECT key, value FROM kv WHERE key >= ? AND key < ? ORDER BY key ASC"
            args: Tuple[bytes, ...] = (prefix, upper)
        else:
            sql = "SELECT key, value FROM kv WHERE key >= ? ORDER BY key ASC"
            args = (prefix,)

        with self._lock:
            rows: List[Tuple[bytes, bytes]] = [
                (bytes(k), bytes(v)) for k, v in self._conn.execute(sql, args)
            ]
        return iter([(k, v) for k, v in rows if k.startswith(prefix)])

    def compare_and_swap(self, key: bytes, expected: Optional[bytes], new: Optional[bytes]) -> bool:
        with self.transaction():
            if self.get(key) != expected:
                return False
            if new is None:
                self.delete(key)
            else:
                self.put(key, new)
            return True

    # --- Transactions --------------------------------------------------------

    @contextmanager
    def transaction(self) -> Generator[None, None, None]:
        """
        Begin a write transaction (IMMEDIATE). Commits on success, rolls back on
        error. Nested calls from the owning thread join the outer transaction.
        """
        with self._lock:
            outer = self._depth == 0
            if outer:
                self._conn.execute("BEGIN IMMEDIATE;")
            self._depth += 1
            try:
                yield
            except BaseException:
                if outer:
                    self._conn.execute("ROLLBACK;")
                raise
            else:
                if outer:
                    self._conn.execute("COMMIT;")
            finally:
                self._depth -= 1

    # --- Maintenance ---------------------------------------------------------

    def close(self) -> None:
        with self._lock:
            self._conn.close()


__all__ = ["SQLiteKeyValue"]
