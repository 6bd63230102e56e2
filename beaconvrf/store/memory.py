"""
In-process KeyValue backend.

A dict guarded by a re-entrant lock. ``transaction()`` holds the lock for the
whole block and keeps an undo journal, so a block that raises leaves the store
exactly as it found it.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Dict, Generator, Iterable, List, Optional, Tuple


class MemoryKeyValue:
    """Thread-safe in-memory implementation of the KeyValue protocol."""

    def __init__(self) -> None:
        self._data: Dict[bytes, bytes] = {}
        self._lock = threading.RLock()
        self._journal: Optional[List[Tuple[bytes, Optional[bytes]]]] = None
        self._depth = 0

    # --- KV API --------------------------------------------------------------

    def _record(self, key: bytes) -> None:
        if self._journal is not None:
            self._journal.append((key, self._data.get(key)))

    def get(self, key: bytes) -> Optional[bytes]:
        with self._lock:
            return self._data.get(bytes(key))

    def put(self, key: bytes, value: bytes) -> None:
        if not isinstance(key, (bytes, bytearray)) or not isinstance(value, (bytes, bytearray)):
            raise TypeError("key and value must be bytes")
        with self._lock:
            k = bytes(key)
            self._record(k)
            self._data[k] = bytes(value)

    def delete(self, key: bytes) -> None:
        with self._lock:
            k = bytes(key)
            if k in self._data:
                self._record(k)
                del self._data[k]

    def has(self, key: bytes) -> bool:
        with self._lock:
            return bytes(key) in self._data

    def iter_prefix(self, prefix: bytes) -> Iterable[Tuple[bytes, bytes]]:
        # Snapshot under the lock; callers may write while iterating.
        with self._lock:
            items = sorted((k, v) for k, v in self._data.items() if k.startswith(prefix))
        return iter(items)

    def compare_and_swap(self, key: bytes, expected: Optional[bytes], new: Optional[bytes]) -> bool:
        with self.transaction():
            if self._data.get(bytes(key)) != expected:
                return False
            if new is None:
                self.delete(key)
            else:
                self.put(key, new)
            return True

    # --- Transactions --------------------------------------------------------

    @contextmanager
    def transaction(self) -> Generator[None, None, None]:
        with self._lock:
            outer = self._depth == 0
            if outer:
                self._journal = []
            self._depth += 1
            try:
                yield
            except BaseException:
                if outer:
                    self._rollback()
                raise
            finally:
                self._depth -= 1
                if outer:
                    self._journal = None

    def _rollback(self) -> None:
        journal = self._journal or []
        self._journal = None
        for key, old in reversed(journal):
            if old is None:
                self._data.pop(key, None)
            else:
                self._data[key] = old

    def close(self) -> None:
        with self._lock:
            self._data.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)


__all__ = ["MemoryKeyValue"]
