"""
beaconvrf.store
===============

Transactional key-value substrate for coordinator state (commitments,
request states, the id counter, the event log and the fee balance).

Two backends implement :class:`KeyValue`:

- :class:`~beaconvrf.store.memory.MemoryKeyValue` - in-process, guarded by an
  ``RLock``; used by tests and single-process deployments.
- :class:`~beaconvrf.store.sqlite.SQLiteKeyValue` - durable, ``BEGIN
  IMMEDIATE`` transactions.

Both serialize writers: a ``transaction()`` block is atomic with respect to
every other operation on the same store, and rolls back if the block raises.
Nested ``transaction()`` blocks on the same thread join the outer one.
"""

from __future__ import annotations

from contextlib import AbstractContextManager
from typing import Iterable, Optional, Protocol, Tuple


class KeyValue(Protocol):
    """Byte-oriented KV interface with atomic multi-key writes.

    Keys and values are raw bytes. Namespaces are handled by the caller via
    prefixed keys (see :mod:`beaconvrf.store.kv`).
    """

    def get(self, key: bytes) -> Optional[bytes]:
        """Return value for key, or None if missing."""
        ...

    def put(self, key: bytes, value: bytes) -> None:
        """Insert or replace key with value."""
        ...

    def delete(self, key: bytes) -> None:
        """Remove key if present (no-op if absent)."""
        ...

    def has(self, key: bytes) -> bool:
        ...

    def iter_prefix(self, prefix: bytes) -> Iterable[Tuple[bytes, bytes]]:
        """Yield (key, value) pairs whose keys start with prefix, in key order."""
        ...

    def transaction(self) -> AbstractContextManager[None]:
        """Atomic block: commits on success, rolls back on exception."""
        ...

    def compare_and_swap(self, key: bytes, expected: Optional[bytes], new: Optional[bytes]) -> bool:
        """
        Atomically replace the value at ``key`` with ``new`` iff it currently
        equals ``expected`` (None meaning absent / delete). Returns whether the
        swap happened.
        """
        ...

    def close(self) -> None:
        ...


def open_store(uri: str) -> KeyValue:
    """
    Open a backend from a URI:

        memory://               in-process store
        sqlite:///path/to/db    SQLite file (``sqlite:///:memory:`` for a scratch DB)
    """
    if uri == "memory://" or uri == "memory":
        from .memory import MemoryKeyValue

        return MemoryKeyValue()
    if uri.startswith("sqlite:///"):
        from .sqlite import SQLiteKeyValue

        return SQLiteKeyValue(uri[len("sqlite:///"):])
    raise ValueError(f"unsupported storage uri: {uri!r}")


__all__ = ["KeyValue", "open_store"]
