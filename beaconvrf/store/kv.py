"""
Logical buckets over a raw byte-oriented KeyValue backend.

Buckets
-------
- COMMITMENTS: per-request commitment digest (present iff the request is Pending)
- STATES:      per-request lifecycle byte (0..3), kept after the commitment is zeroed
- EVENTS:      append-only event log, keyed by a monotonic sequence number
- META:        singleton counters (next request id, next event seq, fee balance)

All values are bytes. Integers are stored as 32-byte big-endian words so that
key order equals numeric order.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

from . import KeyValue


# --- Bucket prefix constants (single-byte, domain-separated) -----------------

COMMITMENTS_PREFIX = b"\x01"  # \x01 | len | u256(id)
STATES_PREFIX      = b"\x02"  # \x02 | len | u256(id)
EVENTS_PREFIX      = b"\x03"  # \x03 | len | u256(seq)
META_PREFIX        = b"\x05"  # \x05 | len | name

META_NEXT_REQUEST_ID = b"next_request_id"
META_NEXT_EVENT_SEQ  = b"next_event_seq"
META_FEE_BALANCE     = b"fee_balance"


# --- Key composition helpers -------------------------------------------------

def _be_u32(n: int) -> bytes:
    if n < 0 or n > 0xFFFFFFFF:
        raise ValueError("length out of range for u32")
    return n.to_bytes(4, "big")


def _k(prefix: bytes, *parts: bytes) -> bytes:
    """Prefix + 4-byte len for each part to avoid accidental collisions."""
    return prefix + b"".join(_be_u32(len(p)) + p for p in parts)


def u256(n: int) -> bytes:
    return int(n).to_bytes(32, "big")


def from_u256(b: Optional[bytes], default: int = 0) -> int:
    return default if b is None else int.from_bytes(b, "big")


# --- Public bucket API -------------------------------------------------------

@dataclass(frozen=True)
class Buckets:
    """Namespaced view over a byte KV store used by the coordinator."""

    kv: KeyValue

    # --- Commitments ---------------------------------------------------------

    def key_commitment(self, request_id: int) -> bytes:
        return _k(COMMITMENTS_PREFIX, u256(request_id))

    def get_commitment(self, request_id: int) -> Optional[bytes]:
        return self.kv.get(self.key_commitment(request_id))

    # --- States --------------------------------------------------------------

    def key_state(self, request_id: int) -> bytes:
        return _k(STATES_PREFIX, u256(request_id))

    def get_state(self, request_id: int) -> Optional[bytes]:
        return self.kv.get(self.key_state(request_id))

    # --- Events --------------------------------------------------------------

    def key_event(self, seq: int) -> bytes:
        return _k(EVENTS_PREFIX, u256(seq))

    def append_event(self, value: bytes) -> int:
        """Append to the event log; returns the sequence number used."""
        with self.kv.transaction():
            seq = from_u256(self.get_meta(META_NEXT_EVENT_SEQ))
            self.kv.put(self.key_event(seq), value)
            self.put_meta(META_NEXT_EVENT_SEQ, u256(seq + 1))
        return seq

    def iter_events(self) -> Iterable[Tuple[bytes, bytes]]:
        return self.kv.iter_prefix(EVENTS_PREFIX)

    # --- Meta ----------------------------------------------------------------

    def key_meta(self, name: bytes) -> bytes:
        return _k(META_PREFIX, name)

    def put_meta(self, name: bytes, value: bytes) -> None:
        self.kv.put(self.key_meta(name), value)

    def get_meta(self, name: bytes) -> Optional[bytes]:
        return self.kv.get(self.key_meta(name))


__all__ = [
    "Buckets",
    "u256",
    "from_u256",
    "META_NEXT_REQUEST_ID",
    "META_NEXT_EVENT_SEQ",
    "META_FEE_BALANCE",
]
