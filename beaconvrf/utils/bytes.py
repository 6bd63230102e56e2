"""
beaconvrf.utils.bytes
=====================

Small utilities for working with hex/bytes plus strict **length guards**
and address normalization.

Highlights
----------
- :func:`to_hex` / :func:`from_hex` with strict validation.
- :func:`as_bytes` to normalize bytes-like values.
- :func:`ensure_len` length guard.
- :func:`to_address` accepts 20-byte values or ``0x``-hex strings.
- :func:`consteq` timing-safe equality (hmac.compare_digest).

These helpers are intentionally strict to prevent ambiguous encodings in
commitment and randomness derivations.
"""

from __future__ import annotations

import hmac
import re
from typing import Union

BytesLike = Union[bytes, bytearray, memoryview]
AddressLike = Union[str, bytes, bytearray]

ADDRESS_LEN = 20
HASH_LEN = 32

__all__ = [
    "ADDRESS_LEN",
    "HASH_LEN",
    "to_hex",
    "from_hex",
    "as_bytes",
    "ensure_len",
    "to_address",
    "to_hash32",
    "consteq",
]

_HEX_RE = re.compile(r"^(?:0x)?[0-9a-fA-F]*$")


def from_hex(s: str) -> bytes:
    """
    Convert a hex string (with optional ``0x``) to bytes.

    Strict rules:
    - No whitespace.
    - Only 0-9a-fA-F characters (plus optional prefix).
    - Even-length nibble count.
    """
    if not isinstance(s, str):
        raise TypeError("from_hex expects a str")
    if not _HEX_RE.match(s):
        raise ValueError("invalid hex string (characters or whitespace)")
    body = s[2:] if s.startswith(("0x", "0X")) else s
    if len(body) % 2 != 0:
        raise ValueError("hex string must have an even number of nibbles")
    return bytes.fromhex(body)


def to_hex(b: BytesLike, *, prefix: str = "0x") -> str:
    """Encode bytes as lowercase hex. By default returns with ``0x`` prefix."""
    return (prefix or "") + as_bytes(b).hex()


def as_bytes(x: BytesLike) -> bytes:
    """Normalize bytes-like to immutable :class:`bytes`."""
    if isinstance(x, bytes):
        return x
    if isinstance(x, (bytearray, memoryview)):
        return bytes(x)
    raise TypeError(f"expected bytes-like, got {type(x)!r}")


def ensure_len(b: BytesLike, expected: int, *, name: str = "value") -> bytes:
    """Ensure ``len(b) == expected``. Returns bytes on success, raises ValueError otherwise."""
    bb = as_bytes(b)
    if len(bb) != expected:
        raise ValueError(f"{name} must be {expected} bytes, got {len(bb)}")
    return bb


def to_address(value: AddressLike, *, name: str = "address") -> bytes:
    """Normalize a 20-byte identity given as bytes or ``0x``-hex."""
    if isinstance(value, str):
        value = from_hex(value)
    return ensure_len(value, ADDRESS_LEN, name=name)


def to_hash32(value: Union[str, BytesLike], *, name: str = "hash") -> bytes:
    """Normalize a 32-byte digest given as bytes or ``0x``-hex."""
    if isinstance(value, str):
        value = from_hex(value)
    return ensure_len(value, HASH_LEN, name=name)


def consteq(a: BytesLike, b: BytesLike) -> bool:
    """Timing-safe equality for two bytes-like values."""
    return hmac.compare_digest(as_bytes(a), as_bytes(b))
