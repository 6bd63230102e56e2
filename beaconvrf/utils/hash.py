"""
beaconvrf.utils.hash
====================

Keccak-256 plus the fixed-width word encoding used by every digest the
coordinator computes (beacon key hashes, request commitments, randomness).

Words are 32 bytes, big-endian:
  * integers   -> uint256 (must fit in 256 bits, non-negative)
  * addresses  -> 20 bytes left-padded with zeros
  * digests    -> 32 bytes as-is

The layout matches Solidity's ``abi.encode`` for static types, so digests
are reproducible by any EVM tooling.
"""

from __future__ import annotations

from typing import Union

from Crypto.Hash import keccak as _keccak

from .bytes import ADDRESS_LEN, HASH_LEN, BytesLike, as_bytes

UINT256_MAX = (1 << 256) - 1
UINT64_MAX = (1 << 64) - 1

Word = Union[int, bytes, bytearray]

__all__ = [
    "UINT256_MAX",
    "UINT64_MAX",
    "keccak256",
    "word",
    "encode_words",
    "keccak_words",
    "uint64_be",
]


def keccak256(data: BytesLike) -> bytes:
    """Keccak-256 digest (the pre-standard SHA-3 variant used by EVM chains)."""
    h = _keccak.new(digest_bits=256)
    h.update(as_bytes(data))
    return h.digest()


def word(value: Word) -> bytes:
    """Encode a single static value as a 32-byte word."""
    if isinstance(value, bool):
        return (1 if value else 0).to_bytes(32, "big")
    if isinstance(value, int):
        if value < 0 or value > UINT256_MAX:
            raise ValueError(f"integer out of uint256 range: {value}")
        return value.to_bytes(32, "big")
    b = as_bytes(value)
    if len(b) == HASH_LEN:
        return b
    if len(b) == ADDRESS_LEN:
        return b"\x00" * 12 + b
    raise ValueError(f"cannot encode {len(b)}-byte value as a word")


def encode_words(*values: Word) -> bytes:
    return b"".join(word(v) for v in values)


def keccak_words(*values: Word) -> bytes:
    """keccak256(abi.encode(values...)) for static values."""
    return keccak256(encode_words(*values))


def uint64_be(n: int) -> bytes:
    if n < 0 or n > UINT64_MAX:
        raise ValueError(f"integer out of uint64 range: {n}")
    return n.to_bytes(8, "big")
