from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import NewType, Tuple

"""
Core typed primitives for the randomness coordinator.

These are intentionally minimal and free of heavy dependencies so they can be
shared across submodules (beacon registry, verifier, request store, RPC
surface, and tests). Curve points are plain pairs of Python ints; conversion
to py_ecc field elements happens only inside `beaconvrf.crypto`.

Types provided:
  • RequestId     - integer-typed request identifier
  • G1Point       - affine BN254 G1 point (signatures, hashed messages)
  • G2Point       - affine BN254 G2 point (beacon public keys)
  • Beacon        - registered beacon parameters
  • RequestState  - lifecycle states
  • RequestParams - the five fields bound by a request commitment
"""

RequestId = NewType("RequestId", int)

_U256_MAX = (1 << 256) - 1


def _require_uint(name: str, v: int, *, maximum: int = _U256_MAX) -> None:
    if isinstance(v, bool) or not isinstance(v, int):
        raise TypeError(f"{name} must be an int")
    if v < 0 or v > maximum:
        raise ValueError(f"{name} out of range (got {v})")


def _require_len(name: str, b: bytes, n: int) -> None:
    if not isinstance(b, (bytes, bytearray)):
        raise TypeError(f"{name} must be bytes")
    if len(b) != n:
        raise ValueError(f"{name} must be exactly {n} bytes (got {len(b)})")


# ---- Curve points ------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class G1Point:
    """Affine point (x, y) over the BN254 base field."""

    x: int
    y: int

    def __post_init__(self) -> None:  # type: ignore[override]
        _require_uint("x", self.x)
        _require_uint("y", self.y)

    def as_tuple(self) -> Tuple[int, int]:
        return (self.x, self.y)


@dataclass(frozen=True, slots=True)
class G2Point:
    """
    Affine point over FQ2, each coordinate written as (c0, c1) meaning
    c0 + c1·i.
    """

    x: Tuple[int, int]
    y: Tuple[int, int]

    def __post_init__(self) -> None:  # type: ignore[override]
        for name, pair in (("x", self.x), ("y", self.y)):
            if not isinstance(pair, tuple) or len(pair) != 2:
                raise TypeError(f"{name} must be a (c0, c1) tuple")
            _require_uint(f"{name}.c0", pair[0])
            _require_uint(f"{name}.c1", pair[1])

    def limbs(self) -> Tuple[int, int, int, int]:
        """(x.c0, x.c1, y.c0, y.c1) - the order used for key hashing and config."""
        return (self.x[0], self.x[1], self.y[0], self.y[1])

    @classmethod
    def from_limbs(cls, limbs: Tuple[int, int, int, int]) -> "G2Point":
        if len(limbs) != 4:
            raise ValueError("G2 public key needs exactly 4 limbs")
        a, b, c, d = (int(v) for v in limbs)
        return cls(x=(a, b), y=(c, d))


# ---- Beacon ------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Beacon:
    """
    A registered randomness beacon.

    Fields:
      public_key_hash  - keccak256 over the public key limbs (32 bytes)
      public_key       - group public key in G2
      genesis_timestamp - UNIX seconds at which round 1 was published
      period           - seconds between rounds
    """

    public_key_hash: bytes
    public_key: G2Point
    genesis_timestamp: int
    period: int

    def __post_init__(self) -> None:  # type: ignore[override]
        _require_len("public_key_hash", self.public_key_hash, 32)
        _require_uint("genesis_timestamp", self.genesis_timestamp)
        _require_uint("period", self.period)
        if self.period == 0:
            raise ValueError("period must be > 0")


# ---- Requests ----------------------------------------------------------------


class RequestState(IntEnum):
    NONEXISTENT = 0
    PENDING = 1
    FULFILLED = 2
    FAILED = 3

    @property
    def label(self) -> str:
        return _STATE_LABELS[self]

    @property
    def terminal(self) -> bool:
        return self in (RequestState.FULFILLED, RequestState.FAILED)


_STATE_LABELS = {
    RequestState.NONEXISTENT: "Nonexistent",
    RequestState.PENDING: "Pending",
    RequestState.FULFILLED: "Fulfilled",
    RequestState.FAILED: "Failed",
}


@dataclass(frozen=True, slots=True)
class RequestParams:
    """
    The fields bound by a request commitment. A fulfiller must present exactly
    these values; none of them are persisted on their own.
    """

    request_id: int
    requester: bytes
    beacon_key_hash: bytes
    round: int
    callback_gas_limit: int

    def __post_init__(self) -> None:  # type: ignore[override]
        _require_uint("request_id", self.request_id)
        _require_len("requester", self.requester, 20)
        _require_len("beacon_key_hash", self.beacon_key_hash, 32)
        _require_uint("round", self.round, maximum=(1 << 64) - 1)
        _require_uint("callback_gas_limit", self.callback_gas_limit)


__all__ = [
    "RequestId",
    "G1Point",
    "G2Point",
    "Beacon",
    "RequestState",
    "RequestParams",
]
