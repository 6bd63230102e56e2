"""
Registered randomness beacons, keyed by the hash of their public key.

A beacon is immutable once registered: callers refer to it by
``public_key_hash`` and the registry never swaps the parameters behind a hash.
The coordinator additionally tracks one *current* beacon, which new requests
are bound to.
"""

from __future__ import annotations

import logging
import threading
from typing import Dict, Iterator, Optional

from ..crypto import pairing_bn254 as bn
from ..errors import UnknownBeacon
from ..types.core import Beacon, G2Point
from ..utils.hash import keccak_words

logger = logging.getLogger(__name__)


def public_key_hash(pk: G2Point) -> bytes:
    """keccak256(x.c0, x.c1, y.c0, y.c1) as 32-byte words."""
    return keccak_words(*pk.limbs())


class BeaconRegistry:
    """In-memory beacon lookup. Thread-safe; registration is rare."""

    def __init__(self) -> None:
        self._beacons: Dict[bytes, Beacon] = {}
        self._current: Optional[bytes] = None
        self._lock = threading.Lock()

    def register(
        self,
        public_key: G2Point,
        *,
        genesis_timestamp: int,
        period: int,
        make_current: bool = True,
        check_subgroup: bool = True,
    ) -> Beacon:
        """
        Validate and register a beacon public key.

        The key must be a canonical, on-curve, non-infinity G2 point; with
        ``check_subgroup`` it must also lie in the order-r subgroup (one full
        scalar multiplication). Registering the same key twice with identical
        parameters is a no-op; with different parameters it raises ValueError.
        """
        raw = bn.to_g2(public_key)  # raises ValueError when off-curve / non-canonical
        if bn.is_infinity(raw):
            raise ValueError("beacon public key is the point at infinity")
        if check_subgroup and not bn.in_subgroup_g2(raw):
            raise ValueError("beacon public key is not in the G2 subgroup")

        beacon = Beacon(
            public_key_hash=public_key_hash(public_key),
            public_key=public_key,
            genesis_timestamp=genesis_timestamp,
            period=period,
        )
        with self._lock:
            existing = self._beacons.get(beacon.public_key_hash)
            if existing is not None and existing != beacon:
                raise ValueError("beacon already registered with different parameters")
            self._beacons[beacon.public_key_hash] = beacon
            if make_current:
                self._current = beacon.public_key_hash
        logger.info(
            "beacon registered",
            extra={
                "public_key_hash": beacon.public_key_hash.hex(),
                "genesis": genesis_timestamp,
                "period": period,
                "current": make_current,
            },
        )
        return beacon

    def get(self, key_hash: bytes) -> Beacon:
        beacon = self._beacons.get(bytes(key_hash))
        if beacon is None:
            raise UnknownBeacon(key_hash=bytes(key_hash))
        return beacon

    def set_current(self, key_hash: bytes) -> Beacon:
        beacon = self.get(key_hash)
        with self._lock:
            self._current = beacon.public_key_hash
        return beacon

    def current(self) -> Beacon:
        if self._current is None:
            raise UnknownBeacon(key_hash=b"\x00" * 32)
        return self._beacons[self._current]

    def current_key_hash(self) -> Optional[bytes]:
        return self._current

    def __contains__(self, key_hash: object) -> bool:
        return isinstance(key_hash, (bytes, bytearray)) and bytes(key_hash) in self._beacons

    def __iter__(self) -> Iterator[Beacon]:
        return iter(list(self._beacons.values()))

    def __len__(self) -> int:
        return len(self._beacons)


__all__ = ["BeaconRegistry", "public_key_hash"]
