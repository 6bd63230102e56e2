"""
BLS signatures on BN254 with signatures in G1 and public keys in G2.

Scheme (drand "evmnet"):

    message(round) = hash_to_curve_g1(keccak256(uint64_be(round)), DST)
    sig            = sk · message(round)
    pk             = sk · g2
    valid          ⇔ e(-sig, g2) · e(message(round), pk) == 1

Signing lives here for the local signature source and tests; a production
coordinator only ever verifies.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..constants import BLS_DST_G1
from ..types.core import G1Point, G2Point
from ..utils.hash import keccak256, uint64_be
from . import pairing_bn254 as bn
from .hash_to_curve import hash_to_curve_g1


def round_digest(round: int) -> bytes:
    """keccak256 of the big-endian uint64 round number (the pre-image drand hashes to G1)."""
    return keccak256(uint64_be(round))


def message_point(round: int, dst: bytes = BLS_DST_G1) -> G1Point:
    return hash_to_curve_g1(round_digest(round), dst)


def verify_point(sig: G1Point, msg: G1Point, pk: G2Point) -> bool:
    """
    Pairing check for an already-hashed message. Raises ValueError on malformed
    points (off-curve, non-canonical coordinates).
    """
    raw_sig = bn.to_g1(sig)
    raw_msg = bn.to_g1(msg)
    raw_pk = bn.to_g2(pk)
    if bn.is_infinity(raw_pk):
        return False
    return bn.check_pairing_product(
        [
            (bn.g1_neg(raw_sig), bn.g2_generator()),
            (raw_msg, raw_pk),
        ]
    )


def verify_round(sig: G1Point, round: int, pk: G2Point, dst: bytes = BLS_DST_G1) -> bool:
    return verify_point(sig, message_point(round, dst), pk)


@dataclass(frozen=True)
class KeyPair:
    secret: int
    public: G2Point

    @classmethod
    def from_seed(cls, seed: bytes) -> "KeyPair":
        """Deterministic key derivation: sk = keccak256(seed) mod r (never zero)."""
        sk = int.from_bytes(keccak256(seed), "big") % bn.curve_order()
        if sk == 0:
            sk = 1
        return cls(secret=sk, public=public_key(sk))

    def sign_round(self, round: int, dst: bytes = BLS_DST_G1) -> G1Point:
        return sign_point(self.secret, message_point(round, dst))


def public_key(sk: int) -> G2Point:
    return bn.from_g2(bn.g2_mul(bn.g2_generator(), sk))


def sign_point(sk: int, msg: G1Point) -> G1Point:
    return bn.from_g1(bn.g1_mul(bn.to_g1(msg), sk))


def negate(sig: G1Point) -> G1Point:
    return G1Point(sig.x, (bn.field_modulus() - sig.y) % bn.field_modulus())


__all__ = [
    "round_digest",
    "message_point",
    "verify_point",
    "verify_round",
    "KeyPair",
    "public_key",
    "sign_point",
    "negate",
]
