"""
beaconvrf.crypto - BN254 pairing wrapper, hash-to-curve (Keccak XMD + SVDW)
and BLS helpers for G1 signatures / G2 public keys.
"""

from __future__ import annotations

from .bls import KeyPair, message_point, round_digest, verify_round
from .hash_to_curve import hash_to_curve_g1

__all__ = ["KeyPair", "message_point", "round_digest", "verify_round", "hash_to_curve_g1"]
