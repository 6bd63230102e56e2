"""
Beacon signature verification.

A signature for ``round`` under beacon public key ``pk`` is accepted iff

    e(-σ, g2) · e(H(round), pk) == 1

where ``H`` is :func:`beaconvrf.crypto.bls.message_point`. Verification is
boolean and unconditional: there is no configuration, environment variable or
debug switch under which a failing signature is accepted.
"""

from __future__ import annotations

import logging
from typing import Optional

from ..constants import BLS_DST_G1
from ..crypto import bls
from ..errors import InvalidSignature
from ..types.core import G1Point, G2Point

logger = logging.getLogger(__name__)


class SignatureVerifier:
    def __init__(self, dst: bytes = BLS_DST_G1) -> None:
        self.dst = dst

    def is_valid(self, round: int, public_key: G2Point, signature: G1Point) -> bool:
        try:
            self.verify(round, public_key, signature)
        except InvalidSignature:
            return False
        return True

    def verify(self, round: int, public_key: G2Point, signature: G1Point) -> None:
        """
        Raise :class:`InvalidSignature` unless ``signature`` is a valid BLS
        signature of ``round`` under ``public_key``.
        """
        reason: Optional[str] = None
        try:
            ok = bls.verify_round(signature, round, public_key, self.dst)
        except ValueError as e:
            # off-curve, non-canonical coordinates, round out of uint64 range
            ok = False
            reason = f"malformed: {e}"
        if not ok:
            reason = reason or "pairing"
            logger.debug("signature rejected", extra={"round": round, "reason": reason})
            raise InvalidSignature(round=round, reason=reason)


__all__ = ["SignatureVerifier"]
