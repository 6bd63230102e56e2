"""
beaconvrf.beacon - everything about the external randomness beacon:
registered keys, deadline/round arithmetic, signature verification and the
drand relay client.
"""

from __future__ import annotations

from .registry import BeaconRegistry, public_key_hash
from .schedule import DeadlineRoundMapper, current_round, round_timestamp
from .verifier import SignatureVerifier

__all__ = [
    "BeaconRegistry",
    "public_key_hash",
    "DeadlineRoundMapper",
    "current_round",
    "round_timestamp",
    "SignatureVerifier",
]
