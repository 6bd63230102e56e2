"""
beaconvrf - verifiable randomness coordinator on a public BLS beacon.

Callers commit to a future beacon round and pay an exact fee; once the beacon
(drand "evmnet" on BN254) publishes that round, anyone may submit its
signature. The coordinator verifies it, derives a request-bound random word
and delivers it to the requester's callback under a gas budget.

Only light, stable exports are surfaced here to avoid import cycles.
"""

from __future__ import annotations

from .version import __version__

__all__ = ["__version__"]
