"""
Randomness derivation.

The beacon signature for a round is public and shared by every consumer of
that round, so it is never handed out as-is. Each request receives

    keccak256(σ.x, σ.y, chain_id, coordinator, request_id, requester)

as a uint256, which differs across chains, coordinator deployments, requests
and requesters even when they all use the same round.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..types.core import G1Point
from ..utils.bytes import to_address
from ..utils.hash import keccak_words


@dataclass(frozen=True)
class RandomnessDeriver:
    chain_id: int
    coordinator: bytes

    def __post_init__(self) -> None:
        object.__setattr__(self, "coordinator", to_address(self.coordinator, name="coordinator"))

    def derive(self, signature: G1Point, request_id: int, requester: bytes) -> int:
        digest = keccak_words(
            signature.x,
            signature.y,
            self.chain_id,
            self.coordinator,
            request_id,
            to_address(requester, name="requester"),
        )
        return int.from_bytes(digest, "big")


__all__ = ["RandomnessDeriver"]
