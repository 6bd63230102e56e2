"""
Pydantic request/response models for the coordinator HTTP surface.

Integers that can exceed 2**53 (fees, field elements, randomness) travel as
decimal or ``0x``-hex strings as well as JSON numbers.
"""

from __future__ import annotations

from typing import List, Union

from pydantic import BaseModel, Field

from ..types.core import G1Point

UintLike = Union[int, str]


def parse_uint(v: UintLike, *, name: str = "value") -> int:
    if isinstance(v, bool):
        raise ValueError(f"{name} must be an integer")
    if isinstance(v, int):
        n = v
    else:
        s = v.strip()
        n = int(s, 16) if s.lower().startswith("0x") else int(s, 10)
    if n < 0:
        raise ValueError(f"{name} must be >= 0")
    return n


class SignatureModel(BaseModel):
    x: UintLike = Field(..., description="G1 x coordinate (int, decimal or 0x-hex)")
    y: UintLike = Field(..., description="G1 y coordinate (int, decimal or 0x-hex)")

    def to_point(self) -> G1Point:
        return G1Point(x=parse_uint(self.x, name="signature.x"), y=parse_uint(self.y, name="signature.y"))


class CreateReq(BaseModel):
    requester: str = Field(..., description="0x-prefixed 20-byte requester address")
    deadline: int = Field(..., ge=0, description="UNIX seconds")
    callback_gas_limit: int = Field(..., ge=0)
    payment: UintLike


class FulfillReq(BaseModel):
    requester: str
    beacon_key_hash: str = Field(..., description="0x-prefixed 32-byte key hash")
    round: int = Field(..., ge=0)
    callback_gas_limit: int = Field(..., ge=0)
    signature: SignatureModel


class QuoteResp(BaseModel):
    callback_gas_limit: int
    total_price: str
    effective_fee_per_gas: str
    capped: bool


class CreateResp(BaseModel):
    request_id: int
    round: int


class StateResp(BaseModel):
    request_id: int
    state: str
    code: int


class FulfillResp(BaseModel):
    request_id: int
    randomness: str
    callback_success: bool
    actual_gas_used: int
    state: str


class EventsResp(BaseModel):
    events: List[dict]


__all__ = [
    "parse_uint",
    "SignatureModel",
    "CreateReq",
    "FulfillReq",
    "QuoteResp",
    "CreateResp",
    "StateResp",
    "FulfillResp",
    "EventsResp",
]
