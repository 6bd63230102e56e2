"""
Coordinator events.

Events are the audit trail of the request lifecycle: once a request is
consumed its commitment is gone, and these records are all that remains.
They serialize to JSON-safe dicts (bytes as 0x-hex) for the event log and the
RPC surface.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from typing import Any, ClassVar, Dict, Type, Union

from ..utils.bytes import from_hex, to_hex


def _encode(v: Any) -> Any:
    return to_hex(v) if isinstance(v, (bytes, bytearray)) else v


@dataclass(frozen=True)
class _Event:
    kind: ClassVar[str] = "Event"

    request_id: int

    def to_dict(self) -> Dict[str, Any]:
        out = {k: _encode(v) for k, v in asdict(self).items()}
        out["kind"] = self.kind
        return out

    @classmethod
    def from_dict(cls, d: Dict[str, Any]):
        kwargs: Dict[str, Any] = {}
        for f in fields(cls):
            v = d[f.name]
            if f.type in ("bytes", bytes) and isinstance(v, str):
                v = from_hex(v)
            kwargs[f.name] = v
        return cls(**kwargs)


@dataclass(frozen=True)
class RequestCreated(_Event):
    """Emitted by create(); carries every public field of the request."""

    kind: ClassVar[str] = "RandomnessRequested"

    requester: bytes
    beacon_key_hash: bytes
    round: int
    callback_gas_limit: int
    fee_paid: int
    effective_fee_per_gas: int


@dataclass(frozen=True)
class RequestFulfilled(_Event):
    kind: ClassVar[str] = "RandomnessFulfilled"

    randomness: int
    callback_success: bool
    actual_gas_used: int


@dataclass(frozen=True)
class CallbackFailed(_Event):
    """Emitted alongside RequestFulfilled when the consumer callback did not complete."""

    kind: ClassVar[str] = "RandomnessCallbackFailed"

    retdata: bytes
    gas_limit: int
    actual_gas_used: int


Event = Union[RequestCreated, RequestFulfilled, CallbackFailed]

EVENT_TYPES: Dict[str, Type[_Event]] = {
    cls.kind: cls for cls in (RequestCreated, RequestFulfilled, CallbackFailed)
}


def event_from_dict(d: Dict[str, Any]) -> Event:
    try:
        cls = EVENT_TYPES[d["kind"]]
    except KeyError as e:
        raise ValueError(f"unknown event kind: {d.get('kind')!r}") from e
    return cls.from_dict(d)  # type: ignore[return-value]


__all__ = [
    "RequestCreated",
    "RequestFulfilled",
    "CallbackFailed",
    "Event",
    "EVENT_TYPES",
    "event_from_dict",
]
