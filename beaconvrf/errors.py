"""
Coordinator errors.

This module defines the typed hierarchy of exceptions raised by the
request/fulfillment engine. Every member of the taxonomy is raised *before*
any state is written, so catching one means nothing changed. Callers can
catch the base :class:`CoordinatorError` to handle all protocol rejections,
or the concrete subclasses for more granular control.

A failing consumer callback is deliberately *not* represented here: it is a
recorded outcome of a successful fulfillment (``callback_success=False``).

The errors are lightweight and serialization-friendly (:meth:`to_dict`).
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, is_dataclass
from typing import Any, ClassVar, Dict, Optional


class CoordinatorError(Exception):
    """Base class for all protocol-level rejections."""

    code: ClassVar[str] = "COORDINATOR_ERROR"

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-safe dict for logs and RPC error payloads."""
        out: Dict[str, Any] = {"code": self.code, "message": str(self)}
        if is_dataclass(self):
            data = {
                k: (v.hex() if isinstance(v, (bytes, bytearray)) else v)
                for k, v in asdict(self).items()
            }
            if data:
                out["data"] = data
        return out


@dataclass(eq=False)
class InvalidDeadline(CoordinatorError):
    """
    Raised when a deadline does not leave one full beacon period of lead time,
    is further out than ``max_deadline_delta``, or precedes the beacon genesis.

    Attributes:
        deadline: The rejected deadline (UNIX seconds).
        earliest: Deadlines must be strictly greater than this value.
        latest:   Deadlines must be less than or equal to this value.
    """

    code: ClassVar[str] = "INVALID_DEADLINE"
    deadline: int
    earliest: int
    latest: int

    def __str__(self) -> str:  # pragma: no cover - trivial formatting
        return (
            f"InvalidDeadline: deadline={self.deadline} "
            f"not in ({self.earliest}, {self.latest}]"
        )


@dataclass(eq=False)
class IncorrectPayment(CoordinatorError):
    """Raised when the attached payment differs from the current quote."""

    code: ClassVar[str] = "INCORRECT_PAYMENT"
    expected: int
    received: int

    def __str__(self) -> str:  # pragma: no cover - trivial formatting
        return f"IncorrectPayment: expected={self.expected} received={self.received}"


@dataclass(eq=False)
class OverGasLimit(CoordinatorError):
    """Raised when the requested callback gas limit exceeds the configured maximum."""

    code: ClassVar[str] = "OVER_GAS_LIMIT"
    callback_gas_limit: int
    max_callback_gas_limit: int

    def __str__(self) -> str:  # pragma: no cover - trivial formatting
        return (
            f"OverGasLimit: callback_gas_limit={self.callback_gas_limit} "
            f"> max={self.max_callback_gas_limit}"
        )


@dataclass(eq=False)
class InvalidRequestHash(CoordinatorError):
    """
    Raised when the fulfillment parameters do not hash to the stored commitment.

    Attributes:
        request_id: The request being fulfilled.
        expected:   Stored commitment.
        got:        Commitment recomputed from the supplied parameters.
    """

    code: ClassVar[str] = "INVALID_REQUEST_HASH"
    request_id: int
    expected: bytes
    got: bytes

    def __str__(self) -> str:  # pragma: no cover - trivial formatting
        return (
            f"InvalidRequestHash: id={self.request_id} "
            f"expected=0x{self.expected.hex()} got=0x{self.got.hex()}"
        )


@dataclass(eq=False)
class InvalidRequestState(CoordinatorError):
    """Raised when a request is not in the lifecycle stage an operation needs."""

    code: ClassVar[str] = "INVALID_REQUEST_STATE"
    request_id: int
    state: str
    expected: str = "Pending"

    def __str__(self) -> str:  # pragma: no cover - trivial formatting
        return (
            f"InvalidRequestState: id={self.request_id} "
            f"state={self.state} expected={self.expected}"
        )


@dataclass(eq=False)
class InvalidSignature(CoordinatorError):
    """
    Raised when a beacon signature fails validation or the pairing check.

    Attributes:
        round:  Beacon round the signature claims to sign.
        reason: Short machine-friendly reason ('not-on-curve', 'pairing', ...).
    """

    code: ClassVar[str] = "INVALID_SIGNATURE"
    round: int
    reason: Optional[str] = None

    def __str__(self) -> str:  # pragma: no cover - trivial formatting
        return f"InvalidSignature: round={self.round}" + (
            f" reason={self.reason}" if self.reason else ""
        )


@dataclass(eq=False)
class TransferFailed(CoordinatorError):
    """Raised when paying accrued fees out to a recipient fails."""

    code: ClassVar[str] = "TRANSFER_FAILED"
    recipient: bytes
    amount: int
    reason: Optional[str] = None

    def __str__(self) -> str:  # pragma: no cover - trivial formatting
        base = f"TransferFailed: recipient=0x{self.recipient.hex()} amount={self.amount}"
        return f"{base} reason={self.reason}" if self.reason else base


@dataclass(eq=False)
class UnknownBeacon(CoordinatorError):
    """Raised when a beacon public-key hash is not registered."""

    code: ClassVar[str] = "UNKNOWN_BEACON"
    key_hash: bytes

    def __str__(self) -> str:  # pragma: no cover - trivial formatting
        return f"UnknownBeacon: 0x{self.key_hash.hex()}"


@dataclass(eq=False)
class NotOwner(CoordinatorError):
    """Raised when an administrative operation is attempted by a non-owner."""

    code: ClassVar[str] = "NOT_OWNER"
    caller: bytes

    def __str__(self) -> str:  # pragma: no cover - trivial formatting
        return f"NotOwner: caller=0x{self.caller.hex()}"


__all__ = [
    "CoordinatorError",
    "InvalidDeadline",
    "IncorrectPayment",
    "OverGasLimit",
    "InvalidRequestHash",
    "InvalidRequestState",
    "InvalidSignature",
    "TransferFailed",
    "UnknownBeacon",
    "NotOwner",
]
