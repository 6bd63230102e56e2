"""
Callback dispatch.

Consumers are Python objects implementing :class:`RandomnessReceiver` and
registered under their requester address. The dispatcher calls

    receiver.receive_randomness(ctx, request_id, random_word)

with ``ctx.sender`` set to the coordinator address and ``ctx.gas`` a
:class:`GasMeter` limited to the request's callback gas limit.

The call is isolated: anything the callback raises, :class:`OOG`,
:class:`Revert` and ``BaseException`` subclasses such as
``asyncio.CancelledError`` or ``SystemExit`` included, is caught and reported
as ``success=False`` together with the revert data and the gas the callback
had used. A ``KeyboardInterrupt`` is recorded the same way and handed back in
``DispatchResult.interrupt``; the coordinator re-raises it only after the
outcome and its events are stored.

The gas budget is cooperative. Callbacks are charged only for what they debit
from ``ctx.gas``; one that never debits is not stopped and reports
``gas_used == 0``. Consumers run in-process and are trusted to meter
themselves.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Dict, Optional, Protocol

from ..gas.meter import OOG, GasMeter
from ..utils.bytes import to_address

logger = logging.getLogger(__name__)

MAX_RETDATA = 256


class Revert(Exception):
    """
    Raised by a consumer to fail its callback with explicit revert data.

    Attributes:
        return_data: Bytes recorded in the CallbackFailed event.
    """

    def __init__(self, reason: str = "", *, return_data: Optional[bytes] = None) -> None:
        super().__init__(reason or "revert")
        self.return_data = return_data if return_data is not None else reason.encode("utf-8")


@dataclass(frozen=True)
class CallContext:
    """What a callback can see about the call it is running in."""

    sender: bytes
    gas: GasMeter
    request_id: int


class RandomnessReceiver(Protocol):
    def receive_randomness(self, ctx: CallContext, request_id: int, random_word: int) -> None:
        ...


class ReceiverRegistry:
    """Maps requester addresses to callback objects."""

    def __init__(self) -> None:
        self._receivers: Dict[bytes, RandomnessReceiver] = {}
        self._lock = threading.Lock()

    def register(self, address: bytes | str, receiver: RandomnessReceiver) -> bytes:
        addr = to_address(address)
        with self._lock:
            self._receivers[addr] = receiver
        return addr

    def get(self, address: bytes) -> Optional[RandomnessReceiver]:
        return self._receivers.get(bytes(address))


@dataclass(frozen=True)
class DispatchResult:
    success: bool
    gas_used: int
    retdata: bytes = b""
    interrupt: Optional[KeyboardInterrupt] = None


def _retdata_for(exc: BaseException) -> bytes:
    if isinstance(exc, Revert):
        data = exc.return_data
    elif isinstance(exc, OOG):
        data = b"out of gas"
    else:
        text = str(exc)
        name = type(exc).__name__
        data = (f"{name}: {text}" if text else name).encode("utf-8", "replace")
    return data[:MAX_RETDATA]


class CallbackDispatcher:
    def __init__(self, receivers: ReceiverRegistry, coordinator: bytes) -> None:
        self.receivers = receivers
        self.coordinator = to_address(coordinator, name="coordinator")

    def dispatch(
        self, *, requester: bytes, request_id: int, random_word: int, gas_limit: int
    ) -> DispatchResult:
        receiver = self.receivers.get(requester)
        if receiver is None:
            logger.warning(
                "no receiver registered for requester",
                extra={"requester": requester, "request_id": request_id},
            )
            return DispatchResult(success=False, gas_used=0, retdata=b"no receiver")

        meter = GasMeter(gas_limit)
        ctx = CallContext(sender=self.coordinator, gas=meter, request_id=request_id)
        try:
            receiver.receive_randomness(ctx, request_id, random_word)
        except BaseException as e:  # callback isolation boundary
            logger.warning(
                "callback failed",
                extra={
                    "request_id": request_id,
                    "error": type(e).__name__,
                    "gas_used": meter.used,
                    "gas_limit": gas_limit,
                },
            )
            return DispatchResult(
                success=False,
                gas_used=meter.used,
                retdata=_retdata_for(e),
                interrupt=e if isinstance(e, KeyboardInterrupt) else None,
            )
        return DispatchResult(success=True, gas_used=meter.used)


__all__ = [
    "CallContext",
    "RandomnessReceiver",
    "ReceiverRegistry",
    "CallbackDispatcher",
    "DispatchResult",
    "Revert",
]
