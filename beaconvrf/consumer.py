"""
Reference consumer.

Shows the callback contract a requester implements:

- accept ``receive_randomness`` only when ``ctx.sender`` is the coordinator
  it requested from, otherwise revert;
- pay for its own work through ``ctx.gas``;
- never assume it is called exactly once per request id (the coordinator
  guarantees that, but a consumer should not break if misused).

Applications (lotteries, shuffles, raffles) subclass :class:`RandomnessConsumer`
and override :meth:`on_randomness`.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Dict, Optional

from .coordinator.dispatch import CallContext, Revert
from .utils.bytes import to_address

if TYPE_CHECKING:  # pragma: no cover
    from .coordinator.engine import Coordinator

logger = logging.getLogger(__name__)

# Cost model for the bookkeeping a consumer does on receipt (roughly an SSTORE
# into a fresh slot plus call overhead on an EVM chain).
RECEIVE_BASE_GAS = 5_000
STORE_WORD_GAS = 20_000


class RandomnessConsumer:
    def __init__(self, address: bytes | str, coordinator: bytes | str) -> None:
        self.address = to_address(address, name="address")
        self.coordinator = to_address(coordinator, name="coordinator")
        self.received: Dict[int, int] = {}

    # -- requesting ------------------------------------------------------

    def request_randomness(
        self,
        coordinator: "Coordinator",
        *,
        deadline: int,
        callback_gas_limit: int,
        now: Optional[int] = None,
    ) -> int:
        """Quote and pay exactly, then create the request from this consumer's address."""
        quote = coordinator.quote(callback_gas_limit)
        return coordinator.create(
            requester=self.address,
            deadline=deadline,
            callback_gas_limit=callback_gas_limit,
            payment=quote.total_price,
            now=now,
        )

    # -- callback --------------------------------------------------------

    def receive_randomness(self, ctx: CallContext, request_id: int, random_word: int) -> None:
        if ctx.sender != self.coordinator:
            raise Revert("OnlyCoordinatorCanFulfill")
        ctx.gas.debit(RECEIVE_BASE_GAS, reason="receive")
        if request_id in self.received:
            raise Revert("AlreadyReceived")
        ctx.gas.debit(STORE_WORD_GAS, reason="store random word")
        self.received[request_id] = random_word
        self.on_randomness(ctx, request_id, random_word)

    def on_randomness(self, ctx: CallContext, request_id: int, random_word: int) -> None:
        """Application hook; runs inside the callback's gas budget."""
        logger.debug("randomness received", extra={"request_id": request_id})


__all__ = ["RandomnessConsumer", "RECEIVE_BASE_GAS", "STORE_WORD_GAS"]
