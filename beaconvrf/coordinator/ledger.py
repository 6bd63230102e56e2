"""
Fee ledger.

Every ``create`` credits the exact fee it was paid to the coordinator's
balance. The owner may withdraw accrued fees through a :class:`Transfer`
adapter (an on-chain send, a payout queue, a test double). A failing or
rejected transfer raises :class:`TransferFailed` and the debit is rolled back
with the surrounding store transaction.
"""

from __future__ import annotations

import logging
from typing import Protocol

from ..errors import NotOwner, TransferFailed
from ..store import KeyValue
from ..store.kv import META_FEE_BALANCE, Buckets, from_u256, u256
from ..utils.bytes import to_address

logger = logging.getLogger(__name__)


class Transfer(Protocol):
    def __call__(self, recipient: bytes, amount: int) -> bool:
        """Pay ``amount`` to ``recipient``; return False (or raise) on failure."""
        ...


def reject_transfers(recipient: bytes, amount: int) -> bool:
    """Default adapter for deployments without a payout path."""
    return False


class FeeLedger:
    def __init__(self, kv: KeyValue, *, owner: bytes, transfer: Transfer = reject_transfers) -> None:
        self.kv = kv
        self.buckets = Buckets(kv)
        self.owner = to_address(owner, name="owner")
        self.transfer = transfer

    def balance(self) -> int:
        return from_u256(self.buckets.get_meta(META_FEE_BALANCE))

    def credit(self, amount: int) -> None:
        if amount < 0:
            raise ValueError("credit amount must be >= 0")
        with self.kv.transaction():
            self.buckets.put_meta(META_FEE_BALANCE, u256(self.balance() + amount))

    def withdraw(self, *, caller: bytes, recipient: bytes, amount: int) -> int:
        """Owner-only. Returns the remaining balance."""
        caller = to_address(caller, name="caller")
        recipient = to_address(recipient, name="recipient")
        if caller != self.owner:
            raise NotOwner(caller=caller)
        if amount <= 0:
            raise ValueError("withdraw amount must be > 0")

        with self.kv.transaction():
            bal = self.balance()
            if amount > bal:
                raise TransferFailed(recipient=recipient, amount=amount, reason="insufficient balance")
            self.buckets.put_meta(META_FEE_BALANCE, u256(bal - amount))
            try:
                ok = self.transfer(recipient, amount)
            except Exception as e:
                raise TransferFailed(recipient=recipient, amount=amount, reason=str(e)) from e
            if not ok:
                raise TransferFailed(recipient=recipient, amount=amount, reason="rejected")
        logger.info("fees withdrawn", extra={"recipient": recipient, "amount": amount})
        return bal - amount


__all__ = ["FeeLedger", "Transfer", "reject_transfers"]
