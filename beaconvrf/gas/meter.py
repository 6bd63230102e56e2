"""
beaconvrf.gas.meter - callback gas budget.

Each callback runs against a fresh meter whose limit is the request's
``callback_gas_limit``. Callbacks charge their work through
:meth:`GasMeter.debit`; an overdraft burns whatever budget is left and raises
:class:`OOG`, which the dispatcher records as a failed callback. ``used``
after the call is the request's ``actual_gas_used``.

The budget is cooperative: a callback that never debits runs to completion and
reports ``used == 0``. Python offers no instruction metering to enforce it.
"""

from __future__ import annotations

from typing import Optional

from ..utils.hash import UINT256_MAX


class OOG(Exception):
    """Callback ran past its gas limit. Never escapes ``consume``."""

    code = "OUT_OF_GAS"

    def __init__(self, message: str = "out of gas", *, limit: int = 0, used: int = 0, requested: int = 0):
        super().__init__(message)
        self.limit = limit
        self.used = used
        self.requested = requested


class GasMeter:
    __slots__ = ("_limit", "_used")

    def __init__(self, limit: int) -> None:
        lim = int(limit)
        if lim < 0 or lim > UINT256_MAX:
            raise ValueError("gas limit must be a non-negative u256")
        self._limit = lim
        self._used = 0

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def used(self) -> int:
        return self._used

    @property
    def remaining(self) -> int:
        return self._limit - self._used

    def debit(self, amount: int, *, reason: Optional[str] = None) -> None:
        """Charge ``amount`` gas; on overdraft burn the rest and raise OOG."""
        amt = int(amount)
        if amt < 0:
            raise ValueError("gas amount must be non-negative")
        if amt > self.remaining:
            err = OOG(
                f"out of gas: {reason}" if reason else "out of gas",
                limit=self._limit,
                used=self._used,
                requested=amt,
            )
            self._used = self._limit
            raise err
        self._used += amt

    def __repr__(self) -> str:
        return f"GasMeter(limit={self._limit}, used={self._used})"


__all__ = ["GasMeter", "OOG"]
