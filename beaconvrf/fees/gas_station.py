"""
Network fee estimate.

The coordinator does not price gas itself; it asks a *gas station* for the
current fee per gas unit and for the cost of a transaction of a given size.
On an EVM chain the latter is ``units * fee``; L2s add a data-availability
component, which is why ``tx_cost`` is part of the interface.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional, Protocol


class GasStation(Protocol):
    def fee_per_gas(self) -> int:
        """Current fee per gas unit (wei)."""
        ...

    def tx_cost(self, gas_units: int, fee_per_gas: int) -> int:
        """Estimated cost (wei) of executing ``gas_units`` at ``fee_per_gas``."""
        ...


@dataclass
class StaticGasStation:
    """Fixed fee per gas. ``fee`` may be updated in place (tests, operators)."""

    fee: int

    def __post_init__(self) -> None:
        if self.fee < 0:
            raise ValueError("fee must be >= 0")

    def fee_per_gas(self) -> int:
        return self.fee

    def tx_cost(self, gas_units: int, fee_per_gas: int) -> int:
        return gas_units * fee_per_gas


class CallableGasStation:
    """
    Adapter around plain callables, e.g. an RPC ``eth_gasPrice`` poller:

        CallableGasStation(lambda: w3.eth.gas_price)
    """

    def __init__(
        self,
        fee_fn: Callable[[], int],
        cost_fn: Optional[Callable[[int, int], int]] = None,
    ) -> None:
        self._fee_fn = fee_fn
        self._cost_fn = cost_fn

    def fee_per_gas(self) -> int:
        fee = int(self._fee_fn())
        if fee < 0:
            raise ValueError("gas station returned a negative fee")
        return fee

    def tx_cost(self, gas_units: int, fee_per_gas: int) -> int:
        if self._cost_fn is None:
            return gas_units * fee_per_gas
        return int(self._cost_fn(gas_units, fee_per_gas))


__all__ = ["GasStation", "StaticGasStation", "CallableGasStation"]
