"""
beaconvrf.fees.engine - request pricing.

    raw   = gas_station.tx_cost(overhead + callback_gas_limit, fee_per_gas)
    total = raw * premium_multiplier_bps // BPS_DENOM

When the network fee exceeds ``max_fee_per_gas`` the quote is clamped:

    effective_fee_per_gas = max_fee_per_gas
    total                 = max_fee_per_gas * callback_gas_limit

``create`` must be paid exactly ``total``. Quotes are recomputed on every call;
nothing here is cached, so a quote taken before a fee move is stale.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..constants import (
    BPS_DENOM,
    DEFAULT_FULFILLMENT_OVERHEAD_GAS,
    DEFAULT_MAX_FEE_PER_GAS,
    DEFAULT_PREMIUM_MULTIPLIER_BPS,
)
from .gas_station import GasStation


@dataclass(frozen=True)
class FeeConfig:
    """
    premium_multiplier_bps:
        Multiplier on the raw cost, in basis points (15000 = 1.5x).
    max_fee_per_gas:
        Cap on the fee per gas used for pricing.
    fulfillment_overhead_gas:
        Gas the fulfillment itself burns on top of the callback budget.
    """

    premium_multiplier_bps: int = DEFAULT_PREMIUM_MULTIPLIER_BPS
    max_fee_per_gas: int = DEFAULT_MAX_FEE_PER_GAS
    fulfillment_overhead_gas: int = DEFAULT_FULFILLMENT_OVERHEAD_GAS

    def __post_init__(self) -> None:
        if self.premium_multiplier_bps < 0:
            raise ValueError("premium_multiplier_bps must be >= 0")
        if self.max_fee_per_gas < 0:
            raise ValueError("max_fee_per_gas must be >= 0")
        if self.fulfillment_overhead_gas < 0:
            raise ValueError("fulfillment_overhead_gas must be >= 0")


@dataclass(frozen=True)
class Quote:
    total_price: int
    effective_fee_per_gas: int
    capped: bool = False


class FeeEngine:
    def __init__(self, gas_station: GasStation, config: FeeConfig = FeeConfig()) -> None:
        self.gas_station = gas_station
        self.config = config

    def quote(self, callback_gas_limit: int) -> Quote:
        if callback_gas_limit < 0:
            raise ValueError("callback_gas_limit must be >= 0")
        cfg = self.config
        fee = self.gas_station.fee_per_gas()
        if fee > cfg.max_fee_per_gas:
            return Quote(
                total_price=cfg.max_fee_per_gas * callback_gas_limit,
                effective_fee_per_gas=cfg.max_fee_per_gas,
                capped=True,
            )
        raw = self.gas_station.tx_cost(cfg.fulfillment_overhead_gas + callback_gas_limit, fee)
        return Quote(
            total_price=raw * cfg.premium_multiplier_bps // BPS_DENOM,
            effective_fee_per_gas=fee,
        )


__all__ = ["FeeConfig", "FeeEngine", "Quote"]
