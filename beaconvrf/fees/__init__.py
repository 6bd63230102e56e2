"""Request pricing: gas station adapters and the premium/cap fee engine."""

from .engine import FeeConfig, FeeEngine, Quote
from .gas_station import CallableGasStation, GasStation, StaticGasStation

__all__ = ["FeeConfig", "FeeEngine", "Quote", "GasStation", "StaticGasStation", "CallableGasStation"]
