"""Gas budgeting for consumer callbacks."""

from .meter import OOG, GasMeter

__all__ = ["GasMeter", "OOG"]
