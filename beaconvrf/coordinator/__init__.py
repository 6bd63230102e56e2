"""
beaconvrf.coordinator - request lifecycle, randomness derivation, callback
dispatch, event log and fee ledger, plus the :class:`Coordinator` facade that
sequences them.
"""

from __future__ import annotations

from .commitment import request_commitment
from .derive import RandomnessDeriver
from .dispatch import CallbackDispatcher, CallContext, DispatchResult, ReceiverRegistry, Revert
from .engine import Coordinator, FulfillmentResult
from .events import EventLog
from .ledger import FeeLedger, Transfer
from .requests import RequestStore

__all__ = [
    "Coordinator",
    "FulfillmentResult",
    "RequestStore",
    "RandomnessDeriver",
    "CallbackDispatcher",
    "CallContext",
    "DispatchResult",
    "ReceiverRegistry",
    "Revert",
    "EventLog",
    "FeeLedger",
    "Transfer",
    "request_commitment",
]
