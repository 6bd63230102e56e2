"""
beaconvrf.types - typed primitives and event records shared across the
coordinator (curve points, beacons, request parameters, lifecycle states).

    from beaconvrf.types import G1Point, RequestState, RequestCreated
"""

from __future__ import annotations

from .core import Beacon, G1Point, G2Point, RequestId, RequestParams, RequestState
from .events import CallbackFailed, Event, RequestCreated, RequestFulfilled, event_from_dict

__all__ = [
    "RequestId",
    "G1Point",
    "G2Point",
    "Beacon",
    "RequestState",
    "RequestParams",
    "RequestCreated",
    "RequestFulfilled",
    "CallbackFailed",
    "Event",
    "event_from_dict",
]
