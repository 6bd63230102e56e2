"""
beaconvrf.rpc - FastAPI surface for the coordinator.

    from fastapi import FastAPI
    from beaconvrf.rpc import mount_coordinator_rpc

    app = FastAPI()
    mount_coordinator_rpc(app, coordinator)
"""

from .mount import create_app, get_router, mount_coordinator_rpc

__all__ = ["create_app", "get_router", "mount_coordinator_rpc"]
