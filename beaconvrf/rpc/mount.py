"""
beaconvrf.rpc.mount
-------------------

Mount the coordinator's REST endpoints on a FastAPI app (prefix ``/vrf`` by
default):

    GET  /params                      → coordinator parameters
    GET  /quote?callback_gas_limit=   → exact price for a request
    GET  /requests/{id}/state         → Nonexistent | Pending | Fulfilled | Failed
    POST /requests                    → create a request
    POST /requests/{id}/fulfill       → submit the beacon signature for a request
    GET  /events                      → filtered event log

Protocol rejections map to HTTP 400 with the error's ``to_dict()`` as detail.
Malformed input (bad hex, wrong lengths) is also a 400 with code
``BAD_REQUEST``. This module is transport glue only.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, FastAPI, HTTPException, Path, Query

from ..coordinator.engine import Coordinator
from ..errors import CoordinatorError
from ..types.events import RequestCreated
from ..utils.bytes import to_address
from .models import (
    CreateReq,
    CreateResp,
    EventsResp,
    FulfillReq,
    FulfillResp,
    QuoteResp,
    StateResp,
    parse_uint,
)

logger = logging.getLogger(__name__)


def _reject(e: Exception) -> HTTPException:
    if isinstance(e, CoordinatorError):
        return HTTPException(status_code=400, detail=e.to_dict())
    return HTTPException(status_code=400, detail={"code": "BAD_REQUEST", "message": str(e)})


def get_router(coordinator: Coordinator, *, prefix: str = "/vrf") -> APIRouter:
    r = APIRouter(prefix=prefix, tags=["vrf"])

    @r.get("/params")
    def params() -> dict:
        return coordinator.params()

    @r.get("/quote", response_model=QuoteResp)
    def quote(callback_gas_limit: int = Query(..., ge=0)) -> QuoteResp:
        try:
            q = coordinator.quote(callback_gas_limit)
        except (ValueError, TypeError) as e:
            raise _reject(e) from e
        return QuoteResp(
            callback_gas_limit=callback_gas_limit,
            total_price=str(q.total_price),
            effective_fee_per_gas=str(q.effective_fee_per_gas),
            capped=q.capped,
        )

    @r.get("/requests/{request_id}/state", response_model=StateResp)
    def state(request_id: int = Path(..., ge=0)) -> StateResp:
        st = coordinator.get_state(request_id)
        return StateResp(request_id=request_id, state=st.label, code=int(st))

    @r.post("/requests", response_model=CreateResp)
    def create(req: CreateReq) -> CreateResp:
        try:
            rid = coordinator.create(
                requester=req.requester,
                deadline=req.deadline,
                callback_gas_limit=req.callback_gas_limit,
                payment=parse_uint(req.payment, name="payment"),
            )
        except (CoordinatorError, ValueError, TypeError) as e:
            raise _reject(e) from e
        created = coordinator.events(kind=RequestCreated.kind, request_id=rid, limit=1)
        round_ = created[0].round if created else 0  # type: ignore[union-attr]
        return CreateResp(request_id=rid, round=round_)

    @r.post("/requests/{request_id}/fulfill", response_model=FulfillResp)
    def fulfill(req: FulfillReq, request_id: int = Path(..., ge=0)) -> FulfillResp:
        try:
            res = coordinator.consume(
                request_id=request_id,
                requester=req.requester,
                beacon_key_hash=req.beacon_key_hash,
                round=req.round,
                callback_gas_limit=req.callback_gas_limit,
                signature=req.signature.to_point(),
            )
        except (CoordinatorError, ValueError, TypeError) as e:
            raise _reject(e) from e
        return FulfillResp(
            request_id=res.request_id,
            randomness=hex(res.randomness),
            callback_success=res.callback_success,
            actual_gas_used=res.actual_gas_used,
            state=res.state.label,
        )

    @r.get("/events", response_model=EventsResp)
    def events(
        kind: Optional[str] = Query(None),
        request_id: Optional[int] = Query(None, ge=0),
        requester: Optional[str] = Query(None),
        limit: int = Query(100, ge=1, le=1000),
    ) -> EventsResp:
        try:
            who = to_address(requester, name="requester") if requester is not None else None
        except (ValueError, TypeError) as e:
            raise _reject(e) from e
        evs = coordinator.events(kind=kind, request_id=request_id, requester=who, limit=limit)
        return EventsResp(events=[ev.to_dict() for ev in evs])

    return r


def mount_coordinator_rpc(app: FastAPI, coordinator: Coordinator, *, prefix: str = "/vrf") -> None:
    """Include the coordinator router on ``app``."""
    app.include_router(get_router(coordinator, prefix=prefix))
    logger.info("coordinator rpc mounted", extra={"prefix": prefix})


def create_app(coordinator: Coordinator) -> FastAPI:
    from ..version import get_version

    app = FastAPI(title="beaconvrf", version=get_version())
    mount_coordinator_rpc(app, coordinator)
    return app


__all__ = ["get_router", "mount_coordinator_rpc", "create_app"]
